"""Exception hierarchy for the SPARQL client.

Configuration mistakes (:class:`InvalidArgumentError`) are raised at the
call site.  Everything that happens while a query runs is delivered through
the execution future instead of being raised across threads.
"""

from __future__ import annotations


class SparqlClientError(Exception):
    """Base exception for SPARQL client errors."""

    pass


class InvalidArgumentError(SparqlClientError, ValueError):
    """Raised when a configuration value is not accepted."""

    pass


class InvalidShapeError(SparqlClientError):
    """Raised when a result document does not fit the requested shape."""

    pass


class MissingEndpointError(SparqlClientError):
    """Raised when a query is executed against a service with no endpoint."""

    pass


class TransportError(SparqlClientError):
    """Raised on network failure, non-2xx status or an unreadable body.

    Attributes:
        status: HTTP status code, or None when no response was received
        body: Raw (truncated) response text, when available
    """

    def __init__(self, message: str, *, status: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
