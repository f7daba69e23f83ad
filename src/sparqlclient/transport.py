"""
HTTP transport for SPARQL requests.

The query pipeline only needs something that turns a
:class:`TransportRequest` into a :class:`TransportResponse`.  Anything with
a matching ``send`` method can be passed to a
:class:`~sparqlclient.service.Service`; :class:`RequestsTransport` is the
default and uses a pooled :class:`requests.Session`.

A transport raises :class:`~sparqlclient.errors.TransportError` when no
response arrives at all.  HTTP error statuses are returned as ordinary
responses; deciding what counts as failure is up to the caller.
"""

from __future__ import annotations

import logging
from typing import Literal, Protocol

import requests
from pydantic import BaseModel, Field

from sparqlclient.errors import InvalidArgumentError, TransportError
from sparqlclient.version import VERSION

logger = logging.getLogger(__name__)

HttpMethod = Literal["GET", "POST"]


# MIME types for SPARQL responses
class MimeTypes:
    """Standard MIME types for the SPARQL protocol."""

    JSON = "application/sparql-results+json"
    XML = "application/sparql-results+xml"
    FORM = "application/x-www-form-urlencoded"

    SELECT_ACCEPT = f"{JSON}, application/json;q=0.9"


DEFAULT_USER_AGENT = f"sparqlclient/{VERSION} (SPARQL client)"


class TransportRequest(BaseModel):
    """One HTTP request as handed to a transport."""

    url: str
    method: HttpMethod
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, str] = Field(default_factory=dict, description="URL query parameters")
    data: dict[str, str] = Field(default_factory=dict, description="Form-encoded body fields")


class TransportResponse(BaseModel):
    """Status and body text of an HTTP response."""

    status: int
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """Anything that can deliver a :class:`TransportRequest`."""

    def send(self, request: TransportRequest) -> TransportResponse: ...


class RequestsTransport:
    """
    Transport backed by :mod:`requests`.

    Attributes:
        timeout: Request timeout in seconds, or None to wait indefinitely
    """

    def __init__(self, *, timeout: float | None = 60.0, session: requests.Session | None = None) -> None:
        self.timeout = timeout
        # Session for connection pooling
        self._session = session or requests.Session()

    def send(self, request: TransportRequest) -> TransportResponse:
        """
        Perform the request.

        Args:
            request: Request description

        Returns:
            Response status and text, whatever the status

        Raises:
            TransportError: If the request could not be completed
        """
        try:
            response = self._session.request(
                request.method,
                request.url,
                params=request.params or None,
                data=request.data or None,
                headers=request.headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"{request.method} {request.url} failed: {e}")
            raise TransportError(f"SPARQL connection error: {e}") from e

        return TransportResponse(status=response.status_code, text=response.text)

    def close(self) -> None:
        """Close the underlying requests session."""
        self._session.close()

    def __enter__(self) -> RequestsTransport:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"RequestsTransport(timeout={self.timeout})"


HTTP_METHODS: tuple[str, ...] = ("GET", "POST")


def validate_method(method: str) -> HttpMethod:
    """Return *method* if it is ``"GET"`` or ``"POST"`` (case-sensitive).

    Raises:
        InvalidArgumentError: For any other value
    """
    if not isinstance(method, str) or method not in HTTP_METHODS:
        raise InvalidArgumentError(f"HTTP method must be one of {HTTP_METHODS}, got {method!r}")
    return method  # type: ignore[return-value]


def validate_header(name: str, value: str) -> None:
    """Check that a request header has a non-empty string name and a string value.

    Raises:
        InvalidArgumentError: If either is not a string, or the name is empty
    """
    if not isinstance(name, str) or not name:
        raise InvalidArgumentError(f"Header name must be a non-empty string, got {name!r}")
    if not isinstance(value, str):
        raise InvalidArgumentError(f"Header {name!r} value must be a string, got {value!r}")


def merge_headers(base: dict[str, str], overrides: dict[str, str]) -> dict[str, str]:
    """
    Apply *overrides* on top of *base*, matching header names case-insensitively.

    A header overridden under the exact same name keeps its position; one
    spelled differently replaces the old entry and moves to the end.

    Example:
        >>> merge_headers({"Accept": "a", "X-Id": "1"}, {"accept": "b"})
        {'X-Id': '1', 'accept': 'b'}
    """
    merged = dict(base)
    for name, value in overrides.items():
        for existing in [key for key in merged if key.lower() == name.lower() and key != name]:
            del merged[existing]
        merged[name] = value
    return merged
