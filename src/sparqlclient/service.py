"""
SPARQL service: endpoint-wide defaults and the query factory.

A :class:`Service` holds everything shared by the queries sent to one
endpoint: namespace prefixes, default and named graphs, request headers,
the HTTP method, and the limit on simultaneous requests.  Queries created
with :meth:`Service.create_query` read these settings through their service
unless they override them.

Usage:
    from sparqlclient import Service

    service = Service("https://query.wikidata.org/sparql")
    service.set_prefix("wd", "http://www.wikidata.org/entity/")
    service.set_max_simultaneous_queries(2)

    query = service.create_query()
    query.set_body("SELECT ?label WHERE { wd:Q42 rdfs:label ?label }")
    labels = query.select_values().result()
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Mapping

from sparqlclient.config import Config
from sparqlclient.query import Callback, Errback, Query
from sparqlclient.scheduler import RequestScheduler
from sparqlclient.statistics import Statistics
from sparqlclient.statistics import statistics as shared_statistics
from sparqlclient.transport import (
    HttpMethod,
    RequestsTransport,
    Transport,
    merge_headers,
    validate_header,
    validate_method,
)

logger = logging.getLogger(__name__)


class Service:
    """
    Endpoint-wide SPARQL configuration.

    The endpoint is fixed at construction and may be omitted; executing a
    query against a service without one fails with
    :class:`~sparqlclient.errors.MissingEndpointError`.

    Args:
        endpoint: SPARQL endpoint URL
        transport: Object delivering HTTP requests (default: :class:`RequestsTransport`)
        statistics: Counter object (default: the process-wide instance)
        max_simultaneous_queries: Concurrency ceiling, None for unbounded
    """

    def __init__(
        self,
        endpoint: str | None = None,
        *,
        transport: Transport | None = None,
        statistics: Statistics | None = None,
        max_simultaneous_queries: int | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._default_graphs: list[str] = []
        self._named_graphs: list[str] = []
        self._prefixes: dict[str, str] = {}
        self._request_headers: dict[str, str] = {}
        self._method: HttpMethod = "POST"
        self._transport = transport if transport is not None else RequestsTransport()
        self._statistics = statistics if statistics is not None else shared_statistics
        self._scheduler = RequestScheduler(max_simultaneous_queries, name=endpoint or "")

        logger.debug(f"Service initialized for {endpoint}")

    @classmethod
    def from_config(cls, config: type[Config] = Config, **kwargs: Any) -> Service:
        """Build a service from a :class:`~sparqlclient.config.Config` class.

        Keyword arguments are passed to the constructor and take precedence
        over the configuration.
        """
        kwargs.setdefault("endpoint", config.SPARQL_ENDPOINT)
        kwargs.setdefault("max_simultaneous_queries", config.SPARQL_MAX_SIMULTANEOUS)
        if "transport" not in kwargs:
            kwargs["transport"] = RequestsTransport(timeout=config.SPARQL_TIMEOUT)
        service = cls(**kwargs)
        service.set_method(config.SPARQL_METHOD)
        service.set_request_header("User-Agent", config.SPARQL_USER_AGENT)
        return service

    # ── Accessors ─────────────────────────────────────────────────

    def endpoint(self) -> str | None:
        return self._endpoint

    def default_graphs(self) -> list[str]:
        return list(self._default_graphs)

    def named_graphs(self) -> list[str]:
        return list(self._named_graphs)

    def prefixes(self) -> dict[str, str]:
        return dict(self._prefixes)

    def request_headers(self) -> dict[str, str]:
        return dict(self._request_headers)

    def method(self) -> HttpMethod:
        return self._method

    def max_simultaneous_queries(self) -> int | None:
        return self._scheduler.max_simultaneous

    def transport(self) -> Transport:
        return self._transport

    def statistics(self) -> Statistics:
        return self._statistics

    def scheduler(self) -> RequestScheduler:
        return self._scheduler

    # ── Mutators ──────────────────────────────────────────────────

    def add_default_graph(self, uri: str) -> None:
        self._default_graphs.append(uri)

    def add_named_graph(self, uri: str) -> None:
        self._named_graphs.append(uri)

    def set_prefix(self, name: str, uri: str) -> None:
        self._prefixes[name] = uri

    def set_prefixes(self, prefixes: Mapping[str, str]) -> None:
        """Set several prefixes at once, e.g. ``NAMESPACE_PREFIXES``."""
        self._prefixes.update(prefixes)

    def set_request_header(self, name: str, value: str) -> None:
        """Set a header, replacing any header of the same name in any case.

        Raises:
            InvalidArgumentError: If the name or value is not a string
        """
        validate_header(name, value)
        self._request_headers = merge_headers(self._request_headers, {name: value})

    def set_method(self, method: str) -> None:
        """Set the HTTP method; only ``"GET"`` and ``"POST"`` are accepted.

        Raises:
            InvalidArgumentError: For any other value; the method is unchanged
        """
        self._method = validate_method(method)

    def set_max_simultaneous_queries(self, limit: int | None) -> None:
        """Set how many requests may be in flight at once (None = no limit).

        Raises:
            InvalidArgumentError: If *limit* is not a positive integer or None
        """
        self._scheduler.max_simultaneous = limit

    # ── Queries ───────────────────────────────────────────────────

    def create_query(self) -> Query:
        """Create a query that inherits this service's settings."""
        return Query(self)

    def _run(
        self,
        shape: str,
        body: str,
        callback: Callback | None,
        errback: Errback | None,
    ) -> Future:
        query = self.create_query()
        query.set_body(body)
        query.set_transformation(shape)
        return query.execute(callback, errback)

    def query(self, body: str, callback: Callback | None = None, errback: Errback | None = None) -> Future:
        """Run *body* and deliver the raw SPARQL JSON document."""
        return self._run("query", body, callback, errback)

    def ask(self, body: str, callback: Callback | None = None, errback: Errback | None = None) -> Future:
        """Run an ASK *body* and deliver its boolean."""
        return self._run("ask", body, callback, errback)

    def select_values(
        self, body: str, callback: Callback | None = None, errback: Errback | None = None
    ) -> Future:
        """Run a one-variable SELECT *body* and deliver its values as a list."""
        return self._run("select_values", body, callback, errback)

    def select_single_value(
        self, body: str, callback: Callback | None = None, errback: Errback | None = None
    ) -> Future:
        """Run a SELECT *body* expected to yield one value and deliver it."""
        return self._run("select_single_value", body, callback, errback)

    def select_value_arrays(
        self, body: str, callback: Callback | None = None, errback: Errback | None = None
    ) -> Future:
        """Run a SELECT *body* and deliver ``{variable: [values...]}``."""
        return self._run("select_value_arrays", body, callback, errback)

    def select_value_hashes(
        self, body: str, callback: Callback | None = None, errback: Errback | None = None
    ) -> Future:
        """Run a SELECT *body* and deliver one ``{variable: value}`` dict per row."""
        return self._run("select_value_hashes", body, callback, errback)

    # ── Lifecycle ─────────────────────────────────────────────────

    def close(self) -> None:
        """Close the transport, if it has anything to close."""
        close = getattr(self._transport, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> Service:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - close the transport."""
        self.close()

    def __repr__(self) -> str:
        return f"Service({self._endpoint!r}, method={self._method!r})"
