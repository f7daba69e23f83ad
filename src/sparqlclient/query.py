"""
SPARQL query: per-query settings, query text assembly and execution.

A :class:`Query` is created by :meth:`Service.create_query` and resolves its
settings against the service each time they are read:

* prefixes and request headers merge the service's mapping with the
  query's own, the query winning for keys set on both;
* default and named graphs are the service's graphs followed by those
  added on the query;
* the HTTP method is the query's own if set, else the service's.

Service changes made after the query was created are therefore visible
to it, except where the query overrides them.

Execution goes through the service's
:class:`~sparqlclient.scheduler.RequestScheduler` and returns a
:class:`concurrent.futures.Future` holding the transformed result or the
error.
"""

from __future__ import annotations

import json
import logging
import time
from concurrent.futures import Future
from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Mapping

from sparqlclient import transformations
from sparqlclient.errors import MissingEndpointError, TransportError
from sparqlclient.statistics import Statistics
from sparqlclient.transformations import Transformation, get_transformation
from sparqlclient.transport import (
    DEFAULT_USER_AGENT,
    HttpMethod,
    MimeTypes,
    Transport,
    TransportRequest,
    merge_headers,
    validate_header,
    validate_method,
)
from sparqlclient.utils import graph_lines, prefix_lines

if TYPE_CHECKING:
    from sparqlclient.service import Service

logger = logging.getLogger(__name__)

Callback = Callable[[Any], Any]
Errback = Callable[[BaseException], Any]

# Response bodies kept on TransportError
_ERROR_BODY_LIMIT = 500


class Query:
    """
    One SPARQL query bound to a :class:`~sparqlclient.service.Service`.

    Example:
        >>> query = service.create_query()
        >>> query.set_prefix("foaf", "http://xmlns.com/foaf/0.1/")
        >>> query.set_body("SELECT ?name WHERE { ?p foaf:name ?name }")
        >>> print(query.query_string())
        PREFIX foaf: <http://xmlns.com/foaf/0.1/>
        SELECT ?name WHERE { ?p foaf:name ?name }
    """

    def __init__(self, service: Service) -> None:
        self._service = service
        self._default_graphs: list[str] = []
        self._named_graphs: list[str] = []
        self._prefixes: dict[str, str] = {}
        self._request_headers: dict[str, str] = {}
        self._method: HttpMethod | None = None
        self._body = ""
        self._transformation: Transformation = transformations.query

    def service(self) -> Service:
        return self._service

    # ── Effective settings ────────────────────────────────────────

    def default_graphs(self) -> list[str]:
        return self._service.default_graphs() + self._default_graphs

    def named_graphs(self) -> list[str]:
        return self._service.named_graphs() + self._named_graphs

    def prefixes(self) -> dict[str, str]:
        merged = self._service.prefixes()
        merged.update(self._prefixes)
        return merged

    def request_headers(self) -> dict[str, str]:
        return merge_headers(self._service.request_headers(), self._request_headers)

    def method(self) -> HttpMethod:
        if self._method is not None:
            return self._method
        return self._service.method()

    def body(self) -> str:
        return self._body

    def transformation(self) -> Transformation:
        return self._transformation

    # ── Local overrides ───────────────────────────────────────────

    def add_default_graph(self, uri: str) -> None:
        self._default_graphs.append(uri)

    def add_named_graph(self, uri: str) -> None:
        self._named_graphs.append(uri)

    def set_prefix(self, name: str, uri: str) -> None:
        self._prefixes[name] = uri

    def set_prefixes(self, prefixes: Mapping[str, str]) -> None:
        self._prefixes.update(prefixes)

    def set_request_header(self, name: str, value: str) -> None:
        """Set a header for this query, replacing any same-named one (any case).

        Raises:
            InvalidArgumentError: If the name or value is not a string
        """
        validate_header(name, value)
        self._request_headers = merge_headers(self._request_headers, {name: value})

    def set_method(self, method: str) -> None:
        """Override the service's HTTP method for this query.

        Raises:
            InvalidArgumentError: Unless *method* is ``"GET"`` or ``"POST"``
        """
        self._method = validate_method(method)

    def set_body(self, text: str) -> None:
        """Set the query text, without PREFIX or FROM lines."""
        self._body = text

    def set_transformation(self, transformation: Transformation | str) -> None:
        """Choose how results are shaped, by function or by registered name.

        Raises:
            InvalidArgumentError: For an unknown name
        """
        if isinstance(transformation, str):
            transformation = get_transformation(transformation)
        self._transformation = transformation

    # ── Query text ────────────────────────────────────────────────

    def query_string(self) -> str:
        """
        Build the text sent to the endpoint.

        Returns:
            One ``PREFIX`` line per effective prefix, then ``FROM`` lines for
            default graphs, ``FROM NAMED`` lines for named graphs, then the body
        """
        parts = [
            prefix_lines(self.prefixes()),
            graph_lines(self.default_graphs(), self.named_graphs()),
            self._body,
        ]
        return "\n".join(part for part in parts if part)

    def build_request(self) -> TransportRequest:
        """
        Describe the HTTP request for this query.

        GET sends the text as the ``query`` URL parameter; POST sends it
        form-encoded.  Request headers set on the service or query replace
        the defaults of the same name, compared case-insensitively.

        Raises:
            MissingEndpointError: If the service has no endpoint
        """
        endpoint = self._service.endpoint()
        if not endpoint:
            raise MissingEndpointError("Cannot execute a query: the service has no endpoint")

        method = self.method()
        defaults = {"Accept": MimeTypes.SELECT_ACCEPT, "User-Agent": DEFAULT_USER_AGENT}
        if method == "POST":
            defaults["Content-Type"] = MimeTypes.FORM
        headers = merge_headers(defaults, self.request_headers())

        text = self.query_string()
        if method == "GET":
            return TransportRequest(url=endpoint, method=method, headers=headers, params={"query": text})
        return TransportRequest(url=endpoint, method=method, headers=headers, data={"query": text})

    # ── Execution ─────────────────────────────────────────────────

    def execute(self, callback: Callback | None = None, errback: Errback | None = None) -> Future:
        """
        Send the query and shape the result with the selected transformation.

        The request is built from the settings in effect now; later changes
        do not affect it.

        Args:
            callback: Called with the transformed result on success
            errback: Called with the exception on failure

        Returns:
            Future resolving to the transformed result, or failing with
            :class:`~sparqlclient.errors.TransportError`,
            :class:`~sparqlclient.errors.InvalidShapeError` or
            :class:`~sparqlclient.errors.MissingEndpointError`
        """
        service = self._service
        try:
            request = self.build_request()
        except MissingEndpointError as exc:
            service.statistics().record_failure()
            future: Future = Future()
            future.set_exception(exc)
        else:
            job = partial(
                _perform,
                service.transport(),
                service.statistics(),
                request,
                self._transformation,
            )
            future = service.scheduler().submit(job)

        _add_callbacks(future, callback, errback)
        return future

    def query(self, callback: Callback | None = None, errback: Errback | None = None) -> Future:
        """Execute and deliver the raw SPARQL JSON document."""
        self.set_transformation(transformations.query)
        return self.execute(callback, errback)

    def ask(self, callback: Callback | None = None, errback: Errback | None = None) -> Future:
        """Execute an ASK query and deliver its boolean."""
        self.set_transformation(transformations.ask)
        return self.execute(callback, errback)

    def select_values(self, callback: Callback | None = None, errback: Errback | None = None) -> Future:
        """Execute a one-variable SELECT and deliver its values as a list."""
        self.set_transformation(transformations.select_values)
        return self.execute(callback, errback)

    def select_single_value(
        self, callback: Callback | None = None, errback: Errback | None = None
    ) -> Future:
        """Execute a SELECT expected to yield one value and deliver it."""
        self.set_transformation(transformations.select_single_value)
        return self.execute(callback, errback)

    def select_value_arrays(
        self, callback: Callback | None = None, errback: Errback | None = None
    ) -> Future:
        """Execute a SELECT and deliver ``{variable: [values...]}``."""
        self.set_transformation(transformations.select_value_arrays)
        return self.execute(callback, errback)

    def select_value_hashes(
        self, callback: Callback | None = None, errback: Errback | None = None
    ) -> Future:
        """Execute a SELECT and deliver one ``{variable: value}`` dict per row."""
        self.set_transformation(transformations.select_value_hashes)
        return self.execute(callback, errback)

    def __repr__(self) -> str:
        return f"Query(endpoint={self._service.endpoint()!r}, method={self.method()!r})"


def _perform(
    transport: Transport,
    statistics: Statistics,
    request: TransportRequest,
    transformation: Transformation,
) -> Any:
    """Send *request*, decode the JSON body and apply *transformation*.

    Runs on a scheduler worker thread.  Exactly one of success or failure
    is recorded.
    """
    statistics.record_sent()
    logger.debug(f"Sending {request.method} query to {request.url}")
    t0 = time.monotonic()

    try:
        response = transport.send(request)
        if not response.ok:
            raise TransportError(
                f"SPARQL HTTP {response.status}",
                status=response.status,
                body=response.text[:_ERROR_BODY_LIMIT],
            )
        try:
            doc = json.loads(response.text)
        except json.JSONDecodeError as e:
            raise TransportError(
                f"Malformed JSON from SPARQL endpoint: {e}",
                status=response.status,
                body=response.text[:_ERROR_BODY_LIMIT],
            ) from e
        if not isinstance(doc, dict):
            raise TransportError(
                "Unexpected JSON structure from SPARQL endpoint",
                status=response.status,
                body=response.text[:_ERROR_BODY_LIMIT],
            )
        result = transformation(doc)
    except Exception as e:
        elapsed_ms = (time.monotonic() - t0) * 1000.0
        statistics.record_failure(elapsed_ms)
        logger.warning(f"{request.method} query to {request.url} failed: {e}")
        raise

    elapsed_ms = (time.monotonic() - t0) * 1000.0
    statistics.record_success(elapsed_ms)
    logger.info(f"{request.method} query to {request.url} completed in {elapsed_ms:.0f} ms")
    return result


def _add_callbacks(future: Future, callback: Callback | None, errback: Errback | None) -> None:
    if callback is None and errback is None:
        return

    def _done(f: Future) -> None:
        if f.cancelled():
            return
        exc = f.exception()
        if exc is None:
            if callback is not None:
                callback(f.result())
        elif errback is not None:
            errback(exc)

    future.add_done_callback(_done)
