"""Fixtures shared by the sparqlclient tests."""

from __future__ import annotations

import json
import threading
from collections import deque
from typing import Any

import pytest

from sparqlclient.service import Service
from sparqlclient.statistics import Statistics
from sparqlclient.transport import TransportRequest, TransportResponse

ENDPOINT = "http://example.org/sparql"

SELECT_DOC: dict[str, Any] = {
    "head": {"vars": ["name"]},
    "results": {
        "bindings": [
            {"name": {"type": "literal", "value": "Alice"}},
            {"name": {"type": "literal", "value": "Bob"}},
            {"name": {"type": "literal", "value": "Charlie"}},
        ]
    },
}


def json_response(payload: Any, status: int = 200) -> TransportResponse:
    return TransportResponse(status=status, text=json.dumps(payload))


class FakeTransport:
    """Records requests and replays queued responses (or raises queued errors).

    When the queue is empty every request gets :data:`SELECT_DOC`.
    """

    def __init__(self, *responses: TransportResponse | Exception) -> None:
        self.requests: list[TransportRequest] = []
        self._responses: deque[TransportResponse | Exception] = deque(responses)
        self._lock = threading.Lock()
        self.closed = False

    def send(self, request: TransportRequest) -> TransportResponse:
        with self._lock:
            self.requests.append(request)
            response = self._responses.popleft() if self._responses else json_response(SELECT_DOC)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True


class GatedTransport:
    """Blocks every request until its gate is opened, logging what happens."""

    def __init__(self) -> None:
        self.events: list[str] = []
        self.gates: dict[str, threading.Event] = {}
        self.sent: dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def gate(self, label: str) -> threading.Event:
        with self._lock:
            self.sent.setdefault(label, threading.Event())
            return self.gates.setdefault(label, threading.Event())

    def log(self, event: str) -> None:
        with self._lock:
            self.events.append(event)

    def send(self, request: TransportRequest) -> TransportResponse:
        label = request.headers["X-Label"]
        gate = self.gate(label)
        self.log(f"{label}:sent")
        self.sent[label].set()
        gate.wait(5)
        return json_response(SELECT_DOC)


@pytest.fixture()
def stats() -> Statistics:
    """A private counter object so tests do not see each other's queries."""
    return Statistics()


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def service(transport: FakeTransport, stats: Statistics) -> Service:
    """Service on the example endpoint backed by the fake transport."""
    return Service(ENDPOINT, transport=transport, statistics=stats)
