"""Tests for the request scheduler and the per-service concurrency limit."""

from __future__ import annotations

import os
import subprocess
import sys
import textwrap
import threading
from pathlib import Path

import pytest

from sparqlclient.errors import InvalidArgumentError
from sparqlclient.scheduler import RequestScheduler
from sparqlclient.service import Service
from sparqlclient.statistics import Statistics

from conftest import ENDPOINT, GatedTransport

TIMEOUT = 5


def _blocking_job(events, label, release):
    def job():
        events.append(f"{label}:start")
        release.wait(TIMEOUT)
        events.append(f"{label}:end")
        return label

    return job


def test_unbounded_by_default():
    scheduler = RequestScheduler()
    release = threading.Event()
    events: list[str] = []
    futures = [scheduler.submit(_blocking_job(events, str(i), release)) for i in range(3)]

    assert scheduler.active() == 3
    assert scheduler.pending() == 0
    release.set()
    assert [f.result(TIMEOUT) for f in futures] == ["0", "1", "2"]


def test_limit_one_runs_jobs_one_after_another():
    scheduler = RequestScheduler(1)
    release = threading.Event()
    events: list[str] = []

    first = scheduler.submit(_blocking_job(events, "first", release))
    second = scheduler.submit(lambda: events.append("second:start") or "second")

    assert scheduler.active() == 1
    assert scheduler.pending() == 1
    assert not second.done()

    release.set()
    assert first.result(TIMEOUT) == "first"
    assert second.result(TIMEOUT) == "second"
    assert events == ["first:start", "first:end", "second:start"]


def test_queue_is_fifo():
    scheduler = RequestScheduler(1)
    release = threading.Event()
    order: list[str] = []

    blocker = scheduler.submit(lambda: release.wait(TIMEOUT))
    futures = [scheduler.submit(lambda label=label: order.append(label)) for label in "abcde"]
    release.set()

    blocker.result(TIMEOUT)
    for future in futures:
        future.result(TIMEOUT)
    assert order == list("abcde")


def test_failed_job_frees_its_slot():
    scheduler = RequestScheduler(1)

    def broken():
        raise RuntimeError("boom")

    failed = scheduler.submit(broken)
    after = scheduler.submit(lambda: "ran")

    assert isinstance(failed.exception(TIMEOUT), RuntimeError)
    assert after.result(TIMEOUT) == "ran"


def test_cancelled_job_is_dropped_before_dispatch():
    scheduler = RequestScheduler(1)
    release = threading.Event()
    ran: list[str] = []

    blocker = scheduler.submit(lambda: release.wait(TIMEOUT))
    cancelled = scheduler.submit(lambda: ran.append("cancelled"))
    assert cancelled.cancel()

    release.set()
    blocker.result(TIMEOUT)
    assert scheduler.submit(lambda: ran.append("next")).exception(TIMEOUT) is None
    assert ran == ["next"]


def test_running_job_cannot_be_cancelled():
    scheduler = RequestScheduler(1)
    release = threading.Event()
    running = scheduler.submit(lambda: release.wait(TIMEOUT))
    assert not running.cancel()
    release.set()
    assert running.result(TIMEOUT) is True


def test_raising_the_limit_admits_queued_jobs():
    scheduler = RequestScheduler(1)
    release = threading.Event()

    blocker = scheduler.submit(lambda: release.wait(TIMEOUT))
    queued = scheduler.submit(lambda: "admitted")
    assert scheduler.pending() == 1

    scheduler.max_simultaneous = 2
    assert queued.result(TIMEOUT) == "admitted"
    assert not blocker.done()
    release.set()
    blocker.result(TIMEOUT)


@pytest.mark.parametrize("limit", [0, -3, 1.5, "2"])
def test_invalid_limit(limit):
    with pytest.raises(InvalidArgumentError):
        RequestScheduler(limit)


def _labelled_query(service, label):
    query = service.create_query()
    query.set_request_header("X-Label", label)
    query.set_body("SELECT ?name {}")
    return query


def test_service_limit_serialises_queries():
    """With one slot, the second request is sent only after the first completes."""
    transport = GatedTransport()
    service = Service(ENDPOINT, transport=transport, statistics=Statistics())
    service.set_max_simultaneous_queries(1)

    first = _labelled_query(service, "first").execute(lambda _: transport.log("first:done"))
    second = _labelled_query(service, "second").execute(lambda _: transport.log("second:done"))

    assert transport.gate("first") and transport.sent["first"].wait(TIMEOUT)
    assert service.scheduler().pending() == 1
    assert "second:sent" not in transport.events

    transport.gate("second").set()
    transport.gate("first").set()
    first.result(TIMEOUT)
    second.result(TIMEOUT)
    assert transport.sent["second"].wait(TIMEOUT)

    assert transport.events.index("first:done") < transport.events.index("second:sent")


def test_queries_of_one_service_share_the_limit():
    transport = GatedTransport()
    stats = Statistics()
    service = Service(ENDPOINT, transport=transport, statistics=stats, max_simultaneous_queries=2)

    futures = [_labelled_query(service, label).execute() for label in ("a", "b", "c")]
    assert transport.gate("a") and transport.sent["a"].wait(TIMEOUT)
    assert transport.gate("b") and transport.sent["b"].wait(TIMEOUT)
    assert service.scheduler().active() == 2
    assert service.scheduler().pending() == 1
    assert stats.queries_sent == 2

    for label in ("a", "b", "c"):
        transport.gate(label).set()
    for future in futures:
        future.result(TIMEOUT)
    assert stats.queries_sent == 3
    assert stats.successes == 3


def test_limit_is_not_shared_across_services():
    transport = GatedTransport()
    stats = Statistics()
    first = Service(ENDPOINT, transport=transport, statistics=stats, max_simultaneous_queries=1)
    second = Service(ENDPOINT, transport=transport, statistics=stats, max_simultaneous_queries=1)

    a = _labelled_query(first, "a").execute()
    b = _labelled_query(second, "b").execute()
    assert transport.gate("a") and transport.sent["a"].wait(TIMEOUT)
    assert transport.gate("b") and transport.sent["b"].wait(TIMEOUT)

    transport.gate("a").set()
    transport.gate("b").set()
    a.result(TIMEOUT)
    b.result(TIMEOUT)


def test_cancelled_query_is_neither_sent_nor_counted():
    transport = GatedTransport()
    stats = Statistics()
    service = Service(ENDPOINT, transport=transport, statistics=stats, max_simultaneous_queries=1)

    first = _labelled_query(service, "first").execute()
    dropped = _labelled_query(service, "dropped").execute()
    assert dropped.cancel()

    transport.gate("first").set()
    first.result(TIMEOUT)
    transport.gate("last").set()
    _labelled_query(service, "last").execute().result(TIMEOUT)

    assert "dropped:sent" not in transport.events
    assert stats.queries_sent == 2
    assert stats.successes == 2
    assert stats.failures == 0


EXIT_SCRIPT = textwrap.dedent(
    """
    import time

    from sparqlclient.service import Service
    from sparqlclient.statistics import Statistics
    from sparqlclient.transport import TransportResponse


    class SlowTransport:
        def send(self, request):
            time.sleep(0.5)
            return TransportResponse(status=200, text='{"boolean": true}')


    service = Service("http://example.org/sparql", transport=SlowTransport(), statistics=Statistics())
    service.ask("ASK {}", callback=lambda result: print("CALLBACK", result, flush=True))
    print("script end", flush=True)
    """
)


def test_callbacks_run_before_interpreter_exit():
    src = Path(__file__).resolve().parents[1] / "src"
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(src), env.get("PYTHONPATH")]))

    completed = subprocess.run(
        [sys.executable, "-c", EXIT_SCRIPT],
        capture_output=True,
        text=True,
        timeout=30,
        env=env,
    )

    assert completed.returncode == 0, completed.stderr
    assert completed.stdout.splitlines() == ["script end", "CALLBACK True"]
