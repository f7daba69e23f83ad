"""Tests for the query counters."""

from __future__ import annotations

import threading

import pydantic
import pytest

from sparqlclient.statistics import Statistics, StatisticsSnapshot


def test_counters_start_at_zero():
    stats = Statistics()
    assert stats.snapshot() == StatisticsSnapshot()
    assert (stats.queries_sent, stats.successes, stats.failures) == (0, 0, 0)


def test_record():
    stats = Statistics()
    stats.record_sent()
    stats.record_sent()
    stats.record_success(12.5)
    stats.record_failure(7.5)

    snapshot = stats.snapshot()
    assert snapshot.queries_sent == 2
    assert snapshot.successes == 1
    assert snapshot.failures == 1
    assert snapshot.total_time_ms == 20.0


def test_snapshot_is_frozen():
    snapshot = Statistics().snapshot()
    with pytest.raises(pydantic.ValidationError):
        snapshot.successes = 3


def test_concurrent_increments_are_not_lost():
    stats = Statistics()

    def work():
        for _ in range(1000):
            stats.record_sent()
            stats.record_success()

    threads = [threading.Thread(target=work) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert stats.queries_sent == 8000
    assert stats.successes == 8000
