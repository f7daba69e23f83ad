"""Query counters shared by services.

Every :class:`~sparqlclient.service.Service` reports to a
:class:`Statistics` object.  Unless given one explicitly, services share
the module-level :data:`statistics` instance, so its numbers cover the
whole process.
"""

from __future__ import annotations

import threading

from pydantic import BaseModel, ConfigDict, Field


class StatisticsSnapshot(BaseModel):
    """Point-in-time copy of a :class:`Statistics` object."""

    model_config = ConfigDict(frozen=True)

    queries_sent: int = Field(0, ge=0, description="Requests handed to the transport")
    successes: int = Field(0, ge=0, description="Executions that delivered a result")
    failures: int = Field(0, ge=0, description="Executions that delivered an error")
    total_time_ms: float = Field(0.0, ge=0, description="Summed request time of completed executions")


class Statistics:
    """Monotonic query counters.

    Increments are serialised with a lock because executions complete on
    worker threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._queries_sent = 0
        self._successes = 0
        self._failures = 0
        self._total_time_ms = 0.0

    @property
    def queries_sent(self) -> int:
        return self._queries_sent

    @property
    def successes(self) -> int:
        return self._successes

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def total_time_ms(self) -> float:
        return self._total_time_ms

    def record_sent(self) -> None:
        with self._lock:
            self._queries_sent += 1

    def record_success(self, elapsed_ms: float = 0.0) -> None:
        with self._lock:
            self._successes += 1
            self._total_time_ms += elapsed_ms

    def record_failure(self, elapsed_ms: float = 0.0) -> None:
        with self._lock:
            self._failures += 1
            self._total_time_ms += elapsed_ms

    def snapshot(self) -> StatisticsSnapshot:
        """Return a consistent, immutable copy of the counters."""
        with self._lock:
            return StatisticsSnapshot(
                queries_sent=self._queries_sent,
                successes=self._successes,
                failures=self._failures,
                total_time_ms=self._total_time_ms,
            )

    def __repr__(self) -> str:
        return (
            f"Statistics(queries_sent={self._queries_sent}, "
            f"successes={self._successes}, failures={self._failures})"
        )


# Module-level singleton
statistics = Statistics()
