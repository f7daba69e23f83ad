"""
Admission gate for in-flight SPARQL requests.

A :class:`RequestScheduler` runs submitted jobs on worker threads while
keeping at most ``max_simultaneous`` of them running.  Extra jobs wait in
a FIFO queue and are started as soon as a running job finishes, whether
it succeeded or failed.

Every submission returns a :class:`concurrent.futures.Future`.  Cancelling
that future while the job is still queued drops the job; once started it
runs to completion.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import Future
from typing import Any, Callable

from sparqlclient.errors import InvalidArgumentError

logger = logging.getLogger(__name__)


def validate_limit(limit: int | None) -> int | None:
    """Check a concurrency limit: a positive int, or None for no limit."""
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidArgumentError(
            f"Maximum simultaneous queries must be a positive integer or None, got {limit!r}"
        )
    return limit


class RequestScheduler:
    """
    FIFO scheduler bounding the number of simultaneously running jobs.

    Attributes:
        name: Label used in log records (usually the endpoint URL)

    Example:
        >>> scheduler = RequestScheduler(max_simultaneous=2)
        >>> future = scheduler.submit(lambda: 42)
        >>> future.result()
        42
    """

    def __init__(self, max_simultaneous: int | None = None, *, name: str = "") -> None:
        self._limit = validate_limit(max_simultaneous)
        self._active = 0
        self._queue: deque[tuple[Callable[[], Any], Future]] = deque()
        self._lock = threading.Lock()
        self.name = name

    @property
    def max_simultaneous(self) -> int | None:
        return self._limit

    @max_simultaneous.setter
    def max_simultaneous(self, limit: int | None) -> None:
        self._limit = validate_limit(limit)
        logger.debug(f"Scheduler {self.name!r} limit set to {self._limit}")
        # A raised limit may admit queued jobs right away
        self._drain()

    def active(self) -> int:
        """Number of jobs currently running."""
        with self._lock:
            return self._active

    def pending(self) -> int:
        """Number of jobs waiting for a free slot."""
        with self._lock:
            return len(self._queue)

    def submit(self, job: Callable[[], Any]) -> Future:
        """Queue *job* and return the future that will carry its outcome."""
        future: Future = Future()
        with self._lock:
            self._queue.append((job, future))
            queued = len(self._queue)
        logger.debug(f"Scheduler {self.name!r}: job queued ({queued} waiting)")
        self._drain()
        return future

    def _has_free_slot(self) -> bool:
        return self._limit is None or self._active < self._limit

    def _drain(self) -> None:
        """Start queued jobs while slots are free."""
        while True:
            with self._lock:
                if not self._queue or not self._has_free_slot():
                    return
                job, future = self._queue.popleft()
                if not future.set_running_or_notify_cancel():
                    logger.debug(f"Scheduler {self.name!r}: dropped cancelled job")
                    continue
                self._active += 1
                active = self._active

            logger.debug(f"Scheduler {self.name!r}: dispatching job ({active} active)")
            # Non-daemon: interpreter exit waits for in-flight jobs and their callbacks
            worker = threading.Thread(target=self._run, args=(job, future))
            worker.start()

    def _run(self, job: Callable[[], Any], future: Future) -> None:
        try:
            result = job()
        except BaseException as exc:  # delivered to the caller through the future
            future.set_exception(exc)
        else:
            future.set_result(result)
        finally:
            with self._lock:
                self._active -= 1
            self._drain()

    def __repr__(self) -> str:
        return f"RequestScheduler(max_simultaneous={self._limit}, name={self.name!r})"
