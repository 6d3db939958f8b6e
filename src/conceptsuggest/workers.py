"""Bounded thread pool for the blocking half of a suggestion.

A suggestion needs one Rekognition call and one posterior computation, both
synchronous. Each request takes a slot before either runs; a request that
cannot get a slot within ``queue_timeout`` is rejected with
``WorkerPoolSaturated`` so the API answers 503 instead of piling up threads.

Slot bookkeeping happens only on the event loop thread, so the counters need
no lock.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, TypeVar

from conceptsuggest.errors import WorkerPoolSaturated

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from conceptsuggest.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkerPool:
    """Runs scoring work on at most ``max_concurrent`` threads."""

    def __init__(self, max_concurrent: int, *, queue_timeout: float = 5.0) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._slots = asyncio.Semaphore(max_concurrent)
        self._executor = ThreadPoolExecutor(max_workers=max_concurrent, thread_name_prefix="suggest-worker")
        self._queue_timeout = queue_timeout
        self._waiting = 0
        self._running = 0
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings) -> WorkerPool:
        return cls(settings.max_concurrent, queue_timeout=settings.queue_timeout)

    @property
    def active_count(self) -> int:
        """Requests currently holding a slot."""
        return self._running

    @property
    def queue_depth(self) -> int:
        """Requests waiting for a slot."""
        return self._waiting

    @contextlib.asynccontextmanager
    async def _slot(self) -> AsyncIterator[None]:
        if self._closed:
            raise WorkerPoolSaturated("Worker pool is shut down")

        self._waiting += 1
        try:
            await asyncio.wait_for(self._slots.acquire(), timeout=self._queue_timeout)
        except TimeoutError as exc:
            logger.warning(
                "No scoring slot after %.1fs (running=%d, waiting=%d)",
                self._queue_timeout,
                self._running,
                self._waiting,
            )
            raise WorkerPoolSaturated("All workers are busy") from exc
        finally:
            self._waiting -= 1

        self._running += 1
        try:
            yield
        finally:
            self._running -= 1
            self._slots.release()

    async def run(self, func: Callable[..., T], *args: object) -> T:
        """Call ``func(*args)`` on a worker thread once a slot is free.

        Exceptions raised by ``func`` propagate unchanged.

        Raises:
            WorkerPoolSaturated: If no slot frees up in time or the pool is shut down.
        """
        async with self._slot():
            return await asyncio.get_running_loop().run_in_executor(self._executor, func, *args)

    def shutdown(self) -> None:
        """Reject new work and wait for running calls to finish."""
        self._closed = True
        self._executor.shutdown(wait=True)
