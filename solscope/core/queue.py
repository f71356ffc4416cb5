"""
Rate-limited FIFO task queue.

All outbound market data lookups go through one queue so the provider's
per-IP request budget holds no matter how many holdings are enriched at
once. Jobs run strictly one at a time, and the queue sleeps
``delay_seconds`` after every settled job before starting the next one.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Optional, Tuple, TypeVar

from ..config import settings

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RateLimitedQueue:
    """Serialize async jobs with a fixed inter-job delay.

    The queue is either idle (no drain task) or draining (one background
    task popping and awaiting jobs). A job's outcome is delivered to its
    own caller only; a failing job never stops the drain loop.
    """

    def __init__(self, delay_seconds: Optional[float] = None, *, name: str = "enrichment") -> None:
        self.delay_seconds = settings.enrichment_delay_seconds if delay_seconds is None else delay_seconds
        self.name = name
        self._pending: Deque[Tuple[Callable[[], Awaitable[Any]], asyncio.Future]] = deque()
        self._drain_task: asyncio.Task | None = None
        self._closed = False

    @property
    def is_draining(self) -> bool:
        return self._drain_task is not None

    @property
    def pending(self) -> int:
        return len(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    async def enqueue(self, job: Callable[[], Awaitable[T]]) -> T:
        """Queue ``job`` and wait for its result.

        If the awaiting caller is cancelled before the job starts, the
        job is skipped when it reaches the front of the queue.
        """
        if self._closed:
            raise RuntimeError(f"Queue '{self.name}' is closed")

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._pending.append((job, future))
        if self._drain_task is None:
            logger.debug("Queue %s draining", self.name)
            self._drain_task = loop.create_task(self._drain(), name=f"{self.name}-queue-drain")
        return await future

    async def _drain(self) -> None:
        try:
            while self._pending:
                job, future = self._pending.popleft()
                if future.done():
                    # Caller gave up before the job started.
                    continue
                try:
                    result = await job()
                except asyncio.CancelledError:
                    future.cancel()
                    if self._stopping():
                        raise
                    # The job cancelled itself; only its caller sees it.
                    logger.debug("Queue %s job cancelled itself", self.name)
                except Exception as exc:  # noqa: BLE001
                    if not future.done():
                        future.set_exception(exc)
                else:
                    if not future.done():
                        future.set_result(result)
                await asyncio.sleep(self.delay_seconds)
        finally:
            self._drain_task = None
            logger.debug("Queue %s idle", self.name)

    def _stopping(self) -> bool:
        """True when the drain task itself is being cancelled."""
        if self._closed:
            return True
        task = asyncio.current_task()
        cancelling = getattr(task, "cancelling", None)
        return bool(cancelling and cancelling())

    async def aclose(self) -> None:
        """Stop draining and cancel every job still waiting."""
        self._closed = True
        task = self._drain_task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            self._drain_task = None
        while self._pending:
            _, future = self._pending.popleft()
            future.cancel()
