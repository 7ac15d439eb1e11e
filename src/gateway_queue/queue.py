"""
FIFO request queue with a concurrency gate and minimum issue spacing
"""
import asyncio
import itertools
import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, Optional, TypeVar

from gateway_retry import async_sleep

from .types import (
    QueueClosedError,
    QueueConfig,
    QueueEntry,
    QueueFullError,
    QueueStats,
)


T = TypeVar("T")

logger = logging.getLogger(__name__)


class RequestQueue:
    """
    Request Queue

    Serializes outgoing calls with:
    - Strict FIFO ordering
    - A concurrency gate (default: one call in flight)
    - A minimum interval between consecutive issue times
    - Isolation of failures: a task that raises never blocks the next one

    All state is mutated from the event loop thread only, so no locking
    is needed. Construct one instance per process and pass it to every
    call site that talks to the same upstream.
    """

    def __init__(
        self,
        config: Optional[QueueConfig] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = async_sleep,
        queue_id: str = "gateway",
    ) -> None:
        """
        Create a new RequestQueue.

        Args:
            config: Queue configuration
            clock: Monotonic clock in seconds
            sleep: Delay primitive used to enforce spacing
            queue_id: Name used in log lines
        """
        self._config = config or QueueConfig()
        self._clock = clock
        self._sleep = sleep
        self._id = queue_id

        self._backlog: deque[QueueEntry[Any]] = deque()
        self._tasks: set[asyncio.Task[None]] = set()
        self._ids = itertools.count(1)
        self._active = 0
        self._last_issue_at: Optional[float] = None
        self._closed = False

        self._total_processed = 0
        self._total_failed = 0
        self._total_rejected = 0

    async def enqueue(
        self,
        fn: Callable[[], Awaitable[T]],
        metadata: Optional[dict[str, Any]] = None,
    ) -> T:
        """
        Queue a task and wait for its own result.

        Args:
            fn: Async function to run once its turn comes
            metadata: Metadata for logging/debugging

        Returns:
            Whatever fn returns; whatever fn raises is re-raised here

        Example:
            queue = RequestQueue(QueueConfig(max_concurrent=1, min_interval_seconds=1.0))
            body = await queue.enqueue(lambda: client.get("https://api.example.com"))
        """
        if self._closed:
            raise QueueClosedError(f"Queue '{self._id}' is closed")

        max_size = self._config.max_queue_size
        if max_size is not None and len(self._backlog) >= max_size:
            self._total_rejected += 1
            raise QueueFullError(f"Queue '{self._id}' is full ({max_size} pending)")

        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        entry: QueueEntry[T] = QueueEntry(
            id=f"{self._id}-{next(self._ids)}",
            fn=fn,
            future=future,
            enqueued_at=self._clock(),
            metadata=metadata,
        )
        self._backlog.append(entry)
        logger.debug(f"[{self._id}] queued {entry.id} (backlog {len(self._backlog)})")

        self._process()
        return await future

    def _process(self) -> None:
        """Start as many backlog entries as the gate allows."""
        while not self._closed and self._backlog and self._active < self._config.max_concurrent:
            entry = self._backlog.popleft()
            if entry.future.done():
                # Caller stopped waiting before its turn
                continue

            self._active += 1
            now = self._clock()
            issue_at = now
            if self._last_issue_at is not None:
                issue_at = max(now, self._last_issue_at + self._config.min_interval_seconds)
            self._last_issue_at = issue_at

            task = asyncio.create_task(self._run(entry, issue_at - now))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, entry: QueueEntry[Any], wait: float) -> None:
        """Run one entry after its reserved issue slot, then settle it."""
        try:
            if wait > 0:
                logger.debug(f"[{self._id}] spacing {entry.id} by {wait:.3f}s")
                await self._sleep(wait)
            logger.debug(
                f"[{self._id}] starting {entry.id} after "
                f"{self._clock() - entry.enqueued_at:.3f}s in queue"
            )
            result = await entry.fn()
        except asyncio.CancelledError:
            entry.future.cancel()
            raise
        except Exception as error:
            self._total_failed += 1
            logger.debug(f"[{self._id}] {entry.id} failed: {error}")
            if not entry.future.done():
                entry.future.set_exception(error)
        else:
            self._total_processed += 1
            if not entry.future.done():
                entry.future.set_result(result)
        finally:
            self._active -= 1
            asyncio.get_running_loop().call_later(
                self._config.settle_delay_seconds, self._process
            )

    def get_stats(self) -> QueueStats:
        """Get current statistics"""
        return QueueStats(
            queue_size=len(self._backlog),
            active=self._active,
            total_processed=self._total_processed,
            total_failed=self._total_failed,
            total_rejected=self._total_rejected,
        )

    @property
    def size(self) -> int:
        """Current backlog size"""
        return len(self._backlog)

    @property
    def config(self) -> QueueConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Reject every pending entry and wait for in-flight tasks to settle."""
        if self._closed:
            return
        self._closed = True

        while self._backlog:
            entry = self._backlog.popleft()
            if not entry.future.done():
                self._total_rejected += 1
                entry.future.set_exception(QueueClosedError(f"Queue '{self._id}' was closed"))

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info(f"[{self._id}] queue closed ({self._total_processed} processed, {self._total_failed} failed)")


def create_request_queue(config: Optional[QueueConfig] = None) -> RequestQueue:
    """Create a new request queue instance"""
    return RequestQueue(config)
