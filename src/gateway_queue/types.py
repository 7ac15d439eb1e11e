"""
Type definitions for gateway_queue
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar


T = TypeVar("T")


@dataclass
class QueueConfig:
    """Request queue configuration"""

    max_concurrent: int = 1
    """Maximum in-flight tasks. Default: 1"""

    min_interval_seconds: float = 1.0
    """Minimum spacing between task issue times (seconds). Default: 1.0"""

    settle_delay_seconds: float = 0.1
    """Yield before the next dequeue check after a task settles (seconds). Default: 0.1"""

    max_queue_size: Optional[int] = None
    """Maximum backlog size. Default: None (unlimited)"""

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        if self.min_interval_seconds < 0 or self.settle_delay_seconds < 0:
            raise ValueError("intervals must be >= 0")


@dataclass
class QueueEntry(Generic[T]):
    """A pending call and the future its caller awaits"""

    id: str
    """Unique entry ID"""

    fn: Callable[[], Awaitable[T]]
    """The task to run"""

    future: "asyncio.Future[T]"
    """Settled with the task's own result or exception"""

    enqueued_at: float
    """Enqueue timestamp (queue clock)"""

    metadata: Optional[dict[str, Any]] = None
    """Metadata for logging/debugging"""


@dataclass
class QueueStats:
    """Statistics from the request queue"""

    queue_size: int
    """Current backlog size"""

    active: int
    """Number of in-flight tasks"""

    total_processed: int
    """Tasks that completed successfully"""

    total_failed: int
    """Tasks that raised"""

    total_rejected: int
    """Enqueue calls refused (queue full) or entries dropped on close"""


class QueueFullError(Exception):
    """Raised when the backlog has reached max_queue_size"""


class QueueClosedError(Exception):
    """Raised for work submitted to, or pending in, a closed queue"""
