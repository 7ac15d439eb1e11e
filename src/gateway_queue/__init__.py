"""
Serializing request queue for outbound calls to a rate-limited upstream.
"""
from .types import (
    QueueClosedError,
    QueueConfig,
    QueueEntry,
    QueueFullError,
    QueueStats,
)
from .queue import (
    RequestQueue,
    create_request_queue,
)


__all__ = [
    "QueueClosedError",
    "QueueConfig",
    "QueueEntry",
    "QueueFullError",
    "QueueStats",
    "RequestQueue",
    "create_request_queue",
]


__version__ = "1.0.0"
