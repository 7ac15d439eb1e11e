"""
Type definitions for gateway_retry
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Optional
from enum import Enum


class FailureKind(str, Enum):
    """Classification of a failed gateway call"""
    RATE_LIMITED = "rate_limited"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    PROTOCOL_ERROR = "protocol_error"


# Kinds the controller may resubmit while attempts remain
RETRYABLE_KINDS = frozenset({
    FailureKind.RATE_LIMITED,
    FailureKind.SERVER_ERROR,
    FailureKind.NETWORK_ERROR,
})


@dataclass(frozen=True)
class RetryPolicy:
    """Retry policy for one call site"""

    max_retries: int = 3
    """Maximum number of retries after the first attempt. Default: 3"""

    base_delay_seconds: float = 2.0
    """Base delay for exponential backoff (seconds). Default: 2.0"""

    max_delay_seconds: float = 60.0
    """Cap applied to every computed wait (seconds). Default: 60.0"""

    min_spacing_seconds: float = 1.0
    """Fixed pause before every attempt after the first (seconds). Default: 1.0"""

    rate_limit_jitter_seconds: float = 2.0
    """Upper bound of the random jitter added to 429 backoff (seconds). Default: 2.0"""

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        for name in (
            "base_delay_seconds",
            "max_delay_seconds",
            "min_spacing_seconds",
            "rate_limit_jitter_seconds",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")


@dataclass(frozen=True)
class RequestDescriptor:
    """An outbound call that is safe to issue more than once"""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    json: Optional[Any] = None

    request_id_header: Optional[str] = "X-Request-ID"
    """Header that receives a fresh request id on every attempt (None disables)"""


@dataclass(frozen=True)
class ClassifiedFailure:
    """Structured, categorized representation of a failed call"""

    kind: FailureKind
    message: str
    status_code: Optional[int] = None
    retry_after_seconds: Optional[float] = None
    """Hint surfaced to the caller when the gateway signals a rate limit"""

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


@dataclass
class Attempt:
    """Record of a single attempt inside one retry loop"""

    index: int
    """0-based attempt ordinal"""

    kind: str
    """Either "success" or a FailureKind value"""

    wait_before_seconds: float = 0.0
    """Time spent waiting before this attempt was issued"""

    status_code: Optional[int] = None

    wait_after_seconds: Optional[float] = None
    """Backoff scheduled after this attempt, None when the loop ended"""


class GatewayCallError(Exception):
    """Raised by RetryOutcome.unwrap() for callers that prefer exceptions"""

    def __init__(self, failure: ClassifiedFailure):
        super().__init__(failure.message)
        self.failure = failure

    @property
    def status_code(self) -> Optional[int]:
        return self.failure.status_code


@dataclass
class RetryOutcome:
    """Terminal result of one logical call: a parsed body or a failure"""

    value: Any = None
    failure: Optional[ClassifiedFailure] = None
    attempts: list[Attempt] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def total_wait_seconds(self) -> float:
        return sum(a.wait_before_seconds for a in self.attempts)

    def unwrap(self) -> Any:
        if self.failure is not None:
            raise GatewayCallError(self.failure)
        return self.value


# Event types
EventType = Literal[
    "attempt:start",
    "attempt:success",
    "attempt:fail",
    "retry:wait",
    "retry:abort",
]


@dataclass
class RetryEvent:
    """Event emitted by the retry controller"""

    type: EventType
    """Event type"""

    attempt: int
    """Current attempt number"""

    data: dict[str, Any] = field(default_factory=dict)
    """Event-specific data such as outcome kind and computed wait"""


# Event listener type
RetryEventListener = Callable[[RetryEvent], None]

