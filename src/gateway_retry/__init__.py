"""
Retry controller for outbound payment-gateway calls, with rate-limit aware backoff.
"""
from .types import (
    Attempt,
    ClassifiedFailure,
    FailureKind,
    GatewayCallError,
    RequestDescriptor,
    RetryEvent,
    RetryEventListener,
    RetryOutcome,
    RetryPolicy,
    RETRYABLE_KINDS,
)
from .config import (
    DEFAULT_RETRY_POLICY,
    RATE_LIMIT_INFO_HEADERS,
    async_sleep,
    calculate_backoff_delay,
    calculate_rate_limit_delay,
    clamp_delay,
    classify_status,
    generate_request_id,
    merge_policy,
    parse_rate_limit_reset,
    parse_retry_after,
    rate_limit_hint,
)
from .executor import (
    RetryController,
    create_retry_controller,
)


__all__ = [
    # Types
    "Attempt",
    "ClassifiedFailure",
    "FailureKind",
    "GatewayCallError",
    "RequestDescriptor",
    "RetryEvent",
    "RetryEventListener",
    "RetryOutcome",
    "RetryPolicy",
    "RETRYABLE_KINDS",
    # Config
    "DEFAULT_RETRY_POLICY",
    "RATE_LIMIT_INFO_HEADERS",
    "async_sleep",
    "calculate_backoff_delay",
    "calculate_rate_limit_delay",
    "clamp_delay",
    "classify_status",
    "generate_request_id",
    "merge_policy",
    "parse_rate_limit_reset",
    "parse_retry_after",
    "rate_limit_hint",
    # Controller
    "RetryController",
    "create_retry_controller",
]


__version__ = "1.0.0"
