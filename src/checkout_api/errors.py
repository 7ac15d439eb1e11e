"""
Error types and the mapping from classified gateway failures to HTTP responses.
"""
import math
from typing import Any, Optional

from gateway_retry import ClassifiedFailure, FailureKind


class ConfigurationError(Exception):
    """Required server configuration is missing"""

    def __init__(self, details: str = "Missing Clover credentials"):
        super().__init__(details)
        self.details = details


class CheckoutValidationError(Exception):
    """The checkout request body is unusable"""

    def __init__(self, error: str, details: Optional[Any] = None):
        super().__init__(error)
        self.error = error
        self.details = details


RATE_LIMIT_DETAILS = "Rate limit exceeded. Please try again later."


def retry_after_header_value(failure: ClassifiedFailure) -> Optional[int]:
    """Whole seconds to advertise to the caller, rounded up."""
    if failure.retry_after_seconds is None:
        return None
    return int(math.ceil(failure.retry_after_seconds))


def failure_status(failure: ClassifiedFailure) -> int:
    """HTTP status returned to our caller for a classified failure."""
    kind = failure.kind
    if kind == FailureKind.RATE_LIMITED:
        return 429
    if kind in (FailureKind.CLIENT_ERROR, FailureKind.SERVER_ERROR):
        return failure.status_code or 500
    if kind == FailureKind.NETWORK_ERROR:
        return 500
    if kind == FailureKind.PROTOCOL_ERROR:
        # A 2xx we could not use is our failure, not the gateway's status
        status = failure.status_code
        if status is None or 200 <= status < 300:
            return 500
        return status
    raise ValueError(f"Unhandled failure kind: {kind}")


def failure_response(failure: ClassifiedFailure) -> tuple[int, dict[str, Any]]:
    """
    Translate a terminal gateway failure into (status, JSON body).

    Body: {"error", "details", "retryAfter"}; retryAfter is set only for
    rate limits where the gateway sent a hint.
    """
    body: dict[str, Any] = {"error": "Payment processing failed"}
    if failure.kind == FailureKind.RATE_LIMITED:
        body["details"] = RATE_LIMIT_DETAILS
        body["retryAfter"] = retry_after_header_value(failure)
    else:
        body["details"] = failure.message
        body["retryAfter"] = None
    return failure_status(failure), body
