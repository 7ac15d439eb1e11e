"""
Policy helpers for gateway_retry: classification and wait-time computation
"""
import asyncio
import math
import random
import re
import secrets
import string
import time
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Mapping, Optional

from .types import FailureKind, RetryPolicy


# Default policy, matches the gateway's documented limits
DEFAULT_RETRY_POLICY = RetryPolicy(
    max_retries=3,
    base_delay_seconds=2.0,
    max_delay_seconds=60.0,
    min_spacing_seconds=1.0,
    rate_limit_jitter_seconds=2.0,
)

RETRY_AFTER_HEADER = "Retry-After"
RATE_LIMIT_RESET_HEADER = "X-RateLimit-Reset"

# Logged for diagnostics only, never used for decisions
RATE_LIMIT_INFO_HEADERS = {
    "remaining": "X-RateLimit-Remaining",
    "limit": "X-RateLimit-Limit",
    "reset": RATE_LIMIT_RESET_HEADER,
    "token_limit": "X-RateLimit-tokenLimit",
}

_DIGITS = re.compile(r"^\d+$", re.ASCII)
_REQUEST_ID_ALPHABET = string.digits + string.ascii_lowercase


def classify_status(status: int) -> Optional[FailureKind]:
    """
    Classify an HTTP status code.

    Args:
        status: The HTTP status code

    Returns:
        None for 2xx, otherwise the failure kind
    """
    if 200 <= status < 300:
        return None
    if status == 429:
        return FailureKind.RATE_LIMITED
    if 400 <= status < 500:
        return FailureKind.CLIENT_ERROR
    if 500 <= status < 600:
        return FailureKind.SERVER_ERROR
    return FailureKind.PROTOCOL_ERROR


def clamp_delay(delay: float, policy: RetryPolicy) -> float:
    """Clamp a wait into [0, policy.max_delay_seconds]."""
    return max(0.0, min(delay, policy.max_delay_seconds))


def parse_retry_after(value: Optional[str], now: float) -> Optional[float]:
    """
    Parse a Retry-After header value.

    The header can contain either:
    - A whole number of seconds to wait
    - An HTTP-date indicating when to retry

    Args:
        value: Retry-After header value
        now: Current wall-clock time (epoch seconds)

    Returns:
        Wait time in seconds (floored at zero), or None if absent or unparsable
    """
    if not value:
        return None

    value = value.strip()
    if _DIGITS.match(value):
        try:
            return float(int(value))
        except (OverflowError, ValueError):
            return None

    try:
        dt = parsedate_to_datetime(value)
    except (ValueError, TypeError, IndexError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return max(0.0, dt.timestamp() - now)


def parse_rate_limit_reset(value: Optional[str], now: float) -> Optional[float]:
    """
    Parse a rate-limit-reset header holding a Unix timestamp in seconds.

    Args:
        value: Header value
        now: Current wall-clock time (epoch seconds)

    Returns:
        Seconds until reset (floored at zero), or None if absent or unparsable
    """
    if not value:
        return None
    try:
        reset_at = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(reset_at):
        return None
    return max(0.0, reset_at - now)


def rate_limit_hint(headers: Mapping[str, str], now: float) -> Optional[float]:
    """
    Gateway-provided wait before the next call, if it sent one.

    Retry-After takes precedence over the reset timestamp.
    """
    hint = parse_retry_after(headers.get(RETRY_AFTER_HEADER), now)
    if hint is None:
        hint = parse_rate_limit_reset(headers.get(RATE_LIMIT_RESET_HEADER), now)
    return hint


def calculate_rate_limit_delay(
    attempt: int,
    policy: RetryPolicy,
    headers: Mapping[str, str],
    now: float,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Calculate the wait after a 429 response.

    Precedence: Retry-After, then the reset timestamp, then
    base * 3^attempt plus jitter in [0, rate_limit_jitter_seconds).

    Args:
        attempt: The current attempt number (0-indexed)
        policy: Retry policy
        headers: Response headers (case-insensitive mapping)
        now: Current wall-clock time (epoch seconds)
        rng: Random source returning floats in [0, 1)

    Returns:
        Delay in seconds, capped at policy.max_delay_seconds
    """
    delay = rate_limit_hint(headers, now)
    if delay is None:
        delay = (
            policy.base_delay_seconds * (3 ** attempt)
            + rng() * policy.rate_limit_jitter_seconds
        )
    return clamp_delay(delay, policy)


def calculate_backoff_delay(attempt: int, policy: RetryPolicy) -> float:
    """
    Calculate exponential backoff for server and network failures.

    delay = min(cap, base * 2^attempt)

    Args:
        attempt: The current attempt number (0-indexed)
        policy: Retry policy

    Returns:
        Delay in seconds
    """
    return clamp_delay(policy.base_delay_seconds * (2 ** attempt), policy)


def merge_policy(policy: Optional[RetryPolicy] = None) -> RetryPolicy:
    """Return the given policy, or the default one."""
    if policy is None:
        return DEFAULT_RETRY_POLICY
    return policy


def generate_request_id() -> str:
    """Generate a unique request ID: req_<epoch-ms>_<9 base36 chars>"""
    suffix = "".join(secrets.choice(_REQUEST_ID_ALPHABET) for _ in range(9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


async def async_sleep(seconds: float) -> None:
    """
    Suspend the calling task without blocking the event loop.

    Args:
        seconds: Duration in seconds
    """
    await asyncio.sleep(seconds)
