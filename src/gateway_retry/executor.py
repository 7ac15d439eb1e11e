"""
Retry controller for outbound gateway calls
"""
import logging
import random
import time
from typing import Any, Awaitable, Callable, Optional

import httpx

from .types import (
    Attempt,
    ClassifiedFailure,
    FailureKind,
    RequestDescriptor,
    RetryEvent,
    RetryEventListener,
    RetryOutcome,
    RetryPolicy,
)
from .config import (
    RATE_LIMIT_INFO_HEADERS,
    async_sleep,
    calculate_backoff_delay,
    calculate_rate_limit_delay,
    classify_status,
    generate_request_id,
    merge_policy,
    rate_limit_hint,
)


logger = logging.getLogger(__name__)


class RetryController:
    """
    Retry Controller

    Wraps a single repeatable HTTP call with:
    - Status and transport-failure classification
    - Exponential backoff for server and network failures
    - Rate-limit aware waits (Retry-After, reset timestamp, 3^n backoff)
    - Fixed spacing between attempts
    - Event emission for observability

    The controller holds no per-call state; one instance can serve any
    number of concurrent invocations.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        sleep: Callable[[float], Awaitable[None]] = async_sleep,
        clock: Callable[[], float] = time.time,
        rng: Callable[[], float] = random.random,
        controller_id: Optional[str] = None,
    ):
        """
        Create a new RetryController.

        Args:
            client: HTTP client used to issue every attempt
            sleep: Delay primitive (suspends the calling task only)
            clock: Wall clock in epoch seconds, used for header arithmetic
            rng: Random source in [0, 1) for rate-limit jitter
            controller_id: Optional unique identifier
        """
        self._client = client
        self._sleep = sleep
        self._clock = clock
        self._rng = rng
        self._id = controller_id or f"retry-{int(time.time() * 1000)}"
        self._listeners: list[RetryEventListener] = []

    def _emit(self, event: RetryEvent) -> None:
        """Emit an event to all listeners."""
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.warning(f"[{self._id}] retry listener failed on {event.type}", exc_info=True)

    async def execute(
        self,
        descriptor: RequestDescriptor,
        policy: Optional[RetryPolicy] = None,
    ) -> RetryOutcome:
        """
        Issue a request, retrying per policy until one terminal outcome.

        Args:
            descriptor: The call to issue; must be safe to repeat
            policy: Retry policy for this call site

        Returns:
            RetryOutcome holding the parsed JSON body or a ClassifiedFailure

        Example:
            controller = RetryController(httpx.AsyncClient())
            outcome = await controller.execute(
                RequestDescriptor("GET", "https://api.example.com/v3/merchants/abc"),
                RetryPolicy(max_retries=2),
            )
        """
        policy = merge_policy(policy)
        total = policy.max_retries + 1
        attempts: list[Attempt] = []
        backoff = 0.0

        for attempt in range(total):
            wait_before = 0.0
            if attempt > 0:
                await self._sleep(policy.min_spacing_seconds)
                wait_before = backoff + policy.min_spacing_seconds

            self._emit(RetryEvent(
                type="attempt:start",
                attempt=attempt,
                data={"method": descriptor.method, "url": descriptor.url},
            ))
            logger.info(
                f"[{self._id}] {descriptor.method} {descriptor.url} "
                f"(attempt {attempt + 1}/{total})"
            )

            record = Attempt(index=attempt, kind="success", wait_before_seconds=wait_before)
            attempts.append(record)

            failure, value, delay = await self._attempt(descriptor, policy, attempt)
            record.status_code = failure.status_code if failure else None

            if failure is None:
                self._emit(RetryEvent(
                    type="attempt:success",
                    attempt=attempt,
                    data={"kind": "success", "wait_seconds": wait_before},
                ))
                return RetryOutcome(value=value, attempts=attempts)

            record.kind = failure.kind.value
            will_retry = failure.retryable and attempt < policy.max_retries

            self._emit(RetryEvent(
                type="attempt:fail",
                attempt=attempt,
                data={
                    "kind": failure.kind.value,
                    "status_code": failure.status_code,
                    "error": failure.message,
                    "will_retry": will_retry,
                },
            ))

            if not will_retry:
                failure = self._finalize(failure, total)
                logger.warning(f"[{self._id}] giving up after attempt {attempt + 1}: {failure.message}")
                self._emit(RetryEvent(
                    type="retry:abort",
                    attempt=attempt,
                    data={"kind": failure.kind.value, "status_code": failure.status_code},
                ))
                return RetryOutcome(failure=failure, attempts=attempts)

            record.wait_after_seconds = delay
            self._emit(RetryEvent(
                type="retry:wait",
                attempt=attempt,
                data={"kind": failure.kind.value, "delay_seconds": delay},
            ))
            logger.info(f"[{self._id}] {failure.message}. Waiting {delay:.3f}s before retry")

            await self._sleep(delay)
            backoff = delay

        # range() always ends in a return above
        raise RuntimeError("Retry loop exited without an outcome")

    async def _attempt(
        self,
        descriptor: RequestDescriptor,
        policy: RetryPolicy,
        attempt: int,
    ) -> tuple[Optional[ClassifiedFailure], Any, float]:
        """Issue one attempt; returns (failure, parsed body, wait before next attempt)."""
        headers = dict(descriptor.headers)
        if descriptor.request_id_header:
            headers[descriptor.request_id_header] = generate_request_id()

        try:
            response = await self._client.request(
                descriptor.method,
                descriptor.url,
                headers=headers,
                json=descriptor.json,
            )
        except httpx.TransportError as error:
            failure = ClassifiedFailure(
                kind=FailureKind.NETWORK_ERROR,
                message=f"Network error: {type(error).__name__}: {error}",
            )
            return failure, None, calculate_backoff_delay(attempt, policy)
        except httpx.DecodingError as error:
            failure = ClassifiedFailure(
                kind=FailureKind.PROTOCOL_ERROR,
                message=f"Undecodable response: {error}",
            )
            return failure, None, 0.0

        status = response.status_code
        self._log_response(response)
        kind = classify_status(status)

        if kind is None:
            try:
                return None, self._parse_body(response), 0.0
            except ValueError as error:
                failure = ClassifiedFailure(
                    kind=FailureKind.PROTOCOL_ERROR,
                    message=f"Invalid JSON in HTTP {status} response: {error}",
                    status_code=status,
                )
                return failure, None, 0.0

        if kind == FailureKind.RATE_LIMITED:
            now = self._clock()
            failure = ClassifiedFailure(
                kind=kind,
                message="Rate limited (429)",
                status_code=status,
                retry_after_seconds=rate_limit_hint(response.headers, now),
            )
            return failure, None, calculate_rate_limit_delay(
                attempt, policy, response.headers, now, self._rng
            )

        failure = ClassifiedFailure(
            kind=kind,
            message=f"HTTP {status}: {response.text}",
            status_code=status,
        )
        if kind == FailureKind.SERVER_ERROR:
            return failure, None, calculate_backoff_delay(attempt, policy)
        return failure, None, 0.0

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _finalize(failure: ClassifiedFailure, total: int) -> ClassifiedFailure:
        """Reword an exhausted rate limit the way callers report it."""
        if failure.kind != FailureKind.RATE_LIMITED:
            return failure
        return ClassifiedFailure(
            kind=failure.kind,
            message=f"Rate limit exceeded after {total} attempts",
            status_code=failure.status_code,
            retry_after_seconds=failure.retry_after_seconds,
        )

    def _log_response(self, response: httpx.Response) -> None:
        rate_limit = {
            name: response.headers.get(header)
            for name, header in RATE_LIMIT_INFO_HEADERS.items()
        }
        logger.debug(f"[{self._id}] response status {response.status_code}, rate limit headers: {rate_limit}")

    def on(self, listener: RetryEventListener) -> Callable[[], None]:
        """
        Add an event listener.

        Args:
            listener: Event listener function

        Returns:
            Function to remove the listener
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def off(self, listener: RetryEventListener) -> None:
        """Remove an event listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def id(self) -> str:
        """Get the controller ID."""
        return self._id


def create_retry_controller(
    client: httpx.AsyncClient,
    controller_id: Optional[str] = None,
) -> RetryController:
    """Create a new retry controller."""
    return RetryController(client, controller_id=controller_id)
