"""
Clover gateway client.

Every outbound call goes through the process-wide RequestQueue and then the
RetryController, so calls are serialized, spaced, and retried per policy.
"""
import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any, Optional

import httpx

from gateway_queue import RequestQueue
from gateway_retry import (
    ClassifiedFailure,
    FailureKind,
    RequestDescriptor,
    RetryController,
    RetryOutcome,
    RetryPolicy,
)

from .config import Settings

logger = logging.getLogger(__name__)

SENSITIVE_HEADERS = {"authorization", "x-clover-merchant-id", "cookie"}


def _mask_sensitive_header(value: str, visible_chars: int = 6) -> str:
    """Mask sensitive header value for safe logging, showing first N chars."""
    if not value:
        return "<empty>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _format_headers_for_log(headers: dict[str, str]) -> dict[str, str]:
    return {
        key: _mask_sensitive_header(value) if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


@dataclass(frozen=True)
class GatewayCredentials:
    auth_token: str
    merchant_id: str


@dataclass(frozen=True)
class CheckoutSession:
    """Hosted checkout session created by the gateway"""

    checkout_url: str
    session_id: Optional[str] = None


class CloverGateway:
    """
    Client for the two gateway endpoints the checkout flow uses:
    the merchant-info probe and hosted checkout-session creation.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        queue: RequestQueue,
        *,
        base_url: str = "https://api.clover.com",
        checkout_path: str = "/invoicingcheckoutservice/v1/checkouts",
        merchant_path: str = "/v3/merchants/{merchant_id}",
        user_agent: str = "CloverCheckout/1.0",
        idempotency_header: Optional[str] = "Idempotency-Key",
        policy: Optional[RetryPolicy] = None,
        controller: Optional[RetryController] = None,
    ) -> None:
        self._client = client
        self._queue = queue
        self._base_url = base_url.rstrip("/")
        self._checkout_path = checkout_path
        self._merchant_path = merchant_path
        self._user_agent = user_agent
        self._idempotency_header = idempotency_header
        self._policy = policy
        self._controller = controller or RetryController(client, controller_id="clover")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: httpx.AsyncClient,
        queue: RequestQueue,
    ) -> "CloverGateway":
        return cls(
            client,
            queue,
            base_url=settings.CLOVER_API_BASE_URL,
            checkout_path=settings.CLOVER_CHECKOUT_PATH,
            merchant_path=settings.CLOVER_MERCHANT_PATH,
            user_agent=settings.USER_AGENT,
            idempotency_header=settings.CHECKOUT_IDEMPOTENCY_HEADER,
            policy=settings.retry_policy(),
        )

    @property
    def controller(self) -> RetryController:
        return self._controller

    @property
    def queue(self) -> RequestQueue:
        return self._queue

    def _headers(self, credentials: GatewayCredentials) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {credentials.auth_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Clover-Merchant-Id": credentials.merchant_id,
            "User-Agent": self._user_agent,
        }

    async def _call(self, descriptor: RequestDescriptor, operation: str) -> RetryOutcome:
        logger.debug(
            f"{operation}: {descriptor.method} {descriptor.url} "
            f"headers={_format_headers_for_log(descriptor.headers)}"
        )
        outcome = await self._queue.enqueue(
            lambda: self._controller.execute(descriptor, self._policy),
            metadata={"operation": operation},
        )
        if outcome.ok:
            logger.info(f"{operation} succeeded after {len(outcome.attempts)} attempt(s)")
        else:
            logger.error(
                f"{operation} failed after {len(outcome.attempts)} attempt(s): "
                f"{outcome.failure.kind.value} {outcome.failure.message}"
            )
        return outcome

    async def probe_merchant(self, credentials: GatewayCredentials) -> RetryOutcome:
        """
        Fetch merchant info to confirm the credentials and connectivity.

        Returns:
            RetryOutcome whose value is the merchant JSON on success
        """
        path = self._merchant_path.format(merchant_id=credentials.merchant_id)
        descriptor = RequestDescriptor(
            method="GET",
            url=f"{self._base_url}{path}",
            headers=self._headers(credentials),
        )
        return await self._call(descriptor, "probe_merchant")

    async def create_checkout_session(
        self,
        credentials: GatewayCredentials,
        payload: dict[str, Any],
    ) -> RetryOutcome:
        """
        Create a hosted checkout session.

        A single idempotency key is shared by every attempt of this call so a
        gateway that honors it can drop duplicates created by retries.

        Returns:
            RetryOutcome whose value is a CheckoutSession on success
        """
        headers = self._headers(credentials)
        if self._idempotency_header:
            headers[self._idempotency_header] = uuid.uuid4().hex

        descriptor = RequestDescriptor(
            method="POST",
            url=f"{self._base_url}{self._checkout_path}",
            headers=headers,
            json=payload,
        )
        outcome = await self._call(descriptor, "create_checkout_session")
        if not outcome.ok:
            return outcome

        body = outcome.value if isinstance(outcome.value, dict) else {}
        checkout_url = body.get("href")
        if not checkout_url:
            failure = ClassifiedFailure(
                kind=FailureKind.PROTOCOL_ERROR,
                message="Gateway response did not include a checkout URL",
            )
            attempts = list(outcome.attempts)
            if attempts:
                attempts[-1] = replace(attempts[-1], kind=failure.kind.value)
            logger.error(f"create_checkout_session failed: {failure.message}")
            return RetryOutcome(failure=failure, attempts=attempts)

        return RetryOutcome(
            value=CheckoutSession(
                checkout_url=checkout_url,
                session_id=body.get("checkoutSessionId"),
            ),
            attempts=outcome.attempts,
        )


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the shared outbound HTTP client."""
    return httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
