"""
Shared fixtures for the checkout service tests.
"""
import logging

import httpx
import pytest
import respx

from checkout_api.config import Settings
from checkout_api.gateway import CloverGateway, GatewayCredentials
from gateway_queue import QueueConfig, RequestQueue
from gateway_retry import RetryController, RetryPolicy


# Configure logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

FIXED_NOW = 1_700_000_000.0

BASE_URL = "https://api.clover.com"
MERCHANT_ID = "MID123"
MERCHANT_URL = f"{BASE_URL}/v3/merchants/{MERCHANT_ID}"
CHECKOUT_URL = f"{BASE_URL}/invoicingcheckoutservice/v1/checkouts"


class RecordingSleep:
    """Delay primitive that records requested waits instead of sleeping."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeClock:
    """Monotonic clock advanced only by FakeClock.sleep."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def policy():
    """Default-shaped policy: base 2s, cap 60s, spacing 1s."""
    return RetryPolicy(max_retries=3, base_delay_seconds=2.0, max_delay_seconds=60.0, min_spacing_seconds=1.0)


@pytest.fixture
def router():
    """respx router mounted through an explicit MockTransport."""
    return respx.MockRouter(assert_all_called=False)


@pytest.fixture
def http_client(router):
    return httpx.AsyncClient(transport=httpx.MockTransport(router.async_handler))


@pytest.fixture
def controller(http_client, recording_sleep):
    return RetryController(
        http_client,
        sleep=recording_sleep,
        clock=lambda: FIXED_NOW,
        rng=lambda: 0.5,
        controller_id="test",
    )


@pytest.fixture
def settings():
    return Settings(
        CLOVER_AUTH_TOKEN="test-token",
        CLOVER_MERCHANT_ID=MERCHANT_ID,
        CLOVER_API_BASE_URL=BASE_URL,
        QUEUE_MIN_INTERVAL_SECONDS=0.0,
    )


@pytest.fixture
def credentials():
    return GatewayCredentials(auth_token="test-token", merchant_id=MERCHANT_ID)


@pytest.fixture
def gateway_queue():
    return RequestQueue(QueueConfig(min_interval_seconds=0.0, settle_delay_seconds=0.0), queue_id="test")


@pytest.fixture
def gateway(http_client, gateway_queue, controller, policy):
    return CloverGateway(
        http_client,
        gateway_queue,
        base_url=BASE_URL,
        policy=policy,
        controller=controller,
    )
