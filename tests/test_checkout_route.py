"""
End-to-end tests for POST /api/checkout.

The app runs in-process through httpx.ASGITransport; the gateway is
mocked with respx and all retry waits are recorded, not slept.
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from checkout_api.config import Settings, get_settings
from checkout_api.dependencies import get_gateway
from checkout_api.errors import RATE_LIMIT_DETAILS
from checkout_api.main import create_app

from conftest import BASE_URL, CHECKOUT_URL, MERCHANT_ID, MERCHANT_URL


SESSION_BODY = {"href": "https://checkout.clover.com/p/abc", "checkoutSessionId": "sess_123"}


def build_app(settings, gateway):
    app = create_app(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_gateway] = lambda: gateway
    return app


def api_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.fixture
def api(settings, gateway):
    return api_client(build_app(settings, gateway))


class TestCheckoutSuccess:

    @pytest.mark.asyncio
    async def test_checkout_with_coupon(self, router, api):
        probe = router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={"id": MERCHANT_ID}))
        create = router.post(CHECKOUT_URL).mock(return_value=httpx.Response(200, json=SESSION_BODY))

        response = await api.post("/api/checkout", json={"amount": 100, "coupon": "SAVE20"})

        assert response.status_code == 200
        assert response.json() == {
            "checkoutUrl": "https://checkout.clover.com/p/abc",
            "originalAmount": 100,
            "discountAmount": 20,
            "finalAmount": 80,
            "couponApplied": "SAVE20",
            "sessionId": "sess_123",
        }
        assert probe.call_count == 1
        assert create.call_count == 1

        line_item = create.calls.last.request.read()
        assert b"SAVE20 applied - $20 off" in line_item
        assert b'"price":8000' in line_item.replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_checkout_without_coupon(self, router, api):
        router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))
        router.post(CHECKOUT_URL).mock(return_value=httpx.Response(200, json=SESSION_BODY))

        response = await api.post("/api/checkout", json={"amount": 49.5})

        body = response.json()
        assert response.status_code == 200
        assert body["discountAmount"] == 0
        assert body["finalAmount"] == 49.5
        assert body["couponApplied"] is None

    @pytest.mark.asyncio
    async def test_unknown_coupon_charges_full_amount(self, router, api):
        router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))
        router.post(CHECKOUT_URL).mock(return_value=httpx.Response(200, json=SESSION_BODY))

        response = await api.post("/api/checkout", json={"amount": 100, "coupon": "FREESTUFF"})

        assert response.status_code == 200
        assert response.json()["finalAmount"] == 100
        assert response.json()["couponApplied"] is None

    @pytest.mark.asyncio
    async def test_customer_data_is_forwarded(self, router, api):
        router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))
        create = router.post(CHECKOUT_URL).mock(return_value=httpx.Response(200, json=SESSION_BODY))

        await api.post("/api/checkout", json={
            "amount": 10,
            "customerData": {"email": "ada@example.com", "name": "Ada Lovelace"},
        })

        sent = create.calls.last.request.read()
        assert b"ada@example.com" in sent
        assert b"Lovelace" in sent

    @pytest.mark.asyncio
    async def test_probe_can_be_disabled(self, router, gateway):
        settings = Settings(
            CLOVER_AUTH_TOKEN="test-token",
            CLOVER_MERCHANT_ID=MERCHANT_ID,
            CLOVER_API_BASE_URL=BASE_URL,
            CHECKOUT_PROBE_ENABLED=False,
        )
        probe = router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))
        router.post(CHECKOUT_URL).mock(return_value=httpx.Response(200, json=SESSION_BODY))

        response = await api_client(build_app(settings, gateway)).post("/api/checkout", json={"amount": 5})

        assert response.status_code == 200
        assert probe.call_count == 0


class TestValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {},
        {"amount": 0},
        {"amount": -10},
        {"amount": "100"},
        {"amount": True},
        {"amount": None},
        {"coupon": "SAVE10"},
    ])
    async def test_invalid_amount(self, router, api, body):
        probe = router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))

        response = await api.post("/api/checkout", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid amount provided"}
        assert probe.call_count == 0

    @pytest.mark.asyncio
    async def test_unparsable_body(self, api):
        response = await api.post(
            "/api/checkout",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"

    @pytest.mark.asyncio
    async def test_non_object_body(self, api):
        response = await api.post("/api/checkout", json=[1, 2, 3])

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"

    @pytest.mark.asyncio
    async def test_invalid_customer_data(self, api):
        response = await api.post("/api/checkout", json={"amount": 10, "customerData": "nope"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"
        assert response.json()["details"]


class TestConfiguration:

    @pytest.mark.asyncio
    async def test_missing_credentials(self, router, gateway):
        settings = Settings(CLOVER_AUTH_TOKEN=None, CLOVER_MERCHANT_ID=None, CLOVER_API_BASE_URL=BASE_URL)
        probe = router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))

        response = await api_client(build_app(settings, gateway)).post("/api/checkout", json={"amount": 100})

        assert response.status_code == 500
        assert response.json() == {
            "error": "Server configuration error",
            "details": "Missing Clover credentials",
        }
        assert probe.call_count == 0

    @pytest.mark.asyncio
    async def test_missing_credentials_checked_before_body(self, gateway):
        settings = Settings(CLOVER_AUTH_TOKEN="token", CLOVER_MERCHANT_ID=None)

        response = await api_client(build_app(settings, gateway)).post("/api/checkout", json={})

        assert response.status_code == 500


class TestGatewayFailures:

    @pytest.mark.asyncio
    async def test_rate_limit_exhaustion(self, router, api):
        probe = router.get(MERCHANT_URL).mock(return_value=httpx.Response(429, headers={"Retry-After": "5"}))
        create = router.post(CHECKOUT_URL).mock(return_value=httpx.Response(200, json=SESSION_BODY))

        response = await api.post("/api/checkout", json={"amount": 100})

        assert response.status_code == 429
        assert response.json() == {
            "error": "Payment processing failed",
            "details": RATE_LIMIT_DETAILS,
            "retryAfter": 5,
        }
        assert probe.call_count == 4
        assert create.call_count == 0

    @pytest.mark.asyncio
    async def test_rate_limit_without_hint(self, router, api):
        router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))
        router.post(CHECKOUT_URL).mock(return_value=httpx.Response(429))

        response = await api.post("/api/checkout", json={"amount": 100})

        assert response.status_code == 429
        assert response.json()["retryAfter"] is None

    @pytest.mark.asyncio
    async def test_rate_limit_recovers(self, router, api):
        router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))
        router.post(CHECKOUT_URL).mock(side_effect=[
            httpx.Response(429, headers={"Retry-After": "1"}),
            httpx.Response(200, json=SESSION_BODY),
        ])

        response = await api.post("/api/checkout", json={"amount": 100})

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_client_error_passes_status_through(self, router, api):
        router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))
        create = router.post(CHECKOUT_URL).mock(return_value=httpx.Response(404, json={"message": "Not Found"}))

        response = await api.post("/api/checkout", json={"amount": 100})

        assert response.status_code == 404
        assert response.json()["error"] == "Payment processing failed"
        assert "404" in response.json()["details"]
        assert create.call_count == 1

    @pytest.mark.asyncio
    async def test_server_error_exhaustion(self, router, api):
        router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))
        create = router.post(CHECKOUT_URL).mock(return_value=httpx.Response(503))

        response = await api.post("/api/checkout", json={"amount": 100})

        assert response.status_code == 503
        assert create.call_count == 4

    @pytest.mark.asyncio
    async def test_network_error_is_500(self, router, api):
        router.get(MERCHANT_URL).mock(side_effect=httpx.ConnectError("Connection reset"))

        response = await api.post("/api/checkout", json={"amount": 100})

        assert response.status_code == 500
        assert response.json()["error"] == "Payment processing failed"

    @pytest.mark.asyncio
    async def test_missing_checkout_url_is_500(self, router, api):
        router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))
        router.post(CHECKOUT_URL).mock(return_value=httpx.Response(200, json={"checkoutSessionId": "x"}))

        response = await api.post("/api/checkout", json={"amount": 100})

        assert response.status_code == 500
        assert response.json()["error"] == "Payment processing failed"

    @pytest.mark.asyncio
    async def test_invalid_json_from_gateway_is_500(self, router, api):
        router.get(MERCHANT_URL).mock(return_value=httpx.Response(200, json={}))
        router.post(CHECKOUT_URL).mock(return_value=httpx.Response(200, text="<html>"))

        response = await api.post("/api/checkout", json={"amount": 100})

        assert response.status_code == 500
        assert "Invalid JSON" in response.json()["details"]

    @pytest.mark.asyncio
    async def test_redirect_status_passes_through(self, router, api):
        router.get(MERCHANT_URL).mock(return_value=httpx.Response(302, headers={"Location": "/login"}))

        response = await api.post("/api/checkout", json={"amount": 100})

        assert response.status_code == 302
        assert response.json()["error"] == "Payment processing failed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [
        {"Retry-After": "9" * 400},
        {"Retry-After": "9" * 5000},
        {"X-RateLimit-Reset": "1e400"},
        {"X-RateLimit-Reset": "inf"},
        {"X-RateLimit-Reset": "nan"},
    ])
    async def test_oversized_rate_limit_headers_still_return_429(self, router, api, headers):
        probe = router.get(MERCHANT_URL).mock(return_value=httpx.Response(429, headers=headers))

        response = await api.post("/api/checkout", json={"amount": 100})

        assert response.status_code == 429
        assert response.json() == {
            "error": "Payment processing failed",
            "details": RATE_LIMIT_DETAILS,
            "retryAfter": None,
        }
        assert probe.call_count == 4

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_500(self, settings):
        gateway = MagicMock()
        gateway.probe_merchant = AsyncMock(side_effect=RuntimeError("boom"))

        response = await api_client(build_app(settings, gateway)).post("/api/checkout", json={"amount": 100})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "details": "boom"}


class TestMethods:

    @pytest.mark.asyncio
    async def test_options_preflight(self, api):
        response = await api.options("/api/checkout")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_cors_preflight(self, api):
        response = await api.options(
            "/api/checkout",
            headers={
                "Origin": "https://shop.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
    async def test_other_methods_not_allowed(self, api, method):
        response = await api.request(method, "/api/checkout")

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}
