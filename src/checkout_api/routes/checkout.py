"""Checkout API routes."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..config import Settings, get_settings
from ..coupons import apply_coupon
from ..dependencies import get_gateway
from ..errors import CheckoutValidationError, ConfigurationError, failure_response
from ..gateway import CloverGateway, GatewayCredentials
from ..models import CheckoutRequest, CheckoutResponse, ErrorResponse
from ..session_builder import build_checkout_payload

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_AMOUNT = "Invalid amount provided"
INVALID_BODY = "Invalid request body"


def _error(status_code: int, body: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body)


def _require_credentials(settings: Settings) -> GatewayCredentials:
    if not settings.has_credentials:
        raise ConfigurationError("Missing Clover credentials")
    return GatewayCredentials(
        auth_token=settings.CLOVER_AUTH_TOKEN,
        merchant_id=settings.CLOVER_MERCHANT_ID,
    )


async def _parse_body(request: Request) -> CheckoutRequest:
    try:
        payload = await request.json()
    except ValueError:
        raise CheckoutValidationError(INVALID_BODY, "Body must be a JSON object")
    if not isinstance(payload, dict):
        raise CheckoutValidationError(INVALID_BODY, "Body must be a JSON object")

    try:
        body = CheckoutRequest.model_validate(payload)
    except ValidationError as exc:
        if any(err["loc"][:1] == ("amount",) for err in exc.errors()):
            raise CheckoutValidationError(INVALID_AMOUNT)
        raise CheckoutValidationError(INVALID_BODY, [err["msg"] for err in exc.errors()])

    if not body.has_valid_amount:
        raise CheckoutValidationError(INVALID_AMOUNT)
    return body


@router.options("")
async def checkout_preflight() -> Response:
    """Answer CORS pre-flight requests."""
    return Response(status_code=200)


@router.api_route("", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def checkout_method_not_allowed() -> JSONResponse:
    return _error(405, {"error": "Method not allowed"})


@router.post(
    "",
    response_model=CheckoutResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def create_checkout(
    request: Request,
    settings: Settings = Depends(get_settings),
    gateway: CloverGateway = Depends(get_gateway),
):
    """
    Price an order and open a hosted checkout session.

    Flow: credentials check, body validation, coupon pricing, optional
    merchant probe, session creation. Every path ends in a JSON response.

    Returns:
        CheckoutResponse with the redirect URL, or a structured error body.
    """
    try:
        credentials = _require_credentials(settings)
    except ConfigurationError as exc:
        logger.error(f"Checkout rejected: {exc.details}")
        return _error(500, {"error": "Server configuration error", "details": exc.details})

    try:
        body = await _parse_body(request)
    except CheckoutValidationError as exc:
        content: dict[str, Any] = {"error": exc.error}
        if exc.details is not None:
            content["details"] = exc.details
        return _error(400, content)

    try:
        order = apply_coupon(body.amount, body.coupon)
        if body.coupon and order.coupon is None:
            logger.info(f"Coupon {body.coupon!r} not recognized, charging full amount")

        if settings.CHECKOUT_PROBE_ENABLED:
            probe = await gateway.probe_merchant(credentials)
            if not probe.ok:
                return _error(*failure_response(probe.failure))

        customer = body.customerData.model_dump() if body.customerData else {}
        payload = build_checkout_payload(
            amount=order.final_amount,
            original_amount=order.original_amount,
            discount_amount=order.discount_amount,
            coupon=order.coupon,
            customer=customer,
        )

        outcome = await gateway.create_checkout_session(credentials, payload)
        if not outcome.ok:
            return _error(*failure_response(outcome.failure))

        session = outcome.value
        return CheckoutResponse(
            checkoutUrl=session.checkout_url,
            originalAmount=order.original_amount,
            discountAmount=order.discount_amount,
            finalAmount=order.final_amount,
            couponApplied=order.coupon.code if order.coupon else None,
            sessionId=session.session_id,
        )
    except Exception as exc:
        logger.exception("Checkout processing error")
        return _error(500, {"error": "Internal server error", "details": str(exc)})
