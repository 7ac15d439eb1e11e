"""Builds the hosted-checkout payload sent to the gateway."""

from typing import Any, Optional

from .coupons import Coupon, Number, normalize_number, round_half_up

DEFAULT_EMAIL = "customer@example.com"
DEFAULT_FIRST_NAME = "Customer"
DEFAULT_LAST_NAME = "User"


def format_amount(value: Number) -> str:
    return str(normalize_number(value))


def split_name(name: Optional[str]) -> tuple[str, str]:
    """Split on the first space; either half falls back to a placeholder."""
    parts = (name or "").split(" ")
    first = parts[0] or DEFAULT_FIRST_NAME
    last = " ".join(parts[1:]) or DEFAULT_LAST_NAME
    return first, last


def build_checkout_payload(
    amount: Number,
    original_amount: Number,
    discount_amount: Number,
    coupon: Optional[Coupon] = None,
    customer: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """
    Build the checkout-session request body.

    Args:
        amount: Amount to charge, after discount
        original_amount: Amount before discount
        discount_amount: Discount applied
        coupon: Applied coupon, if any
        customer: Optional mapping with "email" and "name"

    Returns:
        JSON-serializable payload with one line item priced in cents
    """
    customer = customer or {}
    first_name, last_name = split_name(customer.get("name"))

    if coupon is not None:
        name = f"Order ({coupon.code} applied - ${format_amount(discount_amount)} off)"
        note = f"Original: ${format_amount(original_amount)}, Discount: ${format_amount(discount_amount)}"
    else:
        name = "Order"
        note = "Online order"

    return {
        "customer": {
            "email": customer.get("email") or DEFAULT_EMAIL,
            "firstName": first_name,
            "lastName": last_name,
        },
        "shoppingCart": {
            "lineItems": [
                {
                    "name": name,
                    "price": round_half_up(amount * 100),
                    "unitQty": 1,
                    "note": note,
                }
            ]
        },
    }
