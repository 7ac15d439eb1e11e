"""
Static coupon table and order pricing.
"""
import math
from dataclasses import dataclass
from typing import Optional, Union

Number = Union[int, float]


@dataclass(frozen=True)
class Coupon:
    code: str
    type: str
    value: Number
    active: bool = True


COUPONS: tuple[Coupon, ...] = (
    Coupon(code="SAVE10", type="percentage", value=10),
    Coupon(code="SAVE20", type="percentage", value=20),
    Coupon(code="SAVE50", type="percentage", value=50),
)


@dataclass(frozen=True)
class PricedOrder:
    """Amounts after coupon lookup"""

    original_amount: Number
    discount_amount: Number
    final_amount: Number
    coupon: Optional[Coupon] = None


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return math.floor(value + 0.5)


def normalize_number(value: Number) -> Number:
    """Collapse integral floats (100.0) to int so JSON and labels read naturally."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def find_coupon(code: Optional[str]) -> Optional[Coupon]:
    """Return the active coupon with this exact code, if any."""
    if not code:
        return None
    for coupon in COUPONS:
        if coupon.code == code and coupon.active:
            return coupon
    return None


def apply_coupon(amount: Number, code: Optional[str] = None) -> PricedOrder:
    """
    Price an order.

    Unknown or inactive codes leave the amount untouched.

    Args:
        amount: Positive order amount
        code: Optional coupon code (case-sensitive)

    Returns:
        PricedOrder with discount = round(amount * value / 100) and
        final = max(0, amount - discount)
    """
    coupon = find_coupon(code)
    discount: Number = 0
    if coupon is not None:
        discount = round_half_up(amount * coupon.value / 100)

    return PricedOrder(
        original_amount=normalize_number(amount),
        discount_amount=discount,
        final_amount=normalize_number(max(0, amount - discount)),
        coupon=coupon,
    )
