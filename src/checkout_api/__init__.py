"""
Checkout service: coupon pricing and Clover hosted-checkout sessions.
"""
from .config import Settings, get_settings
from .coupons import COUPONS, Coupon, PricedOrder, apply_coupon, find_coupon
from .gateway import CheckoutSession, CloverGateway, GatewayCredentials
from .session_builder import build_checkout_payload


__all__ = [
    "Settings",
    "get_settings",
    "COUPONS",
    "Coupon",
    "PricedOrder",
    "apply_coupon",
    "find_coupon",
    "CheckoutSession",
    "CloverGateway",
    "GatewayCredentials",
    "build_checkout_payload",
]


__version__ = "1.0.0"
