"""Request and response models for the checkout API."""

import math
from typing import Any, Optional, Union

from pydantic import BaseModel, field_validator


class CustomerData(BaseModel):
    """Optional customer details forwarded to the hosted checkout."""

    email: Optional[str] = None
    name: Optional[str] = None


class CheckoutRequest(BaseModel):
    """Checkout request body."""

    amount: Optional[Union[int, float]] = None
    coupon: Optional[str] = None
    customerData: Optional[CustomerData] = None

    @field_validator("amount", mode="before")
    @classmethod
    def reject_non_numeric(cls, value: Any) -> Any:
        if isinstance(value, bool) or isinstance(value, str):
            raise ValueError("amount must be a number")
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("amount must be finite")
        return value

    @property
    def has_valid_amount(self) -> bool:
        return self.amount is not None and self.amount > 0


class CheckoutResponse(BaseModel):
    """Successful checkout response."""

    checkoutUrl: str
    originalAmount: Union[int, float]
    discountAmount: Union[int, float]
    finalAmount: Union[int, float]
    couponApplied: Optional[str] = None
    sessionId: Optional[str] = None


class ErrorResponse(BaseModel):
    """Structured error body returned on every failure path."""

    error: str
    details: Optional[Any] = None
    retryAfter: Optional[int] = None
