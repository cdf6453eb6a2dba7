"""Value objects exchanged with the payment backend and the payment sheet gateway."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors.models import ErrorRecord


class PaymentResult(BaseModel):
    """Outcome of a payment attempt as returned to callers."""

    success: bool
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    error: Optional[str] = None
    error_record: Optional[ErrorRecord] = Field(default=None, exclude=True)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PaymentIntentResponse(BaseModel):
    """Success body of the intent-creation endpoint."""

    payment_intent: str = Field(alias="paymentIntent")
    ephemeral_key: str = Field(alias="ephemeralKey")
    customer: str
    publishable_key: Optional[str] = Field(default=None, alias="publishableKey")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PaymentSheetConfig(BaseModel):
    """Arguments handed to the gateway's init capability."""

    merchant_display_name: str = Field(alias="merchantDisplayName")
    customer_id: str = Field(alias="customerId")
    customer_ephemeral_key_secret: str = Field(alias="customerEphemeralKeySecret")
    payment_intent_client_secret: str = Field(alias="paymentIntentClientSecret")
    allows_delayed_payment_methods: bool = Field(default=True, alias="allowsDelayedPaymentMethods")
    return_url: Optional[str] = Field(default=None, alias="returnURL")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def as_gateway_params(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class GatewayError(BaseModel):
    code: Optional[str] = None
    message: str = ""

    model_config = ConfigDict(frozen=True)


class GatewayResult(BaseModel):
    """Result of a gateway capability; ``error`` is ``None`` on success."""

    error: Optional[GatewayError] = None

    model_config = ConfigDict(frozen=True)

    @property
    def ok(self) -> bool:
        return self.error is None


class AuthSession(BaseModel):
    access_token: str
    user_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class CouponRedemption(BaseModel):
    """Response of the coupon redemption function; unknown keys are ignored."""

    grant_free_month: bool = False
    message: Optional[str] = None
    organizer_id: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


__all__ = [
    "AuthSession",
    "CouponRedemption",
    "GatewayError",
    "GatewayResult",
    "PaymentIntentResponse",
    "PaymentResult",
    "PaymentSheetConfig",
]
