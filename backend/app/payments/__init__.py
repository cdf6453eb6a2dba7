"""Payment intent orchestration and gateway adapters."""

from .gateway import CallbackPaymentGateway, PaymentGateway, to_gateway_result
from .intents import (
    CREATE_PAYMENT_INTENT_PATH,
    AuthSessionProvider,
    PaymentIntentClient,
    PaymentIntentError,
)
from .models import (
    AuthSession,
    CouponRedemption,
    GatewayError,
    GatewayResult,
    PaymentIntentResponse,
    PaymentResult,
    PaymentSheetConfig,
)
from .orchestrator import (
    COUPON_FAILURE_MESSAGE,
    GATEWAY_CANCELED_CODE,
    PAYMENT_CANCELED_MESSAGE,
    PLAN_NOT_FOUND_MESSAGE,
    SESSION_NOT_FOUND_MESSAGE,
    CouponRedeemer,
    PaymentIntentOrchestrator,
)

__all__ = [
    "AuthSession",
    "AuthSessionProvider",
    "COUPON_FAILURE_MESSAGE",
    "CREATE_PAYMENT_INTENT_PATH",
    "CallbackPaymentGateway",
    "CouponRedeemer",
    "CouponRedemption",
    "GATEWAY_CANCELED_CODE",
    "GatewayError",
    "GatewayResult",
    "PAYMENT_CANCELED_MESSAGE",
    "PLAN_NOT_FOUND_MESSAGE",
    "PaymentGateway",
    "PaymentIntentClient",
    "PaymentIntentError",
    "PaymentIntentOrchestrator",
    "PaymentIntentResponse",
    "PaymentResult",
    "PaymentSheetConfig",
    "SESSION_NOT_FOUND_MESSAGE",
    "to_gateway_result",
]
