"""Drive a single payment attempt from plan lookup to reconciliation."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from ..errors import (
    ErrorCategory,
    ErrorLogger,
    ErrorRecord,
    classify,
    classify_auth_error,
    classify_database_error,
    classify_network_error,
    create_validation_error,
)
from ..subscriptions import SubscriptionPlan, SubscriptionReconciler, find_plan
from .gateway import PaymentGateway
from .intents import AuthSessionProvider, PaymentIntentClient, PaymentIntentError
from .models import CouponRedemption, PaymentIntentResponse, PaymentResult, PaymentSheetConfig

logger = logging.getLogger(__name__)

PLAN_NOT_FOUND_MESSAGE = "Subscription plan not found."
SESSION_NOT_FOUND_MESSAGE = "Authentication session not found."
PAYMENT_CANCELED_MESSAGE = "Payment was canceled."
COUPON_FAILURE_MESSAGE = "Failed to redeem promo code"
UNKNOWN_FAILURE_MESSAGE = "An unknown error occurred."

GATEWAY_CANCELED_CODE = "Canceled"


class CouponRedeemer(Protocol):
    async def redeem(self, user_id: str, code: str, plan_type: str, duration: str) -> Mapping[str, Any]:
        ...


class _AttemptFailed(Exception):
    """Ends an attempt early with an already-logged failure."""

    def __init__(self, message: str, record: Optional[ErrorRecord]) -> None:
        super().__init__(message)
        self.message = message
        self.record = record


class PaymentIntentOrchestrator:
    """Runs the payment flow: session, intent, payment sheet init and present.

    Expected failures come back as ``PaymentResult(success=False)``; unexpected
    exceptions from collaborators are classified, logged and converted the same
    way. Steps run strictly in order and nothing here imposes a timeout.
    """

    def __init__(
        self,
        sessions: AuthSessionProvider,
        intents: PaymentIntentClient,
        reconciler: SubscriptionReconciler,
        error_logger: ErrorLogger,
        *,
        merchant_display_name: str = "Card Show Finder",
        return_url: Optional[str] = None,
        coupon_redeemer: Optional[CouponRedeemer] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._sessions = sessions
        self._intents = intents
        self._reconciler = reconciler
        self._errors = error_logger
        self._merchant_display_name = merchant_display_name
        self._return_url = return_url
        self._coupons = coupon_redeemer
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def create_payment_sheet(
        self,
        user_id: str,
        plan_id: str,
        gateway: PaymentGateway,
        *,
        coupon_code: Optional[str] = None,
    ) -> PaymentResult:
        plan = find_plan(plan_id)
        if plan is None:
            record = create_validation_error(PLAN_NOT_FOUND_MESSAGE, {"user_id": user_id, "plan_id": plan_id})
            return PaymentResult(success=False, error=PLAN_NOT_FOUND_MESSAGE, error_record=record)

        context = {"user_id": user_id, "plan_id": plan.id}
        try:
            return await self._run(user_id, plan, gateway, coupon_code, context)
        except _AttemptFailed as failure:
            return PaymentResult(success=False, error=failure.message, error_record=failure.record)
        except Exception as exc:
            record = classify(exc, {**context, "operation": "create_payment_sheet"})
            await self._errors.log_error(record)
            return PaymentResult(
                success=False,
                error=str(exc) or UNKNOWN_FAILURE_MESSAGE,
                error_record=record,
            )

    async def _run(
        self,
        user_id: str,
        plan: SubscriptionPlan,
        gateway: PaymentGateway,
        coupon_code: Optional[str],
        context: Dict[str, Any],
    ) -> PaymentResult:
        code = coupon_code.strip() if coupon_code else ""
        if code and self._coupons is not None:
            redemption = await self._redeem_coupon(user_id, plan, code, context)
            if redemption.grant_free_month:
                transaction_id = f"free_{int(self._clock().timestamp() * 1000)}"
                await self._reconciler.apply_free_month(user_id, plan, transaction_id)
                logger.info("Free month granted user=%s plan=%s", user_id, plan.id)
                return PaymentResult(success=True, transaction_id=transaction_id)

        access_token = await self._access_token(context)
        intent = await self._create_intent(access_token, user_id, plan, code or None, context)
        transaction_id = intent.payment_intent

        sheet = PaymentSheetConfig(
            merchant_display_name=self._merchant_display_name,
            customer_id=intent.customer,
            customer_ephemeral_key_secret=intent.ephemeral_key,
            payment_intent_client_secret=intent.payment_intent,
            return_url=self._return_url,
        )
        init_result = await gateway.init_payment_sheet(sheet)
        if init_result.error is not None:
            detail = init_result.error.message
            record = await self._fail_gateway_step(
                f"Initialization failed: {detail}",
                code=init_result.error.code,
                context={**context, "operation": "init_payment_sheet"},
            )
            await self._reconciler.record_failed_attempt(user_id, plan, transaction_id, f"Init Error: {detail}")
            raise _AttemptFailed(record.message, record)

        present_result = await gateway.present_payment_sheet()
        if present_result.error is not None:
            if present_result.error.code == GATEWAY_CANCELED_CODE:
                logger.info("Payment sheet dismissed user=%s plan=%s", user_id, plan.id)
                return PaymentResult(success=False, error=PAYMENT_CANCELED_MESSAGE)
            detail = present_result.error.message
            record = await self._fail_gateway_step(
                f"Payment failed: {detail}",
                code=present_result.error.code,
                context={**context, "operation": "present_payment_sheet"},
            )
            await self._reconciler.record_failed_attempt(user_id, plan, transaction_id, f"Present Error: {detail}")
            raise _AttemptFailed(record.message, record)

        await self._reconciler.reconcile(user_id, plan, transaction_id)
        return PaymentResult(success=True, transaction_id=transaction_id)

    async def _redeem_coupon(
        self,
        user_id: str,
        plan: SubscriptionPlan,
        code: str,
        context: Dict[str, Any],
    ) -> CouponRedemption:
        try:
            raw = await self._coupons.redeem(user_id, code, plan.type.value, plan.duration.value)
        except Exception as exc:
            record = classify_database_error(exc, {**context, "operation": "redeem_coupon"})
            await self._errors.log_error(record)
            raise _AttemptFailed(str(exc) or COUPON_FAILURE_MESSAGE, record) from exc
        return CouponRedemption.model_validate(raw or {})

    async def _access_token(self, context: Dict[str, Any]) -> str:
        operation = {**context, "operation": "get_session"}
        try:
            session = await self._sessions.get_session()
        except Exception as exc:
            record = classify_auth_error(exc, operation)
            await self._errors.log_error(record)
            raise _AttemptFailed(record.message, record) from exc

        if session is None or not session.access_token:
            record = classify_auth_error(None, operation).model_copy(
                update={"message": SESSION_NOT_FOUND_MESSAGE}
            )
            await self._errors.log_error(record)
            raise _AttemptFailed(SESSION_NOT_FOUND_MESSAGE, record)
        return session.access_token

    async def _create_intent(
        self,
        access_token: str,
        user_id: str,
        plan: SubscriptionPlan,
        coupon_code: Optional[str],
        context: Dict[str, Any],
    ) -> PaymentIntentResponse:
        try:
            return await self._intents.create_payment_intent(
                access_token,
                user_id,
                plan.id,
                coupon_code=coupon_code,
            )
        except PaymentIntentError as exc:
            record = classify_network_error(exc, {**context, "operation": "create_payment_intent"})
            await self._errors.log_error(record)
            raise _AttemptFailed(exc.message, record) from exc

    async def _fail_gateway_step(
        self,
        message: str,
        *,
        code: Optional[str],
        context: Dict[str, Any],
    ) -> ErrorRecord:
        record = ErrorRecord(
            message=message,
            category=ErrorCategory.UNKNOWN,
            code=code,
            context=context,
        )
        await self._errors.log_error(record)
        return record


__all__ = [
    "COUPON_FAILURE_MESSAGE",
    "CouponRedeemer",
    "GATEWAY_CANCELED_CODE",
    "PAYMENT_CANCELED_MESSAGE",
    "PLAN_NOT_FOUND_MESSAGE",
    "PaymentIntentOrchestrator",
    "SESSION_NOT_FOUND_MESSAGE",
    "UNKNOWN_FAILURE_MESSAGE",
]
