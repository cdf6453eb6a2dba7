"""Apply payment outcomes to account state and the payment ledger."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Protocol

from ..errors import ErrorLogger, ErrorSeverity, classify, classify_database_error
from .evaluator import parse_expiry
from .models import (
    AccountRecord,
    AccountType,
    BillingInterval,
    CancellationResult,
    LedgerStatus,
    PaymentLedgerEntry,
    PaymentStatus,
    PlanType,
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionUpdate,
)

logger = logging.getLogger("subscriptions.reconciler")

POST_PAYMENT_FAILURE_MESSAGE = "Post-payment profile update failed."
POST_PROMO_FAILURE_MESSAGE = "Post-promo profile update failed."
CANCEL_FAILURE_MESSAGE = "Failed to cancel subscription"


class AccountRepository(Protocol):
    """Persistence operations on the account table."""

    async def get_account(self, user_id: str) -> Optional[AccountRecord]:
        ...

    async def apply_subscription(self, user_id: str, update: SubscriptionUpdate) -> bool:
        """Write ``update`` to the account; return ``False`` when no row matched."""

    async def update_status(
        self,
        user_id: str,
        *,
        subscription_status: SubscriptionStatus,
        payment_status: Optional[PaymentStatus] = None,
    ) -> bool:
        """Update status columns; ``payment_status=None`` leaves that column untouched."""


class PaymentLedger(Protocol):
    """Append-only payment ledger."""

    async def append(self, entry: PaymentLedgerEntry) -> PaymentLedgerEntry:
        ...


class ReferralRewarder(Protocol):
    """Credits the referring organizer when a referred dealer pays."""

    async def award_referral(self, user_id: str, payment_id: str, paid_at: datetime) -> None:
        ...


class AccountUpdateError(RuntimeError):
    """Raised when an account write matched no row."""


class SubscriptionReconciler:
    """Reconciles completed payments against the account row and the ledger.

    Every grant writes exactly one ledger row, ``succeeded`` or ``failed``,
    whatever happens to the account update. None of the public coroutines raise;
    failures are classified and sent to the error logger.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        ledger: PaymentLedger,
        error_logger: ErrorLogger,
        *,
        referral_rewarder: Optional[ReferralRewarder] = None,
        currency: str = "usd",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._accounts = accounts
        self._ledger = ledger
        self._errors = error_logger
        self._referral_rewarder = referral_rewarder
        self._currency = currency
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def reconcile(self, user_id: str, plan: SubscriptionPlan, transaction_id: str) -> None:
        """Grant a paid subscription period for ``plan``."""

        granted = await self._grant(
            user_id,
            plan,
            transaction_id,
            payment_status=PaymentStatus.PAID,
            amount=plan.price,
            failure_message=POST_PAYMENT_FAILURE_MESSAGE,
        )
        if granted and plan.type == PlanType.DEALER and plan.duration == BillingInterval.MONTHLY:
            await self._award_referral(user_id, transaction_id)

    async def renew(self, user_id: str, plan: SubscriptionPlan, transaction_id: str) -> None:
        """Renewal follows the purchase path against the existing account."""

        await self.reconcile(user_id, plan, transaction_id)

    async def apply_free_month(self, user_id: str, plan: SubscriptionPlan, transaction_id: str) -> None:
        """Grant a promotional period marked as a trial and log a zero-amount payment."""

        await self._grant(
            user_id,
            plan,
            transaction_id,
            payment_status=PaymentStatus.TRIAL,
            amount=Decimal("0"),
            failure_message=POST_PROMO_FAILURE_MESSAGE,
        )

    async def record_failed_attempt(
        self,
        user_id: str,
        plan: SubscriptionPlan,
        transaction_id: str,
        error_message: str,
    ) -> None:
        """Log a payment attempt that failed before reaching reconciliation."""

        await self._record(
            user_id,
            plan,
            transaction_id,
            status=LedgerStatus.FAILED,
            amount=plan.price,
            error_message=error_message,
        )

    async def cancel(self, user_id: str) -> CancellationResult:
        """Expire the subscription; a trial entitlement is forfeited, paid history kept."""

        context = {"user_id": user_id, "operation": "cancel"}
        try:
            account = await self._accounts.get_account(user_id)
            if account is None:
                raise LookupError("Account not found")
            payment_status = account.payment_status
            if payment_status == PaymentStatus.TRIAL:
                payment_status = PaymentStatus.NONE
            updated = await self._accounts.update_status(
                user_id,
                subscription_status=SubscriptionStatus.EXPIRED,
                payment_status=payment_status,
            )
            if not updated:
                raise AccountUpdateError("Account not found")
        except Exception as exc:
            record = classify_database_error(exc, context)
            await self._errors.log_error(record)
            return CancellationResult(
                success=False,
                error=record.message or CANCEL_FAILURE_MESSAGE,
                error_record=record,
            )

        logger.info("Subscription canceled user=%s", user_id)
        return CancellationResult(success=True)

    async def refresh_status(self, user_id: str, now: Optional[datetime] = None) -> bool:
        """Mark a lapsed active subscription as expired; return whether a write happened."""

        current = now or self._clock()
        context = {"user_id": user_id, "operation": "refresh_status"}
        try:
            account = await self._accounts.get_account(user_id)
        except Exception as exc:
            await self._errors.log_error(classify_database_error(exc, context))
            return False

        if account is None or account.account_type == AccountType.COLLECTOR:
            return False
        if account.subscription_status != SubscriptionStatus.ACTIVE:
            return False
        expiry = parse_expiry(account.subscription_expiry)
        if expiry is None or expiry > parse_expiry(current):
            return False

        try:
            updated = await self._accounts.update_status(
                user_id,
                subscription_status=SubscriptionStatus.EXPIRED,
            )
        except Exception as exc:
            await self._errors.log_error(classify_database_error(exc, context))
            return False
        if updated:
            logger.info("Subscription lapsed user=%s expiry=%s", user_id, expiry.isoformat())
        return updated

    async def _grant(
        self,
        user_id: str,
        plan: SubscriptionPlan,
        transaction_id: str,
        *,
        payment_status: PaymentStatus,
        amount: Decimal,
        failure_message: str,
    ) -> bool:
        update = SubscriptionUpdate.for_plan(plan, now=self._clock(), payment_status=payment_status)
        try:
            updated = await self._accounts.apply_subscription(user_id, update)
            if not updated:
                raise AccountUpdateError(f"No account found for user {user_id}")
        except Exception as exc:
            await self._errors.log_error(
                classify_database_error(exc, self._context(user_id, plan, transaction_id))
            )
            await self._record(
                user_id,
                plan,
                transaction_id,
                status=LedgerStatus.FAILED,
                amount=amount,
                error_message=failure_message,
            )
            return False

        await self._record(
            user_id,
            plan,
            transaction_id,
            status=LedgerStatus.SUCCEEDED,
            amount=amount,
        )
        logger.info(
            "Subscription granted user=%s plan=%s payment_status=%s expiry=%s",
            user_id,
            plan.id,
            payment_status.value,
            update.subscription_expiry.isoformat(),
        )
        return True

    async def _record(
        self,
        user_id: str,
        plan: SubscriptionPlan,
        transaction_id: str,
        *,
        status: LedgerStatus,
        amount: Decimal,
        error_message: Optional[str] = None,
    ) -> None:
        entry = PaymentLedgerEntry(
            user_id=user_id,
            plan_id=plan.id,
            amount=amount,
            currency=self._currency,
            status=status,
            transaction_id=transaction_id,
            error_message=error_message,
        )
        try:
            await self._ledger.append(entry)
        except Exception as exc:
            # The payment is now untraceable without manual reconciliation.
            await self._errors.log_error(
                classify_database_error(
                    exc,
                    {**self._context(user_id, plan, transaction_id), "ledger_status": status.value},
                    ErrorSeverity.CRITICAL,
                )
            )

    async def _award_referral(self, user_id: str, transaction_id: str) -> None:
        if self._referral_rewarder is None:
            return
        try:
            await self._referral_rewarder.award_referral(user_id, transaction_id, self._clock())
        except Exception as exc:
            await self._errors.log_error(
                classify(
                    exc,
                    {"user_id": user_id, "transaction_id": transaction_id, "operation": "award_referral"},
                    ErrorSeverity.WARNING,
                )
            )

    @staticmethod
    def _context(user_id: str, plan: SubscriptionPlan, transaction_id: str) -> Dict[str, Any]:
        return {"user_id": user_id, "plan_id": plan.id, "transaction_id": transaction_id}


__all__ = [
    "AccountRepository",
    "AccountUpdateError",
    "CANCEL_FAILURE_MESSAGE",
    "POST_PAYMENT_FAILURE_MESSAGE",
    "POST_PROMO_FAILURE_MESSAGE",
    "PaymentLedger",
    "ReferralRewarder",
    "SubscriptionReconciler",
]
