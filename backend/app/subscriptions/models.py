"""Domain models for accounts, plans and the payment ledger."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors.models import ErrorRecord


class AccountType(str, Enum):
    """Account kinds; only dealers and organizers carry subscriptions."""

    COLLECTOR = "collector"
    DEALER = "dealer"
    ORGANIZER = "organizer"


class SubscriptionStatus(str, Enum):
    """Stored subscription state on the account row."""

    NONE = "none"
    ACTIVE = "active"
    EXPIRED = "expired"


class PaymentStatus(str, Enum):
    """How the current subscription period was paid for."""

    NONE = "none"
    TRIAL = "trial"
    PAID = "paid"


class PlanType(str, Enum):
    """Account type a plan grants."""

    DEALER = "dealer"
    ORGANIZER = "organizer"


class BillingInterval(str, Enum):
    """Supported billing frequencies."""

    MONTHLY = "monthly"
    ANNUAL = "annual"


class UserRole(str, Enum):
    """Values stored in the account table's ``role`` column."""

    ATTENDEE = "ATTENDEE"
    DEALER = "DEALER"
    MVP_DEALER = "MVP_DEALER"
    SHOW_ORGANIZER = "SHOW_ORGANIZER"


class LedgerStatus(str, Enum):
    """Outcome recorded for a payment attempt."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


_INTERVAL_LENGTHS = {
    BillingInterval.MONTHLY: timedelta(days=30),
    BillingInterval.ANNUAL: timedelta(days=365),
}

_PLAN_ROLES = {
    PlanType.DEALER: UserRole.MVP_DEALER,
    PlanType.ORGANIZER: UserRole.SHOW_ORGANIZER,
}


class AccountRecord(BaseModel):
    """Subscription-relevant columns of a user's account.

    ``subscription_expiry`` is kept as stored; it may be missing or malformed and
    is only interpreted by the state evaluator.
    """

    user_id: Optional[str] = None
    account_type: AccountType = AccountType.COLLECTOR
    subscription_status: SubscriptionStatus = SubscriptionStatus.NONE
    subscription_expiry: Optional[Union[str, datetime]] = None
    payment_status: Optional[PaymentStatus] = None
    subscription_duration: Optional[BillingInterval] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SubscriptionPlan(BaseModel):
    """Immutable catalog entry for a purchasable plan."""

    id: str
    type: PlanType
    name: str
    description: str = ""
    duration: BillingInterval
    price: Decimal = Field(ge=0)
    features: Tuple[str, ...] = ()
    trial_days: int = Field(default=0, ge=0)
    is_popular: bool = False

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def duration_interval(self) -> timedelta:
        return _INTERVAL_LENGTHS[self.duration]

    @property
    def role(self) -> UserRole:
        return _PLAN_ROLES[self.type]

    @property
    def account_type(self) -> AccountType:
        return AccountType(self.type.value)


class TimeRemaining(BaseModel):
    """Whole days and remaining whole hours until expiry."""

    days: int = Field(ge=0)
    hours: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class SubscriptionDetails(BaseModel):
    """Aggregated subscription view used by profile screens and gating."""

    account_type: AccountType
    status: SubscriptionStatus
    expiry: Optional[datetime] = None
    is_active: bool
    time_remaining: Optional[TimeRemaining] = None
    plan: Optional[SubscriptionPlan] = None
    is_paid: bool
    is_trial_period: bool

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SubscriptionUpdate(BaseModel):
    """Columns written to the account row when a subscription is granted."""

    role: UserRole
    account_type: AccountType
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    payment_status: PaymentStatus = PaymentStatus.PAID
    subscription_expiry: datetime

    model_config = ConfigDict(frozen=True)

    @classmethod
    def for_plan(
        cls,
        plan: SubscriptionPlan,
        *,
        now: datetime,
        payment_status: PaymentStatus = PaymentStatus.PAID,
    ) -> "SubscriptionUpdate":
        return cls(
            role=plan.role,
            account_type=plan.account_type,
            payment_status=payment_status,
            subscription_expiry=now + plan.duration_interval,
        )


class PaymentLedgerEntry(BaseModel):
    """Append-only record of a single payment attempt."""

    user_id: str
    plan_id: str
    amount: Decimal = Field(ge=0)
    currency: str = "usd"
    status: LedgerStatus
    transaction_id: str
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("currency")
    @classmethod
    def _lower_currency(cls, value: str) -> str:
        return value.lower()


class CancellationResult(BaseModel):
    """Outcome of a cancellation request."""

    success: bool
    error: Optional[str] = None
    error_record: Optional[ErrorRecord] = Field(default=None, exclude=True)

    model_config = ConfigDict(frozen=True)


__all__ = [
    "AccountRecord",
    "AccountType",
    "BillingInterval",
    "CancellationResult",
    "LedgerStatus",
    "PaymentLedgerEntry",
    "PaymentStatus",
    "PlanType",
    "SubscriptionDetails",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "SubscriptionUpdate",
    "TimeRemaining",
    "UserRole",
]
