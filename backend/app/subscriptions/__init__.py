"""Subscription state, plan catalog and payment reconciliation."""

from .catalog import (
    PLAN_CATALOG,
    SUBSCRIPTION_PLANS,
    find_plan,
    find_plan_for,
    get_available_plans,
    get_plan_definition,
)
from .evaluator import (
    LEGACY_TRIAL_DAYS,
    can_access_dealer_features,
    can_access_organizer_features,
    format_expiry_date,
    is_active,
    is_expired,
    is_paid,
    is_trial,
    parse_expiry,
    remaining_time,
    subscription_details,
)
from .models import (
    AccountRecord,
    AccountType,
    BillingInterval,
    CancellationResult,
    LedgerStatus,
    PaymentLedgerEntry,
    PaymentStatus,
    PlanType,
    SubscriptionDetails,
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionUpdate,
    TimeRemaining,
    UserRole,
)
from .reconciler import (
    POST_PAYMENT_FAILURE_MESSAGE,
    POST_PROMO_FAILURE_MESSAGE,
    AccountRepository,
    AccountUpdateError,
    PaymentLedger,
    ReferralRewarder,
    SubscriptionReconciler,
)

__all__ = [
    "AccountRecord",
    "AccountRepository",
    "AccountType",
    "AccountUpdateError",
    "BillingInterval",
    "CancellationResult",
    "LEGACY_TRIAL_DAYS",
    "LedgerStatus",
    "PLAN_CATALOG",
    "POST_PAYMENT_FAILURE_MESSAGE",
    "POST_PROMO_FAILURE_MESSAGE",
    "PaymentLedger",
    "PaymentLedgerEntry",
    "PaymentStatus",
    "PlanType",
    "ReferralRewarder",
    "SUBSCRIPTION_PLANS",
    "SubscriptionDetails",
    "SubscriptionPlan",
    "SubscriptionReconciler",
    "SubscriptionStatus",
    "SubscriptionUpdate",
    "TimeRemaining",
    "UserRole",
    "can_access_dealer_features",
    "can_access_organizer_features",
    "find_plan",
    "find_plan_for",
    "format_expiry_date",
    "get_available_plans",
    "get_plan_definition",
    "is_active",
    "is_expired",
    "is_paid",
    "is_trial",
    "parse_expiry",
    "remaining_time",
    "subscription_details",
]
