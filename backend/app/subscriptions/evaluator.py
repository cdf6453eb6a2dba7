"""Pure functions deriving subscription state from an account record.

Every function takes the evaluation instant explicitly (``now``), defaulting to
the current UTC time. Stored expiry values are interpreted as absolute instants:
naive timestamps are read as UTC and aware ones are converted to UTC, so results
do not depend on the host timezone or DST rules.

The ``is_active`` / ``is_expired`` pair is intentionally asymmetric at the exact
boundary: when the expiry equals ``now`` the subscription is both not active and
expired.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from .catalog import find_plan_for
from .models import (
    AccountRecord,
    AccountType,
    BillingInterval,
    PaymentStatus,
    SubscriptionDetails,
    SubscriptionStatus,
    TimeRemaining,
)

LEGACY_TRIAL_DAYS = 7

_ONE_MS = timedelta(milliseconds=1)
_MS_PER_HOUR = 60 * 60 * 1000
_MS_PER_DAY = 24 * _MS_PER_HOUR


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _resolve_now(now: Optional[datetime]) -> datetime:
    return _as_utc(now) if now is not None else _utc_now()


def parse_expiry(value: Any) -> Optional[datetime]:
    """Parse a stored expiry into a UTC instant, or ``None`` when unusable."""

    if value is None:
        return None
    try:
        if isinstance(value, datetime):
            return _as_utc(value)
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            if text[-1] in "Zz":
                text = text[:-1] + "+00:00"
            return _as_utc(datetime.fromisoformat(text))
    except (ValueError, OverflowError):
        return None
    return None


def _subscribes(account: AccountRecord) -> bool:
    return account.account_type != AccountType.COLLECTOR


def is_active(account: AccountRecord, now: Optional[datetime] = None) -> bool:
    """Return ``True`` when the status is active and the expiry is strictly in the future."""

    if not _subscribes(account):
        return False
    if account.subscription_status != SubscriptionStatus.ACTIVE:
        return False
    expiry = parse_expiry(account.subscription_expiry)
    if expiry is None:
        return False
    return expiry > _resolve_now(now)


def is_expired(account: AccountRecord, now: Optional[datetime] = None) -> bool:
    """Return ``True`` for an expired status or a parsable expiry at or before ``now``."""

    if not _subscribes(account):
        return False
    if account.subscription_status == SubscriptionStatus.EXPIRED:
        return True
    expiry = parse_expiry(account.subscription_expiry)
    if expiry is None:
        return False
    return expiry <= _resolve_now(now)


def remaining_time(account: AccountRecord, now: Optional[datetime] = None) -> Optional[TimeRemaining]:
    """Return whole days and hours until expiry for an active subscription."""

    current = _resolve_now(now)
    if not is_active(account, current):
        return None
    expiry = parse_expiry(account.subscription_expiry)
    if expiry is None:
        return None

    diff_ms = (expiry - current) // _ONE_MS
    if diff_ms <= 0:
        return TimeRemaining(days=0, hours=0)
    return TimeRemaining(
        days=diff_ms // _MS_PER_DAY,
        hours=(diff_ms % _MS_PER_DAY) // _MS_PER_HOUR,
    )


def _has_payment_status(account: AccountRecord) -> bool:
    return account.payment_status not in (None, PaymentStatus.NONE)


def _is_legacy_trial(account: AccountRecord, now: datetime) -> bool:
    # Records written before payment_status existed: infer a trial from a short
    # remaining period.
    remaining = remaining_time(account, now)
    return remaining is not None and remaining.days < LEGACY_TRIAL_DAYS


def is_trial(account: AccountRecord, now: Optional[datetime] = None) -> bool:
    """Return whether the active subscription is a trial.

    An explicit ``payment_status`` always wins; the remaining-time heuristic only
    applies to records without one.
    """

    current = _resolve_now(now)
    if not is_active(account, current):
        return False
    if account.payment_status == PaymentStatus.TRIAL:
        return True
    if _has_payment_status(account):
        return False
    return _is_legacy_trial(account, current)


def is_paid(account: AccountRecord, now: Optional[datetime] = None) -> bool:
    """Return whether the account paid for its subscription.

    Legacy records without payment information count as paid when active and not
    inferred to be a trial.
    """

    if account.payment_status == PaymentStatus.PAID:
        return True
    if _has_payment_status(account):
        return False
    current = _resolve_now(now)
    return is_active(account, current) and not _is_legacy_trial(account, current)


def subscription_details(account: AccountRecord, now: Optional[datetime] = None) -> SubscriptionDetails:
    """Aggregate the derived subscription state for ``account``."""

    current = _resolve_now(now)
    plan = None
    if _subscribes(account):
        duration = account.subscription_duration or BillingInterval.ANNUAL
        plan = find_plan_for(account.account_type, duration)

    return SubscriptionDetails(
        account_type=account.account_type,
        status=account.subscription_status,
        expiry=parse_expiry(account.subscription_expiry),
        is_active=is_active(account, current),
        time_remaining=remaining_time(account, current),
        plan=plan,
        is_paid=is_paid(account, current),
        is_trial_period=is_trial(account, current),
    )


def can_access_dealer_features(account: Optional[AccountRecord], now: Optional[datetime] = None) -> bool:
    """Dealers and organizers (who carry dealer privileges) with an active subscription."""

    if account is None:
        return False
    if account.account_type not in (AccountType.DEALER, AccountType.ORGANIZER):
        return False
    return is_active(account, now)


def can_access_organizer_features(account: Optional[AccountRecord], now: Optional[datetime] = None) -> bool:
    if account is None:
        return False
    return account.account_type == AccountType.ORGANIZER and is_active(account, now)


def format_expiry_date(value: Any) -> str:
    """Format an expiry for display, e.g. ``"July 15, 2025"``."""

    expiry = parse_expiry(value)
    if expiry is None:
        return "No expiration date"
    return f"{expiry:%B} {expiry.day}, {expiry.year}"


__all__ = [
    "LEGACY_TRIAL_DAYS",
    "can_access_dealer_features",
    "can_access_organizer_features",
    "format_expiry_date",
    "is_active",
    "is_expired",
    "is_paid",
    "is_trial",
    "parse_expiry",
    "remaining_time",
    "subscription_details",
]
