"""Helpers for enforcing subscription access on API and service layers."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..subscriptions import (
    AccountRecord,
    can_access_dealer_features,
    can_access_organizer_features,
)
from .exceptions import FeatureGateError

SUBSCRIPTION_REQUIRED = "subscription_required"


def _detail(account: Optional[AccountRecord], required: str) -> dict:
    detail = {"required_account_type": required}
    if account is not None:
        detail["account_type"] = account.account_type.value
        detail["subscription_status"] = account.subscription_status.value
    return detail


def require_dealer_access(
    account: Optional[AccountRecord],
    *,
    now: Optional[datetime] = None,
    message: Optional[str] = None,
) -> None:
    """Ensure the account may use dealer features before proceeding.

    Parameters
    ----------
    account:
        The caller's account, or ``None`` when it could not be loaded.
    now:
        Evaluation instant; defaults to the current UTC time.
    message:
        Optional human-friendly message explaining the failure.
    """

    if not can_access_dealer_features(account, now):
        raise FeatureGateError(
            code=SUBSCRIPTION_REQUIRED,
            message=message or "An active MVP Dealer or Show Organizer subscription is required.",
            detail=_detail(account, "dealer"),
        )


def require_organizer_access(
    account: Optional[AccountRecord],
    *,
    now: Optional[datetime] = None,
    message: Optional[str] = None,
) -> None:
    if not can_access_organizer_features(account, now):
        raise FeatureGateError(
            code=SUBSCRIPTION_REQUIRED,
            message=message or "An active Show Organizer subscription is required.",
            detail=_detail(account, "organizer"),
        )


__all__ = ["SUBSCRIPTION_REQUIRED", "require_dealer_access", "require_organizer_access"]
