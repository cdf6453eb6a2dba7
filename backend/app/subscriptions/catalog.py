"""Static catalog of purchasable subscription plans."""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Union

from .models import AccountType, BillingInterval, PlanType, SubscriptionPlan

_DEALER_FEATURES = (
    "Preview inventory for upcoming shows you attend",
    "Interact with collectors planning to attend those shows",
    "View want lists of collectors within a 25-mile radius",
    "Share external links (website, eBay, WhatNot, etc.)",
    "Dealer badge on profile",
)

_ORGANIZER_FEATURES = (
    "All MVP Dealer features",
    "Claim ownership of recurring shows",
    "Message dealers & collectors before/after shows",
    "Edit upcoming show times, dates & details",
    "Respond to collector reviews",
    "Promote your events",
    "Access attendee data",
)

SUBSCRIPTION_PLANS: Tuple[SubscriptionPlan, ...] = (
    SubscriptionPlan(
        id="mvp-dealer-monthly",
        type=PlanType.DEALER,
        name="MVP Dealer Monthly",
        description="Preview inventory, interact with collectors & more (monthly)",
        duration=BillingInterval.MONTHLY,
        price=Decimal("29"),
        features=_DEALER_FEATURES,
        trial_days=7,
    ),
    SubscriptionPlan(
        id="mvp-dealer-annual",
        type=PlanType.DEALER,
        name="MVP Dealer Annual",
        description="Save 25% with annual billing",
        duration=BillingInterval.ANNUAL,
        # 29 x 12 x 0.75
        price=Decimal("261"),
        features=_DEALER_FEATURES + ("Featured dealer status",),
        trial_days=7,
        is_popular=True,
    ),
    SubscriptionPlan(
        id="show-organizer-monthly",
        type=PlanType.ORGANIZER,
        name="Show Organizer Monthly",
        description="Organize shows & engage dealers/collectors (monthly)",
        duration=BillingInterval.MONTHLY,
        price=Decimal("49"),
        features=_ORGANIZER_FEATURES,
        trial_days=7,
    ),
    SubscriptionPlan(
        id="show-organizer-annual",
        type=PlanType.ORGANIZER,
        name="Show Organizer Annual",
        description="Save 25% with annual billing",
        duration=BillingInterval.ANNUAL,
        # 49 x 12 x 0.75
        price=Decimal("441"),
        features=_ORGANIZER_FEATURES + ("Featured show placement",),
        trial_days=7,
        is_popular=True,
    ),
)

PLAN_CATALOG: Dict[str, SubscriptionPlan] = {plan.id: plan for plan in SUBSCRIPTION_PLANS}


def find_plan(plan_id: str) -> Optional[SubscriptionPlan]:
    """Return the plan with ``plan_id`` or ``None`` when it is not in the catalog."""

    return PLAN_CATALOG.get(plan_id)


def get_plan_definition(plan_id: str) -> SubscriptionPlan:
    """Return a plan definition, raising if unsupported."""

    try:
        return PLAN_CATALOG[plan_id]
    except KeyError as exc:
        raise KeyError(f"Unknown plan id: {plan_id}") from exc


def find_plan_for(
    plan_type: Union[PlanType, AccountType],
    duration: BillingInterval,
) -> Optional[SubscriptionPlan]:
    """Return the catalog plan matching a type and billing interval."""

    for plan in SUBSCRIPTION_PLANS:
        if plan.type.value == plan_type.value and plan.duration == duration:
            return plan
    return None


def get_available_plans(account_type: Union[PlanType, AccountType]) -> List[SubscriptionPlan]:
    """Return every plan that grants ``account_type``."""

    return [plan for plan in SUBSCRIPTION_PLANS if plan.type.value == account_type.value]


__all__ = [
    "PLAN_CATALOG",
    "SUBSCRIPTION_PLANS",
    "find_plan",
    "find_plan_for",
    "get_available_plans",
    "get_plan_definition",
]
