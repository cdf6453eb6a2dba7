"""API schemas for subscription endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..subscriptions import (
    AccountType,
    BillingInterval,
    PlanType,
    SubscriptionDetails,
    SubscriptionPlan,
    SubscriptionStatus,
    format_expiry_date,
)


class PlanResponse(BaseModel):
    id: str
    type: PlanType
    name: str
    description: str
    duration: BillingInterval
    price: float
    features: List[str]
    trial_days: int = Field(alias="trialDays")
    is_popular: bool = Field(alias="isPopular")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_plan(cls, plan: SubscriptionPlan) -> "PlanResponse":
        return cls(
            id=plan.id,
            type=plan.type,
            name=plan.name,
            description=plan.description,
            duration=plan.duration,
            price=float(plan.price),
            features=list(plan.features),
            trial_days=plan.trial_days,
            is_popular=plan.is_popular,
        )


class PlanListResponse(BaseModel):
    plans: List[PlanResponse]


class TimeRemainingResponse(BaseModel):
    days: int
    hours: int


class SubscriptionDetailsResponse(BaseModel):
    account_type: AccountType = Field(alias="accountType")
    status: SubscriptionStatus
    expiry: Optional[datetime] = None
    expiry_display: str = Field(alias="expiryDisplay")
    is_active: bool = Field(alias="isActive")
    time_remaining: Optional[TimeRemainingResponse] = Field(default=None, alias="timeRemaining")
    plan: Optional[PlanResponse] = None
    is_paid: bool = Field(alias="isPaid")
    is_trial_period: bool = Field(alias="isTrialPeriod")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_details(cls, details: SubscriptionDetails) -> "SubscriptionDetailsResponse":
        remaining = details.time_remaining
        return cls(
            account_type=details.account_type,
            status=details.status,
            expiry=details.expiry,
            expiry_display=format_expiry_date(details.expiry),
            is_active=details.is_active,
            time_remaining=(
                TimeRemainingResponse(days=remaining.days, hours=remaining.hours) if remaining else None
            ),
            plan=PlanResponse.from_plan(details.plan) if details.plan else None,
            is_paid=details.is_paid,
            is_trial_period=details.is_trial_period,
        )


class CancellationResponse(BaseModel):
    success: bool


class RefreshResponse(BaseModel):
    updated: bool


__all__ = [
    "CancellationResponse",
    "PlanListResponse",
    "PlanResponse",
    "RefreshResponse",
    "SubscriptionDetailsResponse",
    "TimeRemainingResponse",
]
