"""API routes exposing subscription state and lifecycle actions."""
from __future__ import annotations

import os
from typing import Any, Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Query, status

from ... import app_context
from ..errors import classify_database_error, get_user_friendly_message
from ..schemas.subscriptions import (
    CancellationResponse,
    PlanListResponse,
    PlanResponse,
    RefreshResponse,
    SubscriptionDetailsResponse,
)
from ..subscriptions import PlanType, get_available_plans, subscription_details

_SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")


def get_current_user(
    session_token: Optional[str] = Cookie(None, alias=_SESSION_COOKIE_NAME),
) -> Any:
    return app_context.get_current_user(session_token=session_token)


def get_services() -> Any:
    return app_context.get_services()


router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


@router.get("/plans", response_model=PlanListResponse)
def list_plans(account_type: PlanType = Query(alias="accountType")) -> PlanListResponse:
    return PlanListResponse(plans=[PlanResponse.from_plan(plan) for plan in get_available_plans(account_type)])


@router.get("/me", response_model=SubscriptionDetailsResponse)
async def read_subscription(
    *,
    current_user=Depends(get_current_user),
    services=Depends(get_services),
) -> SubscriptionDetailsResponse:
    user_id = str(current_user.id)
    try:
        account = await services.accounts.get_account(user_id)
    except Exception as exc:
        record = classify_database_error(exc, {"user_id": user_id, "operation": "read_subscription"})
        await services.error_logger.log_error(record)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=get_user_friendly_message(record),
        ) from exc

    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return SubscriptionDetailsResponse.from_details(subscription_details(account))


@router.post("/cancel", response_model=CancellationResponse)
async def cancel_subscription(
    *,
    current_user=Depends(get_current_user),
    services=Depends(get_services),
) -> CancellationResponse:
    result = await services.reconciler.cancel(str(current_user.id))
    if not result.success:
        detail = get_user_friendly_message(result.error_record) if result.error_record else result.error
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    return CancellationResponse(success=True)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_subscription(
    *,
    current_user=Depends(get_current_user),
    services=Depends(get_services),
) -> RefreshResponse:
    updated = await services.reconciler.refresh_status(str(current_user.id))
    return RefreshResponse(updated=updated)


__all__ = ["get_current_user", "get_services", "router"]
