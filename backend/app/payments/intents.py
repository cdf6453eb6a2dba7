"""Client for the backend's payment-intent creation function."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import ValidationError

from .models import AuthSession, PaymentIntentResponse

logger = logging.getLogger(__name__)

CREATE_PAYMENT_INTENT_PATH = "/functions/v1/create-payment-intent"


class PaymentIntentError(RuntimeError):
    """Raised when a payment intent could not be created."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def code(self) -> Optional[str]:
        return str(self.status_code) if self.status_code is not None else None


class AuthSessionProvider(Protocol):
    """Returns the caller's current auth session, or ``None`` when signed out."""

    async def get_session(self) -> Optional[AuthSession]:
        ...


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, str) and error:
            return error
    return f"Failed to create payment intent (HTTP {response.status_code})."


class PaymentIntentClient:
    """Creates payment intents through the backend function endpoint.

    Requests are sent without a client-side timeout; a stalled backend leaves
    the call pending until the transport itself gives up.
    """

    def __init__(self, base_url: str, *, client: Optional[httpx.AsyncClient] = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}{CREATE_PAYMENT_INTENT_PATH}"

    async def create_payment_intent(
        self,
        access_token: str,
        user_id: str,
        plan_id: str,
        *,
        coupon_code: Optional[str] = None,
    ) -> PaymentIntentResponse:
        body: Dict[str, Any] = {"userId": user_id, "planId": plan_id}
        if coupon_code:
            body["couponCode"] = coupon_code
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        logger.info("Creating payment intent user=%s plan=%s", user_id, plan_id)
        try:
            if self._client is not None:
                response = await self._client.post(self.endpoint, headers=headers, json=body)
            else:
                async with httpx.AsyncClient(timeout=None) as client:
                    response = await client.post(self.endpoint, headers=headers, json=body)
        except httpx.RequestError as exc:
            raise PaymentIntentError(str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            message = _error_message(response)
            logger.warning("Payment intent request failed status=%s: %s", response.status_code, message)
            raise PaymentIntentError(message, status_code=response.status_code)

        try:
            return PaymentIntentResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PaymentIntentError(str(exc)) from exc


__all__ = [
    "AuthSessionProvider",
    "CREATE_PAYMENT_INTENT_PATH",
    "PaymentIntentClient",
    "PaymentIntentError",
]
