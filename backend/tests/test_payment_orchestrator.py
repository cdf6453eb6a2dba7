from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from backend.app.errors import ErrorCategory, ErrorLogger, get_user_friendly_message
from backend.app.payments import (
    AuthSession,
    CallbackPaymentGateway,
    GatewayError,
    PaymentIntentClient,
    PaymentIntentOrchestrator,
)
from backend.app.subscriptions import (
    AccountRecord,
    LedgerStatus,
    PaymentStatus,
    SubscriptionReconciler,
    SubscriptionStatus,
)
from backend.tests.fakes import FIXED_NOW, FakeAccountRepository, FakeGateway, FakePaymentLedger, FakeSessions

BACKEND_URL = "https://backend.example.test"

INTENT_BODY = {
    "paymentIntent": "pi_123_secret",
    "ephemeralKey": "ek_test",
    "customer": "cus_42",
    "publishableKey": "pk_test",
}

_open_clients: List[httpx.AsyncClient] = []


@pytest_asyncio.fixture(autouse=True)
async def close_clients():
    yield
    while _open_clients:
        await _open_clients.pop().aclose()


class FakeCouponRedeemer:
    def __init__(self, response: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None) -> None:
        self.response = response or {}
        self.error = error
        self.calls: List[tuple] = []

    async def redeem(self, user_id: str, code: str, plan_type: str, duration: str) -> Dict[str, Any]:
        self.calls.append((user_id, code, plan_type, duration))
        if self.error is not None:
            raise self.error
        return self.response


class Harness:
    def __init__(
        self,
        handler: Callable[[httpx.Request], httpx.Response],
        error_logger: ErrorLogger,
        ledger: FakePaymentLedger,
        *,
        sessions: Optional[FakeSessions] = None,
        coupons: Optional[FakeCouponRedeemer] = None,
        accounts: Optional[FakeAccountRepository] = None,
    ) -> None:
        self.requests: List[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        self.accounts = accounts or FakeAccountRepository({"user-1": AccountRecord(user_id="user-1")})
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
        _open_clients.append(self.client)
        reconciler = SubscriptionReconciler(self.accounts, ledger, error_logger, clock=lambda: FIXED_NOW)
        self.orchestrator = PaymentIntentOrchestrator(
            sessions or FakeSessions(AuthSession(access_token="token-abc")),
            PaymentIntentClient(BACKEND_URL, client=self.client),
            reconciler,
            error_logger,
            merchant_display_name="Card Show Finder",
            return_url="cardshowfinder://stripe-redirect",
            coupon_redeemer=coupons,
            clock=lambda: FIXED_NOW,
        )


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=INTENT_BODY)


@pytest.mark.asyncio
async def test_unknown_plan_fails_without_network_calls(error_logger, ledger) -> None:
    harness = Harness(_ok, error_logger, ledger)
    gateway = FakeGateway()

    result = await harness.orchestrator.create_payment_sheet("user-1", "platinum-forever", gateway)

    assert result.success is False
    assert result.error == "Subscription plan not found."
    assert harness.requests == []
    assert gateway.init_calls == []
    assert ledger.entries == []


@pytest.mark.asyncio
async def test_successful_payment_reconciles_subscription(error_logger, ledger) -> None:
    harness = Harness(_ok, error_logger, ledger)
    gateway = FakeGateway()

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-monthly", gateway)

    assert result.success is True
    assert result.transaction_id == "pi_123_secret"

    [request] = harness.requests
    assert str(request.url) == f"{BACKEND_URL}/functions/v1/create-payment-intent"
    assert request.headers["Authorization"] == "Bearer token-abc"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == {"userId": "user-1", "planId": "mvp-dealer-monthly"}

    [config] = gateway.init_calls
    assert config.customer_id == "cus_42"
    assert config.customer_ephemeral_key_secret == "ek_test"
    assert config.payment_intent_client_secret == "pi_123_secret"
    assert gateway.present_calls == 1

    [entry] = ledger.entries
    assert entry.status == LedgerStatus.SUCCEEDED
    account = harness.accounts.accounts["user-1"]
    assert account.subscription_status == SubscriptionStatus.ACTIVE
    assert account.payment_status == PaymentStatus.PAID


@pytest.mark.asyncio
async def test_user_cancellation_is_not_logged(error_logger, ledger) -> None:
    harness = Harness(_ok, error_logger, ledger)
    gateway = FakeGateway(present_error=GatewayError(code="Canceled", message="The payment flow has been canceled"))

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-annual", gateway)

    assert result.success is False
    assert result.error == "Payment was canceled."
    assert ledger.entries == []
    assert await error_logger.get_stored_errors() == []


@pytest.mark.asyncio
async def test_cancel_code_match_is_case_sensitive(error_logger, ledger) -> None:
    harness = Harness(_ok, error_logger, ledger)
    gateway = FakeGateway(present_error=GatewayError(code="canceled", message="Dismissed"))

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-annual", gateway)

    assert result.error == "Payment failed: Dismissed"


@pytest.mark.asyncio
async def test_present_failure_records_failed_attempt(error_logger, ledger) -> None:
    harness = Harness(_ok, error_logger, ledger)
    gateway = FakeGateway(present_error=GatewayError(code="Failed", message="Your card was declined."))

    result = await harness.orchestrator.create_payment_sheet("user-1", "show-organizer-monthly", gateway)

    assert result.success is False
    assert result.error == "Payment failed: Your card was declined."
    [entry] = ledger.entries
    assert entry.status == LedgerStatus.FAILED
    assert entry.transaction_id == "pi_123_secret"
    assert entry.error_message == "Present Error: Your card was declined."
    [record] = await error_logger.get_stored_errors()
    assert record.message == "Payment failed: Your card was declined."
    assert harness.accounts.applied == []


@pytest.mark.asyncio
async def test_init_failure_skips_presentation(error_logger, ledger) -> None:
    harness = Harness(_ok, error_logger, ledger)
    gateway = FakeGateway(init_error=GatewayError(code="Failed", message="Invalid ephemeral key"))

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-monthly", gateway)

    assert result.error == "Initialization failed: Invalid ephemeral key"
    assert gateway.present_calls == 0
    [entry] = ledger.entries
    assert entry.error_message == "Init Error: Invalid ephemeral key"


@pytest.mark.asyncio
async def test_missing_session_is_an_authentication_failure(error_logger, ledger) -> None:
    harness = Harness(_ok, error_logger, ledger, sessions=FakeSessions(None))

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-monthly", FakeGateway())

    assert result.error == "Authentication session not found."
    assert harness.requests == []
    [record] = await error_logger.get_stored_errors()
    assert record.category == ErrorCategory.AUTHENTICATION


@pytest.mark.asyncio
async def test_session_error_message_is_surfaced(error_logger, ledger) -> None:
    sessions = FakeSessions(error=RuntimeError("Refresh token expired"))
    harness = Harness(_ok, error_logger, ledger, sessions=sessions)

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-monthly", FakeGateway())

    assert result.error == "Refresh token expired"
    assert result.error_record.category == ErrorCategory.AUTHENTICATION


@pytest.mark.asyncio
async def test_transport_failure_uses_exception_message(error_logger, ledger) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    harness = Harness(refuse, error_logger, ledger)

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-monthly", FakeGateway())

    assert result.success is False
    assert result.error == "Connection refused"
    [record] = await error_logger.get_stored_errors()
    assert record.category == ErrorCategory.NETWORK
    assert ledger.entries == []


@pytest.mark.asyncio
async def test_error_status_prefers_body_error(error_logger, ledger) -> None:
    harness = Harness(lambda request: httpx.Response(400, json={"error": "Plan is not available"}), error_logger, ledger)

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-monthly", FakeGateway())

    assert result.error == "Plan is not available"
    assert result.error_record.code == "400"
    assert result.error_record.category == ErrorCategory.NETWORK


@pytest.mark.asyncio
async def test_rejected_token_is_still_a_network_failure(error_logger, ledger) -> None:
    harness = Harness(lambda request: httpx.Response(401, json={"error": "JWT expired"}), error_logger, ledger)

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-monthly", FakeGateway())

    assert result.error == "JWT expired"
    [record] = await error_logger.get_stored_errors()
    assert record.category == ErrorCategory.NETWORK
    assert record.code == "401"
    assert get_user_friendly_message(record) == "Invalid login credentials. Please check your email and password."


@pytest.mark.asyncio
async def test_error_status_without_body_uses_generic_message(error_logger, ledger) -> None:
    harness = Harness(lambda request: httpx.Response(502, text="Bad Gateway"), error_logger, ledger)

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-monthly", FakeGateway())

    assert result.error == "Failed to create payment intent (HTTP 502)."


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response", "fragment"),
    [
        (httpx.Response(200, json={"paymentIntent": "pi_1", "customer": "cus_1"}), "ephemeralKey"),
        (httpx.Response(200, content=b"null", headers={"Content-Type": "application/json"}), "PaymentIntentResponse"),
        (httpx.Response(200, text="<html>oops</html>"), "Expecting value"),
    ],
)
async def test_malformed_success_body_surfaces_parse_error(response, fragment, error_logger, ledger) -> None:
    gateway = FakeGateway()
    harness = Harness(lambda request: response, error_logger, ledger)

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-monthly", gateway)

    assert result.success is False
    assert fragment in result.error
    assert gateway.init_calls == []
    assert result.error_record.category == ErrorCategory.NETWORK
    assert result.error_record.code is None


@pytest.mark.asyncio
async def test_reconciliation_failure_does_not_change_success(error_logger, ledger) -> None:
    harness = Harness(_ok, error_logger, ledger, accounts=FakeAccountRepository())

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-monthly", FakeGateway())

    assert result.success is True
    [entry] = ledger.entries
    assert entry.status == LedgerStatus.FAILED
    assert entry.error_message == "Post-payment profile update failed."


@pytest.mark.asyncio
async def test_unexpected_gateway_exception_is_converted(error_logger, ledger) -> None:
    async def crash(config: dict) -> None:
        raise RuntimeError("sheet crashed")

    gateway = CallbackPaymentGateway(crash, lambda: None)
    harness = Harness(_ok, error_logger, ledger)

    result = await harness.orchestrator.create_payment_sheet("user-1", "mvp-dealer-monthly", gateway)

    assert result.success is False
    assert result.error == "sheet crashed"
    assert len(await error_logger.get_stored_errors()) == 1


@pytest.mark.asyncio
async def test_callback_gateway_normalizes_plain_results(error_logger, ledger) -> None:
    seen: List[dict] = []

    def init(params: dict) -> dict:
        seen.append(params)
        return {}

    async def present() -> dict:
        return {"error": {"code": "Canceled", "message": "closed"}}

    harness = Harness(_ok, error_logger, ledger)

    result = await harness.orchestrator.create_payment_sheet(
        "user-1", "mvp-dealer-monthly", CallbackPaymentGateway(init, present)
    )

    assert result.error == "Payment was canceled."
    assert seen[0]["merchantDisplayName"] == "Card Show Finder"
    assert seen[0]["returnURL"] == "cardshowfinder://stripe-redirect"
    assert seen[0]["allowsDelayedPaymentMethods"] is True


@pytest.mark.asyncio
async def test_pending_gateway_call_keeps_attempt_pending(error_logger, ledger) -> None:
    never = asyncio.Event()

    async def present() -> dict:
        await never.wait()
        return {}

    harness = Harness(_ok, error_logger, ledger)
    task = asyncio.create_task(
        harness.orchestrator.create_payment_sheet(
            "user-1", "mvp-dealer-monthly", CallbackPaymentGateway(lambda params: None, present)
        )
    )

    done, pending = await asyncio.wait({task}, timeout=0.05)

    assert task in pending
    assert ledger.entries == []
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_free_month_coupon_skips_gateway(error_logger, ledger) -> None:
    coupons = FakeCouponRedeemer({"grant_free_month": True, "organizer_id": "org-9"})
    harness = Harness(_ok, error_logger, ledger, coupons=coupons)
    gateway = FakeGateway()

    result = await harness.orchestrator.create_payment_sheet(
        "user-1", "mvp-dealer-monthly", gateway, coupon_code="  SHOW2025 "
    )

    assert result.success is True
    assert result.transaction_id == f"free_{int(FIXED_NOW.timestamp() * 1000)}"
    assert coupons.calls == [("user-1", "SHOW2025", "dealer", "monthly")]
    assert harness.requests == []
    assert gateway.init_calls == []
    [entry] = ledger.entries
    assert entry.amount == 0
    assert harness.accounts.accounts["user-1"].payment_status == PaymentStatus.TRIAL


@pytest.mark.asyncio
async def test_coupon_without_free_month_is_forwarded(error_logger, ledger) -> None:
    coupons = FakeCouponRedeemer({"grant_free_month": False, "message": "already_redeemed"})
    harness = Harness(_ok, error_logger, ledger, coupons=coupons)

    result = await harness.orchestrator.create_payment_sheet(
        "user-1", "mvp-dealer-annual", FakeGateway(), coupon_code="SHOW2025"
    )

    assert result.success is True
    assert json.loads(harness.requests[0].content)["couponCode"] == "SHOW2025"


@pytest.mark.asyncio
async def test_coupon_redemption_error_fails_attempt(error_logger, ledger) -> None:
    coupons = FakeCouponRedeemer(error=RuntimeError("Coupon has expired"))
    harness = Harness(_ok, error_logger, ledger, coupons=coupons)

    result = await harness.orchestrator.create_payment_sheet(
        "user-1", "mvp-dealer-monthly", FakeGateway(), coupon_code="OLD"
    )

    assert result.success is False
    assert result.error == "Coupon has expired"
    assert harness.requests == []
