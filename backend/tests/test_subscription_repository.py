from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional

import pytest

from backend.app.subscriptions import (
    AccountType,
    LedgerStatus,
    PaymentLedgerEntry,
    PaymentStatus,
    SubscriptionStatus,
    SubscriptionUpdate,
    get_plan_definition,
)
from backend.app.subscriptions.repository import (
    PostgresAccountRepository,
    PostgresCouponRedeemer,
    PostgresPaymentLedger,
    PostgresReferralRewarder,
)


class FakeConnection:
    def __init__(self, *, row: Optional[dict] = None, status: str = "UPDATE 1", value: Any = None) -> None:
        self.row = row
        self.status = status
        self.value = value
        self.calls: List[tuple] = []

    async def fetchrow(self, sql: str, *args: Any):
        self.calls.append((sql, args))
        return self.row

    async def fetchval(self, sql: str, *args: Any):
        self.calls.append((sql, args))
        return self.value

    async def execute(self, sql: str, *args: Any) -> str:
        self.calls.append((sql, args))
        return self.status


class _Acquire:
    def __init__(self, connection: FakeConnection) -> None:
        self._connection = connection

    async def __aenter__(self) -> FakeConnection:
        return self._connection

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


class FakePool:
    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection

    def acquire(self) -> _Acquire:
        return _Acquire(self.connection)


@pytest.mark.asyncio
async def test_get_account_derives_type_from_role() -> None:
    row = {
        "id": "user-1",
        "role": "MVP_DEALER",
        "account_type": None,
        "subscription_status": "active",
        "payment_status": "trial",
        "subscription_expiry": datetime(2025, 8, 1, tzinfo=timezone.utc),
    }
    repository = PostgresAccountRepository(FakePool(FakeConnection(row=row)))

    account = await repository.get_account("user-1")

    assert account.account_type == AccountType.DEALER
    assert account.subscription_status == SubscriptionStatus.ACTIVE
    assert account.payment_status == PaymentStatus.TRIAL


@pytest.mark.asyncio
async def test_get_account_tolerates_unknown_values() -> None:
    row = {
        "id": "user-2",
        "role": "ATTENDEE",
        "account_type": "wizard",
        "subscription_status": "paused",
        "payment_status": "comped",
        "subscription_expiry": "not a date",
    }
    repository = PostgresAccountRepository(FakePool(FakeConnection(row=row)))

    account = await repository.get_account("user-2")

    assert account.account_type == AccountType.COLLECTOR
    assert account.subscription_status == SubscriptionStatus.NONE
    assert account.payment_status is None
    assert account.subscription_expiry == "not a date"


@pytest.mark.asyncio
async def test_get_account_missing_row() -> None:
    repository = PostgresAccountRepository(FakePool(FakeConnection(row=None)))

    assert await repository.get_account("ghost") is None


@pytest.mark.asyncio
async def test_apply_subscription_reports_matched_rows() -> None:
    update = SubscriptionUpdate.for_plan(
        get_plan_definition("show-organizer-monthly"),
        now=datetime(2025, 7, 15, tzinfo=timezone.utc),
    )
    matched = FakeConnection(status="UPDATE 1")
    unmatched = FakeConnection(status="UPDATE 0")

    assert await PostgresAccountRepository(FakePool(matched)).apply_subscription("user-1", update) is True
    assert await PostgresAccountRepository(FakePool(unmatched)).apply_subscription("user-1", update) is False

    _, args = matched.calls[0]
    assert args[:6] == ("user-1", "SHOW_ORGANIZER", "organizer", "active", "paid", update.subscription_expiry)


@pytest.mark.asyncio
async def test_update_status_leaves_payment_status_when_omitted() -> None:
    connection = FakeConnection()
    repository = PostgresAccountRepository(FakePool(connection))

    await repository.update_status("user-1", subscription_status=SubscriptionStatus.EXPIRED)

    _, args = connection.calls[0]
    assert args[1:3] == ("expired", None)


@pytest.mark.asyncio
async def test_ledger_append_writes_every_column() -> None:
    connection = FakeConnection(status="INSERT 0 1")
    entry = PaymentLedgerEntry(
        user_id="user-1",
        plan_id="mvp-dealer-monthly",
        amount=Decimal("29"),
        currency="USD",
        status=LedgerStatus.FAILED,
        transaction_id="pi_1",
        error_message="Present Error: declined",
    )

    await PostgresPaymentLedger(FakePool(connection)).append(entry)

    _, args = connection.calls[0]
    assert args[:7] == ("user-1", "mvp-dealer-monthly", Decimal("29"), "usd", "failed", "pi_1", "Present Error: declined")


@pytest.mark.asyncio
async def test_coupon_redeemer_decodes_json_text() -> None:
    connection = FakeConnection(value='{"grant_free_month": true, "organizer_id": "org-1"}')

    result = await PostgresCouponRedeemer(FakePool(connection)).redeem("user-1", "CODE", "dealer", "monthly")

    assert result == {"grant_free_month": True, "organizer_id": "org-1"}
    _, args = connection.calls[0]
    assert args == ("user-1", "CODE", "dealer", "monthly")


@pytest.mark.asyncio
async def test_referral_rewarder_passes_payment_details() -> None:
    connection = FakeConnection(status="SELECT 1")
    paid_at = datetime(2025, 7, 15, tzinfo=timezone.utc)

    await PostgresReferralRewarder(FakePool(connection)).award_referral("user-1", "pi_9", paid_at)

    _, args = connection.calls[0]
    assert args == ("user-1", "pi_9", paid_at)
