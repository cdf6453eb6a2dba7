"""PostgreSQL adapters for accounts, the payment ledger and referral RPCs."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import asyncpg

from ..config import DatabaseConfig
from .models import (
    AccountRecord,
    AccountType,
    PaymentLedgerEntry,
    PaymentStatus,
    SubscriptionStatus,
    SubscriptionUpdate,
    UserRole,
)

LOGGER = logging.getLogger("subscriptions.repository")

_ROLE_ACCOUNT_TYPES = {
    UserRole.MVP_DEALER.value: AccountType.DEALER,
    UserRole.DEALER.value: AccountType.DEALER,
    UserRole.SHOW_ORGANIZER.value: AccountType.ORGANIZER,
}

SELECT_ACCOUNT_SQL = """
    SELECT id, role, account_type, subscription_status, payment_status, subscription_expiry
    FROM profiles
    WHERE id = $1
"""

APPLY_SUBSCRIPTION_SQL = """
    UPDATE profiles
    SET role = $2,
        account_type = $3,
        subscription_status = $4,
        payment_status = $5,
        subscription_expiry = $6,
        updated_at = $7
    WHERE id = $1
"""

UPDATE_STATUS_SQL = """
    UPDATE profiles
    SET subscription_status = $2,
        payment_status = COALESCE($3, payment_status),
        updated_at = $4
    WHERE id = $1
"""

INSERT_PAYMENT_SQL = """
    INSERT INTO payments (
        user_id,
        plan_id,
        amount,
        currency,
        status,
        transaction_id,
        error_message,
        created_at
    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
"""

REDEEM_COUPON_SQL = """
    SELECT public.redeem_coupon_for_subscription($1::uuid, $2, $3, $4, FALSE) AS result
"""

AWARD_REFERRAL_SQL = """
    SELECT public.award_referral_on_payment($1::uuid, $2, $3)
"""


async def create_pool(config: DatabaseConfig) -> asyncpg.Pool:
    return await asyncpg.create_pool(
        min_size=1,
        max_size=5,
        command_timeout=10,
        timeout=config.connect_timeout,
        **config.connect_kwargs(),
    )


def _rows_affected(status: str) -> int:
    # asyncpg returns the command tag, e.g. "UPDATE 1".
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


def _row_to_account(row: Mapping[str, Any]) -> AccountRecord:
    account_type = _ROLE_ACCOUNT_TYPES.get(row.get("role") or "")
    if account_type is None:
        try:
            account_type = AccountType(row.get("account_type") or AccountType.COLLECTOR.value)
        except ValueError:
            account_type = AccountType.COLLECTOR

    try:
        subscription_status = SubscriptionStatus(row.get("subscription_status") or "none")
    except ValueError:
        LOGGER.warning("Unknown subscription_status %r for user %s", row.get("subscription_status"), row["id"])
        subscription_status = SubscriptionStatus.NONE

    payment_status: Optional[PaymentStatus] = None
    if row.get("payment_status"):
        try:
            payment_status = PaymentStatus(row["payment_status"])
        except ValueError:
            payment_status = None

    return AccountRecord(
        user_id=str(row["id"]),
        account_type=account_type,
        subscription_status=subscription_status,
        subscription_expiry=row.get("subscription_expiry"),
        payment_status=payment_status,
    )


class PostgresAccountRepository:
    """Reads and writes subscription columns on the ``profiles`` table."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get_account(self, user_id: str) -> Optional[AccountRecord]:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(SELECT_ACCOUNT_SQL, user_id)
        if row is None:
            return None
        return _row_to_account(dict(row))

    async def apply_subscription(self, user_id: str, update: SubscriptionUpdate) -> bool:
        async with self._pool.acquire() as connection:
            status = await connection.execute(
                APPLY_SUBSCRIPTION_SQL,
                user_id,
                update.role.value,
                update.account_type.value,
                update.subscription_status.value,
                update.payment_status.value,
                update.subscription_expiry,
                datetime.now(timezone.utc),
            )
        return _rows_affected(status) > 0

    async def update_status(
        self,
        user_id: str,
        *,
        subscription_status: SubscriptionStatus,
        payment_status: Optional[PaymentStatus] = None,
    ) -> bool:
        async with self._pool.acquire() as connection:
            status = await connection.execute(
                UPDATE_STATUS_SQL,
                user_id,
                subscription_status.value,
                payment_status.value if payment_status is not None else None,
                datetime.now(timezone.utc),
            )
        return _rows_affected(status) > 0


class PostgresPaymentLedger:
    """Append-only writer for the ``payments`` table."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def append(self, entry: PaymentLedgerEntry) -> PaymentLedgerEntry:
        async with self._pool.acquire() as connection:
            await connection.execute(
                INSERT_PAYMENT_SQL,
                entry.user_id,
                entry.plan_id,
                entry.amount,
                entry.currency,
                entry.status.value,
                entry.transaction_id,
                entry.error_message,
                entry.created_at,
            )
        return entry


class PostgresCouponRedeemer:
    """Calls the ``redeem_coupon_for_subscription`` database function."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def redeem(self, user_id: str, code: str, plan_type: str, duration: str) -> Mapping[str, Any]:
        async with self._pool.acquire() as connection:
            result = await connection.fetchval(REDEEM_COUPON_SQL, user_id, code, plan_type, duration)
        if result is None:
            return {}
        # jsonb arrives as text unless a codec is registered on the pool.
        if isinstance(result, str):
            return json.loads(result)
        return dict(result)


class PostgresReferralRewarder:
    """Calls the ``award_referral_on_payment`` database function."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def award_referral(self, user_id: str, payment_id: str, paid_at: datetime) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(AWARD_REFERRAL_SQL, user_id, payment_id, paid_at)


__all__ = [
    "PostgresAccountRepository",
    "PostgresCouponRedeemer",
    "PostgresPaymentLedger",
    "PostgresReferralRewarder",
    "create_pool",
]
