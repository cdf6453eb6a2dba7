"""Application wiring for the subscription engine."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..broadcasts import BroadcastGate, BroadcastQuotaManager, InMemoryBroadcastQuotaManager
from ..config import EngineConfig, load_engine_config
from ..errors import (
    ErrorLogger,
    FileKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStore,
    RemoteErrorSink,
)
from ..payments import AuthSessionProvider, CouponRedeemer, PaymentIntentClient, PaymentIntentOrchestrator
from ..subscriptions import (
    AccountRepository,
    PaymentLedger,
    ReferralRewarder,
    SubscriptionReconciler,
)
from ..subscriptions.repository import (
    PostgresAccountRepository,
    PostgresCouponRedeemer,
    PostgresPaymentLedger,
    PostgresReferralRewarder,
    create_pool,
)

logger = logging.getLogger("subscriptions")


@dataclass(frozen=True)
class SubscriptionServices:
    """Everything the HTTP layer and background jobs need, built once at startup."""

    config: EngineConfig
    error_logger: ErrorLogger
    accounts: AccountRepository
    reconciler: SubscriptionReconciler
    orchestrator: PaymentIntentOrchestrator
    broadcast_gate: BroadcastGate


class LoggingRemoteErrorSink:
    """Remote sink stand-in that forwards records to the application logger."""

    async def send(self, record) -> None:
        logger.info(
            "Remote error report category=%s severity=%s code=%s",
            record.category.value,
            record.severity.value,
            record.code,
        )


def _error_store(config: EngineConfig) -> KeyValueStore:
    if config.error_log_dir:
        return FileKeyValueStore(config.error_log_dir)
    return InMemoryKeyValueStore()


def build_services(
    config: EngineConfig,
    *,
    accounts: AccountRepository,
    ledger: PaymentLedger,
    sessions: AuthSessionProvider,
    coupon_redeemer: Optional[CouponRedeemer] = None,
    referral_rewarder: Optional[ReferralRewarder] = None,
    quotas: Optional[BroadcastQuotaManager] = None,
    error_store: Optional[KeyValueStore] = None,
    remote_sink: Optional[RemoteErrorSink] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> SubscriptionServices:
    error_logger = ErrorLogger(
        config.logger,
        store=error_store if error_store is not None else _error_store(config),
        remote_sink=remote_sink or LoggingRemoteErrorSink(),
    )
    reconciler = SubscriptionReconciler(
        accounts,
        ledger,
        error_logger,
        referral_rewarder=referral_rewarder,
        currency=config.currency,
    )
    orchestrator = PaymentIntentOrchestrator(
        sessions,
        PaymentIntentClient(config.backend_url, client=http_client),
        reconciler,
        error_logger,
        merchant_display_name=config.merchant_display_name,
        return_url=config.return_url,
        coupon_redeemer=coupon_redeemer,
    )
    return SubscriptionServices(
        config=config,
        error_logger=error_logger,
        accounts=accounts,
        reconciler=reconciler,
        orchestrator=orchestrator,
        broadcast_gate=BroadcastGate(quotas or InMemoryBroadcastQuotaManager()),
    )


async def create_postgres_services(
    sessions: AuthSessionProvider,
    config: Optional[EngineConfig] = None,
) -> SubscriptionServices:
    """Build the service bundle backed by a PostgreSQL pool."""

    config = config or load_engine_config()
    pool = await create_pool(config.database)
    logger.info("Subscription services connected to %s:%s", config.database.host, config.database.port)
    return build_services(
        config,
        accounts=PostgresAccountRepository(pool),
        ledger=PostgresPaymentLedger(pool),
        sessions=sessions,
        coupon_redeemer=PostgresCouponRedeemer(pool),
        referral_rewarder=PostgresReferralRewarder(pool),
    )


__all__ = [
    "LoggingRemoteErrorSink",
    "SubscriptionServices",
    "build_services",
    "create_postgres_services",
]
