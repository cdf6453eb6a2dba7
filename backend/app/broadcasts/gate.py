"""Authorize a broadcast send: sender privilege first, then quota."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..feature_gates import FeatureGateError, require_dealer_access, require_organizer_access
from ..subscriptions import AccountRecord
from .quota import BroadcastPhase, BroadcastQuotaManager, QuotaDecision

LOGGER = logging.getLogger("broadcasts.gate")


class BroadcastGate:
    """Checks who may broadcast for a show and consumes their allowance.

    Pre-show broadcasts need an active dealer or organizer subscription;
    post-show broadcasts are limited to organizers. Privilege failures raise
    :class:`FeatureGateError`; an exhausted quota is returned as a denied
    :class:`QuotaDecision`.
    """

    def __init__(self, quotas: BroadcastQuotaManager) -> None:
        self._quotas = quotas

    async def authorize(
        self,
        account: Optional[AccountRecord],
        show_id: str,
        phase: BroadcastPhase,
        now: Optional[datetime] = None,
    ) -> QuotaDecision:
        if phase == BroadcastPhase.POST_SHOW:
            require_organizer_access(
                account,
                now=now,
                message="Post-show broadcasts are limited to Show Organizers.",
            )
        else:
            require_dealer_access(account, now=now)

        if account is None or not account.user_id:
            raise FeatureGateError(code="sender_unknown", message="Broadcast sender could not be identified.")

        decision = await self._quotas.check_and_consume(account.user_id, show_id, phase)
        if not decision.allowed:
            LOGGER.info(
                "Broadcast quota exhausted",
                extra={"sender_id": account.user_id, "show_id": show_id, "phase": phase.value},
            )
        return decision


__all__ = ["BroadcastGate"]
