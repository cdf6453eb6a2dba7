"""Broadcast quota contract consumed by broadcast senders."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Protocol, Tuple


class BroadcastPhase(str, Enum):
    PRE_SHOW = "pre_show"
    POST_SHOW = "post_show"


DEFAULT_ALLOWANCES: Mapping[BroadcastPhase, int] = {
    BroadcastPhase.PRE_SHOW: 2,
    BroadcastPhase.POST_SHOW: 1,
}


@dataclass(frozen=True)
class QuotaDecision:
    """Outcome of a quota check; a denial is a normal result, not an error."""

    allowed: bool
    remaining: int

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "remaining": self.remaining}


class BroadcastQuotaManager(Protocol):
    """Per (sender, show, phase) counters; resets are scheduled externally."""

    async def check_and_consume(
        self,
        sender_id: str,
        show_id: str,
        phase: BroadcastPhase,
    ) -> QuotaDecision:
        ...


class InMemoryBroadcastQuotaManager:
    """Process-local quota counters, mainly for tests and single-node setups."""

    def __init__(self, allowances: Optional[Mapping[BroadcastPhase, int]] = None) -> None:
        self._allowances = dict(DEFAULT_ALLOWANCES)
        if allowances:
            self._allowances.update(allowances)
        self._remaining: Dict[Tuple[str, str, BroadcastPhase], int] = {}
        self._lock = asyncio.Lock()

    async def check_and_consume(
        self,
        sender_id: str,
        show_id: str,
        phase: BroadcastPhase,
    ) -> QuotaDecision:
        key = (sender_id, show_id, phase)
        async with self._lock:
            remaining = self._remaining.get(key, self._allowances.get(phase, 0))
            if remaining <= 0:
                return QuotaDecision(allowed=False, remaining=0)
            remaining -= 1
            self._remaining[key] = remaining
        return QuotaDecision(allowed=True, remaining=remaining)

    def reset(self, phase: Optional[BroadcastPhase] = None) -> None:
        """Restore allowances, for one phase or all of them."""

        if phase is None:
            self._remaining.clear()
            return
        for key in [key for key in self._remaining if key[2] == phase]:
            del self._remaining[key]


__all__ = [
    "BroadcastPhase",
    "BroadcastQuotaManager",
    "DEFAULT_ALLOWANCES",
    "InMemoryBroadcastQuotaManager",
    "QuotaDecision",
]
