"""Broadcast quota contract and send authorization."""

from .gate import BroadcastGate
from .quota import (
    DEFAULT_ALLOWANCES,
    BroadcastPhase,
    BroadcastQuotaManager,
    InMemoryBroadcastQuotaManager,
    QuotaDecision,
)

__all__ = [
    "BroadcastGate",
    "BroadcastPhase",
    "BroadcastQuotaManager",
    "DEFAULT_ALLOWANCES",
    "InMemoryBroadcastQuotaManager",
    "QuotaDecision",
]
