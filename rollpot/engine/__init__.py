"""Ledger engine: transition function, replay, stats and bucketing."""

from rollpot.engine.recompute import (
    RecomputeRejection,
    Recomputed,
    changed_records,
    recompute_all,
)
from rollpot.engine.rules import LedgerRules
from rollpot.engine.transition import Rejection, Transition, apply_trade, capital_source

__all__ = [
    "LedgerRules",
    "RecomputeRejection",
    "Recomputed",
    "Rejection",
    "Transition",
    "apply_trade",
    "capital_source",
    "changed_records",
    "recompute_all",
]
