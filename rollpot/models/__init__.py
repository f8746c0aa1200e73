"""Data models for rollpot."""

from rollpot.models.snapshot import WealthSnapshot
from rollpot.models.stats import BucketSummary, LedgerStats
from rollpot.models.trade import Outcome, TradeInput, TradeRecord

__all__ = [
    "BucketSummary",
    "LedgerStats",
    "Outcome",
    "TradeInput",
    "TradeRecord",
    "WealthSnapshot",
]
