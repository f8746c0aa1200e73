"""Ledger storage."""

from rollpot.db.base import LedgerStore, StoreError
from rollpot.db.store import SQLiteLedgerStore

__all__ = ["LedgerStore", "SQLiteLedgerStore", "StoreError"]
