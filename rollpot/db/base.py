"""Storage collaborator interface for the ledger."""

from abc import ABC, abstractmethod
from typing import Optional

from rollpot.models import TradeRecord, WealthSnapshot


class StoreError(Exception):
    """A read or write against the ledger store failed."""


class LedgerStore(ABC):
    """Abstract base class for ledger storage.

    Implementations wrap their driver errors in StoreError. The
    orchestrator treats the store as the single source of truth.
    """

    @abstractmethod
    def list_descending(self) -> list[TradeRecord]:
        """List all trades, highest sequence number first."""

    @abstractmethod
    def list_ascending(self) -> list[TradeRecord]:
        """List all trades in chronological order."""

    @abstractmethod
    def insert(self, record: TradeRecord) -> str:
        """Insert a new trade.

        Args:
            record: Trade to insert. Its ``id`` is ignored.

        Returns:
            The identifier assigned by the store.
        """

    @abstractmethod
    def upsert_many(self, records: list[TradeRecord]) -> None:
        """Write recomputed trades keyed by identifier.

        Must be idempotent and all-or-nothing. ``created_at`` of an
        existing row is never rewritten.
        """

    @abstractmethod
    def delete_by_id(self, trade_id: str) -> None:
        """Delete one trade."""

    @abstractmethod
    def delete_all(self) -> None:
        """Delete every trade."""

    @abstractmethod
    def latest_snapshot(self) -> Optional[WealthSnapshot]:
        """Most recently captured wealth snapshot, if any."""

    @abstractmethod
    def save_snapshot(self, snapshot: WealthSnapshot) -> int:
        """Save a wealth snapshot and return its ID."""

    @abstractmethod
    def list_snapshots(self) -> list[WealthSnapshot]:
        """All wealth snapshots, newest first."""
