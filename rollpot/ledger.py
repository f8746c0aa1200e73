"""Mutation orchestrator for the ledger.

Every structural change goes through the same cycle: fetch the full
history, replay it with ``recompute_all``, persist, reload. Store calls
are awaited one after another. Nothing here raises for rejected trades
or storage failures; each operation returns a ``MutationResult``.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from rollpot.config import Settings
from rollpot.db.base import LedgerStore, StoreError
from rollpot.engine.recompute import RecomputeRejection, changed_records, recompute_all
from rollpot.engine.stats import calculate_stats, snapshot_due
from rollpot.engine.transition import Rejection, apply_trade
from rollpot.models import LedgerStats, TradeInput, TradeRecord, WealthSnapshot

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LedgerView(BaseModel):
    """The ledger as last read from the store."""

    trades: list[TradeRecord] = Field(default_factory=list, description="Trades, newest first")
    stats: LedgerStats


class MutationResult(BaseModel):
    """Outcome of an orchestrator operation."""

    ok: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(default="", description="Human-readable outcome")
    position: Optional[int] = Field(default=None, description="1-based position of a rejected trade")
    trade_id: Optional[str] = Field(default=None, description="Trade the operation touched")
    mismatched: list[int] = Field(default_factory=list, description="Positions whose stored fields disagree")
    view: Optional[LedgerView] = Field(default=None, description="Ledger after a successful reload")


class LedgerService:
    """Coordinates add/edit/undo/reset against a LedgerStore."""

    def __init__(
        self,
        store: LedgerStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """Initialize the service.

        Args:
            store: Storage collaborator.
            settings: Ledger rules and snapshot schedule.
            clock: Returns the current aware datetime.
        """
        self._store = store
        self._settings = settings or Settings()
        self._rules = self._settings.rules
        self._clock = clock

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(func, *args)

    def _storage_failure(self, action: str, error: StoreError) -> MutationResult:
        logger.error("Failed to %s: %s", action, error)
        return MutationResult(ok=False, message=f"Failed to {action}: {error}")

    # ==================== Reads ====================

    async def _load(self) -> LedgerView:
        trades = await self._run(self._store.list_descending)
        stats = calculate_stats(trades, self._rules)
        await self._maybe_capture_snapshot(stats)
        return LedgerView(trades=trades, stats=stats)

    async def _maybe_capture_snapshot(self, stats: LedgerStats) -> None:
        """Record balances once per mini-goal block. Failures are logged only."""
        now = self._clock()
        try:
            last = await self._run(self._store.latest_snapshot)
            last_at = last.captured_at if last else None
            if snapshot_due(last_at, now, self._settings.mini_goal_hours, self._settings.timezone):
                await self._run(
                    self._store.save_snapshot,
                    WealthSnapshot(
                        captured_at=now,
                        roll_pot=stats.roll_pot,
                        bank_total=stats.bank_total,
                        total_wealth=stats.total_wealth,
                    ),
                )
        except StoreError as e:
            logger.warning("Skipping wealth snapshot: %s", e)

    async def reload(self) -> MutationResult:
        """Read the ledger and its current stats from the store."""
        try:
            view = await self._load()
        except StoreError as e:
            return self._storage_failure("load trades", e)
        return MutationResult(ok=True, view=view)

    # ==================== Replay ====================

    async def _persist_recomputed(
        self,
        stored: list[TradeRecord],
        modified: list[TradeRecord],
        action: str,
    ) -> MutationResult:
        """Replay ``modified``, write what changed relative to ``stored``, reload."""
        result = recompute_all(modified, self._rules)
        if isinstance(result, RecomputeRejection):
            logger.warning("%s refused: %s", action, result.reason)
            return MutationResult(
                ok=False,
                message=f"{action} not allowed: {result.reason}",
                position=result.position,
                trade_id=result.trade_id,
            )

        changed = changed_records(stored, result.records)
        try:
            if changed:
                await self._run(self._store.upsert_many, changed)
        except StoreError as e:
            failure = self._storage_failure("save recomputed trades", e)
            check = await self.verify()
            if not check.ok:
                failure.mismatched = check.mismatched
                failure.message += f" ({check.message})"
            return failure

        try:
            view = await self._load()
        except StoreError as e:
            return self._storage_failure("reload trades", e)

        return MutationResult(ok=True, message=f"{action} saved", view=view)

    async def recompute_and_reload(self) -> MutationResult:
        """Replay the stored history and write back every derived field."""
        try:
            stored = await self._run(self._store.list_ascending)
        except StoreError as e:
            return self._storage_failure("fetch trades", e)
        return await self._persist_recomputed(stored, stored, "Recompute")

    async def verify(self) -> MutationResult:
        """Re-fetch the ledger and check it against a fresh replay.

        Reports the positions whose stored sequence number or derived
        fields disagree with the replay, for example after a torn write.
        """
        try:
            stored = await self._run(self._store.list_ascending)
        except StoreError as e:
            return self._storage_failure("fetch trades", e)

        result = recompute_all(stored, self._rules)
        if isinstance(result, RecomputeRejection):
            return MutationResult(
                ok=False,
                message=f"Stored ledger is invalid: {result.reason}",
                position=result.position,
                trade_id=result.trade_id,
            )

        stale = {t.id for t in changed_records(stored, result.records)}
        mismatched = [t.trade_number for t in result.records if t.id in stale]
        if mismatched:
            return MutationResult(
                ok=False,
                message=f"{len(mismatched)} trade(s) have stale balances",
                mismatched=mismatched,
            )
        return MutationResult(ok=True, message=f"{len(stored)} trade(s) consistent")

    # ==================== Mutations ====================

    async def add(self, trade: TradeInput) -> MutationResult:
        """Append a trade.

        The trade is checked against the latest balances before anything
        is written, then the whole ledger is replayed.
        """
        try:
            latest = await self._run(self._store.list_descending)
        except StoreError as e:
            return self._storage_failure("fetch trades", e)

        stats = calculate_stats(latest, self._rules)
        checked = apply_trade(
            stats.roll_pot,
            stats.bank_total,
            trade.stake,
            trade.multiplier,
            trade.outcome,
            roll_retention=self._rules.roll_retention,
            allocation_base=self._rules.allocation_base,
        )
        if isinstance(checked, Rejection):
            logger.warning("Trade rejected: %s", checked.reason)
            return MutationResult(ok=False, message=checked.reason)

        record = TradeRecord(
            trade_number=len(latest) + 1,
            created_at=self._clock(),
            profit_loss=checked.profit_loss,
            amount_banked=checked.amount_banked,
            roll_pot_after=checked.new_roll,
            bank_total_after=checked.new_bank,
            total_wealth_after=checked.total_wealth,
            **trade.model_dump(),
        )
        try:
            trade_id = await self._run(self._store.insert, record)
        except StoreError as e:
            return self._storage_failure("add trade", e)

        logger.info("Added trade #%d (%s)", record.trade_number, trade_id)
        result = await self.recompute_and_reload()
        result.trade_id = trade_id
        if result.ok:
            result.message = f"Trade #{record.trade_number} added"
        return result

    async def edit(self, trade_id: str, trade: TradeInput) -> MutationResult:
        """Replace a trade's inputs and replay everything after it.

        The edit is refused as a whole, with the store untouched, if any
        trade in the replayed history becomes illegal.
        """
        try:
            stored = await self._run(self._store.list_ascending)
        except StoreError as e:
            return self._storage_failure("fetch trades", e)

        if not any(t.id == trade_id for t in stored):
            return MutationResult(ok=False, message=f"Trade {trade_id} not found", trade_id=trade_id)

        modified = [t.with_inputs(trade) if t.id == trade_id else t for t in stored]
        result = await self._persist_recomputed(stored, modified, "Edit")
        if result.ok:
            logger.info("Edited trade %s", trade_id)
        if result.trade_id is None:
            result.trade_id = trade_id
        return result

    async def undo(self) -> MutationResult:
        """Delete the chronologically last trade."""
        try:
            latest = await self._run(self._store.list_descending)
        except StoreError as e:
            return self._storage_failure("fetch trades", e)

        if not latest:
            return MutationResult(ok=False, message="No trades to undo")

        last = latest[0]
        try:
            await self._run(self._store.delete_by_id, last.id)
        except StoreError as e:
            return self._storage_failure("undo trade", e)

        logger.info("Undid trade #%d (%s)", last.trade_number, last.id)
        result = await self.recompute_and_reload()
        result.trade_id = last.id
        if result.ok:
            result.message = f"Trade #{last.trade_number} undone"
        return result

    async def reset(self) -> MutationResult:
        """Delete every trade, returning the ledger to its starting state."""
        try:
            await self._run(self._store.delete_all)
        except StoreError as e:
            return self._storage_failure("reset trades", e)

        logger.info("Ledger reset")
        result = await self.reload()
        if result.ok:
            result.message = "Ledger reset"
        return result

    async def list_snapshots(self) -> list[WealthSnapshot]:
        """Captured wealth snapshots, newest first.

        Raises:
            StoreError: If the store cannot be read.
        """
        return await self._run(self._store.list_snapshots)
