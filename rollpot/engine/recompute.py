"""Full replay of the ledger.

``recompute_all`` is the only producer of derived fields. It folds the
transition function over the chronological history from the starting
state and either returns a complete new ledger or the first failure.
"""

from typing import Iterable, Optional, Union

from pydantic import BaseModel, Field

from rollpot.engine.rules import LedgerRules
from rollpot.engine.transition import Rejection, apply_trade
from rollpot.models import TradeRecord

DERIVED_FIELDS = (
    "trade_number",
    "profit_loss",
    "amount_banked",
    "roll_pot_after",
    "bank_total_after",
    "total_wealth_after",
)

INPUT_FIELDS = ("trade_date", "description", "multiplier", "stake", "outcome")


class Recomputed(BaseModel):
    """A fully recomputed ledger in chronological order."""

    records: list[TradeRecord] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True


class RecomputeRejection(BaseModel):
    """The first record that failed during a replay."""

    position: int = Field(..., ge=1, description="1-based position of the failing record")
    trade_id: Optional[str] = Field(default=None, description="Identifier of the failing record")
    rejection: Rejection

    @property
    def ok(self) -> bool:
        return False

    @property
    def reason(self) -> str:
        return f"Trade #{self.position}: {self.rejection.reason}"


RecomputeResult = Union[Recomputed, RecomputeRejection]


def recompute_all(
    trades: Iterable[TradeRecord],
    rules: Optional[LedgerRules] = None,
) -> RecomputeResult:
    """Replay every trade from the starting state.

    The given order is trusted to be chronological. Sequence numbers are
    reassigned from 1 and all derived fields are overwritten.

    Args:
        trades: Trade records, oldest first.
        rules: Starting state and allocation policy.

    Returns:
        Recomputed with the new records, or RecomputeRejection for the
        first record that fails. Nothing is partially applied.
    """
    rules = rules or LedgerRules()
    roll = rules.starting_roll_pot
    bank = rules.starting_bank
    updated: list[TradeRecord] = []

    for position, trade in enumerate(trades, start=1):
        result = apply_trade(
            roll,
            bank,
            trade.stake,
            trade.multiplier,
            trade.outcome,
            roll_retention=rules.roll_retention,
            allocation_base=rules.allocation_base,
        )
        if isinstance(result, Rejection):
            return RecomputeRejection(position=position, trade_id=trade.id, rejection=result)

        roll = result.new_roll
        bank = result.new_bank
        updated.append(
            trade.model_copy(
                update={
                    "trade_number": position,
                    "profit_loss": result.profit_loss,
                    "amount_banked": result.amount_banked,
                    "roll_pot_after": result.new_roll,
                    "bank_total_after": result.new_bank,
                    "total_wealth_after": result.total_wealth,
                }
            )
        )

    return Recomputed(records=updated)


def changed_records(
    before: Iterable[TradeRecord],
    after: Iterable[TradeRecord],
) -> list[TradeRecord]:
    """Records in ``after`` that differ from their stored version.

    Records are matched by identifier. A record with no stored version
    counts as changed.
    """
    stored = {trade.id: trade for trade in before}
    changed = []
    for trade in after:
        old = stored.get(trade.id)
        if old is None or any(
            getattr(old, name) != getattr(trade, name)
            for name in DERIVED_FIELDS + INPUT_FIELDS
        ):
            changed.append(trade)
    return changed
