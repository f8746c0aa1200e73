"""Trade transition function.

Computes the balances that follow a single trade from the balances that
precede it. Pure: no I/O and no shared state. Illegal trades come back as
a ``Rejection`` value instead of raising.
"""

from decimal import Decimal, DecimalException
from typing import Literal, Union

from pydantic import BaseModel, Field

from rollpot.models import Outcome

AllocationBase = Literal["total_return", "profit"]

DEFAULT_ROLL_RETENTION = Decimal("0.7")

ZERO = Decimal("0")
ONE = Decimal("1")

BANK = "Bank"
ROLL_POT = "Roll Pot"


class Transition(BaseModel):
    """Balances and derived fields produced by one accepted trade."""

    new_roll: Decimal = Field(..., description="Roll Pot after the trade")
    new_bank: Decimal = Field(..., description="Bank after the trade")
    total_wealth: Decimal = Field(..., description="new_roll + new_bank")
    profit_loss: Decimal = Field(..., description="Net result of the trade")
    amount_banked: Decimal = Field(..., ge=0, description="Share of the win sent to Bank")
    seeding: bool = Field(..., description="True when the stake was drawn from Bank")

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return True


class Rejection(BaseModel):
    """A trade that failed a precondition."""

    code: Literal["stake", "multiplier", "balance", "range"] = Field(..., description="Failed check")
    reason: str = Field(..., description="Human-readable reason")

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return False


TransitionResult = Union[Transition, Rejection]


def capital_source(prev_roll: Decimal) -> str:
    """Name the balance that funds the next trade.

    An empty Roll Pot (zero or below) is re-seeded from the Bank.
    """
    return BANK if prev_roll <= ZERO else ROLL_POT


def apply_trade(
    prev_roll: Decimal,
    prev_bank: Decimal,
    stake: Decimal,
    multiplier: Decimal,
    outcome: Outcome,
    *,
    roll_retention: Decimal = DEFAULT_ROLL_RETENTION,
    allocation_base: AllocationBase = "total_return",
) -> TransitionResult:
    """Apply one trade to the running balances.

    Checks run in order and the first failure wins: stake, multiplier,
    then stake against the capital source. Amounts too large for the
    decimal context are rejected as out of range.

    Args:
        prev_roll: Roll Pot before the trade.
        prev_bank: Bank before the trade.
        stake: Capital committed.
        multiplier: Payout multiple applied to the stake on a win.
        outcome: "win" or "loss".
        roll_retention: Share of a win's allocation kept in the Roll Pot.
            The rest goes to the Bank.
        allocation_base: "total_return" splits the whole payout,
            "profit" splits only the payout minus the stake.

    Returns:
        Transition on success, Rejection otherwise.
    """
    if not stake.is_finite() or stake <= ZERO:
        return Rejection(code="stake", reason="Stake must be positive")
    if not multiplier.is_finite() or multiplier <= ONE:
        return Rejection(code="multiplier", reason="Multiplier must exceed 1")

    source = capital_source(prev_roll)
    seeding = source == BANK
    available = prev_bank if seeding else prev_roll
    if stake > available:
        return Rejection(
            code="balance",
            reason=f"Stake exceeds available balance ({source}: {available})",
        )

    try:
        return _settle(
            prev_roll,
            prev_bank,
            stake,
            multiplier,
            outcome == "win",
            seeding,
            roll_retention,
            allocation_base,
        )
    except DecimalException:
        return Rejection(code="range", reason="Trade amounts are out of range")


def _settle(
    prev_roll: Decimal,
    prev_bank: Decimal,
    stake: Decimal,
    multiplier: Decimal,
    won: bool,
    seeding: bool,
    roll_retention: Decimal,
    allocation_base: AllocationBase,
) -> Transition:
    total_return = stake * multiplier if won else ZERO
    if not won:
        base = ZERO
    elif allocation_base == "profit":
        base = total_return - stake
    else:
        base = total_return

    bank_allocation = base * (ONE - roll_retention)
    roll_allocation = base * roll_retention

    if seeding:
        new_bank = prev_bank - stake + bank_allocation
        new_roll = prev_roll + roll_allocation
    else:
        new_bank = prev_bank + bank_allocation
        new_roll = prev_roll - stake + roll_allocation

    profit_loss = total_return - stake if won else -stake

    return Transition(
        new_roll=new_roll,
        new_bank=new_bank,
        total_wealth=new_roll + new_bank,
        profit_loss=profit_loss,
        amount_banked=bank_allocation,
        seeding=seeding,
    )
