"""Ledger rules: starting state and allocation policy."""

from decimal import Decimal

from pydantic import BaseModel, Field

from rollpot.engine.transition import DEFAULT_ROLL_RETENTION, AllocationBase


class LedgerRules(BaseModel):
    """Constants every replay of the ledger starts from."""

    starting_roll_pot: Decimal = Field(default=Decimal("0"), description="Roll Pot before trade #1")
    starting_bank: Decimal = Field(default=Decimal("3000"), ge=0, description="Bank before trade #1")
    roll_retention: Decimal = Field(
        default=DEFAULT_ROLL_RETENTION, ge=0, le=1, description="Share of a win kept in the Roll Pot"
    )
    allocation_base: AllocationBase = Field(
        default="total_return", description="Split the whole payout or only the profit"
    )

    model_config = {"frozen": True}

    @property
    def starting_wealth(self) -> Decimal:
        return self.starting_roll_pot + self.starting_bank
