"""Trade data models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

Outcome = Literal["win", "loss"]


class TradeInput(BaseModel):
    """The user-supplied fields of a trade.

    Legality (positive stake, multiplier above 1) is not enforced here;
    it is checked by the transition function so rejections keep their order.
    """

    trade_date: date = Field(..., description="Date the trade was placed")
    description: str = Field(default="", description="Free-form label")
    multiplier: Decimal = Field(..., description="Payout multiple on a win")
    stake: Decimal = Field(..., description="Capital committed")
    outcome: Outcome = Field(..., description="Trade outcome (win/loss)")

    model_config = {"frozen": True}


class TradeRecord(BaseModel):
    """A stored ledger entry with its derived running balances."""

    id: Optional[str] = Field(default=None, description="Storage identifier")
    trade_number: int = Field(..., ge=1, description="1-based chronological position")
    created_at: datetime = Field(..., description="Creation instant (UTC)")
    trade_date: date = Field(..., description="Date the trade was placed")
    description: str = Field(default="", description="Free-form label")
    multiplier: Decimal = Field(..., description="Payout multiple on a win")
    stake: Decimal = Field(..., description="Capital committed")
    outcome: Outcome = Field(..., description="Trade outcome (win/loss)")
    profit_loss: Decimal = Field(default=Decimal("0"), description="Net result of the trade")
    amount_banked: Decimal = Field(default=Decimal("0"), ge=0, description="Share of a win sent to Bank")
    roll_pot_after: Decimal = Field(default=Decimal("0"), description="Roll Pot after this trade")
    bank_total_after: Decimal = Field(default=Decimal("0"), description="Bank after this trade")
    total_wealth_after: Decimal = Field(default=Decimal("0"), description="Roll Pot + Bank after this trade")

    model_config = {"frozen": True}

    @property
    def inputs(self) -> TradeInput:
        """The user-supplied fields of this record."""
        return TradeInput(
            trade_date=self.trade_date,
            description=self.description,
            multiplier=self.multiplier,
            stake=self.stake,
            outcome=self.outcome,
        )

    def with_inputs(self, trade_input: TradeInput) -> "TradeRecord":
        """Return a copy with the input fields replaced.

        Identity and creation time are kept.
        """
        return self.model_copy(update=trade_input.model_dump())
