"""Ledger statistics and time-bucket summary models."""

from decimal import Decimal

from pydantic import BaseModel, Field


class LedgerStats(BaseModel):
    """Current balances and win/loss counts for the whole ledger."""

    roll_pot: Decimal = Field(..., description="Current Roll Pot balance")
    bank_total: Decimal = Field(..., description="Current Bank balance")
    total_wealth: Decimal = Field(..., description="Roll Pot + Bank")
    total_trades: int = Field(..., ge=0, description="Number of trades")
    wins: int = Field(..., ge=0, description="Winning trades")
    losses: int = Field(..., ge=0, description="Losing trades")
    success_rate: float = Field(..., ge=0, le=100, description="Win rate percentage")

    model_config = {"frozen": True}


class BucketSummary(BaseModel):
    """Aggregated results for one hour/day/week bucket."""

    key: str = Field(..., description="Sortable bucket key")
    label: str = Field(..., description="Display label")
    profit_loss: Decimal = Field(default=Decimal("0"), description="Summed P&L")
    trades: int = Field(default=0, ge=0, description="Trades in bucket")
    wins: int = Field(default=0, ge=0, description="Wins in bucket")
    losses: int = Field(default=0, ge=0, description="Losses in bucket")
