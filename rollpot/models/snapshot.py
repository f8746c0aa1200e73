"""WealthSnapshot data model."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class WealthSnapshot(BaseModel):
    """Balances captured at a mini-goal boundary."""

    id: Optional[int] = Field(default=None, description="Database ID")
    captured_at: datetime = Field(..., description="Capture instant (UTC)")
    roll_pot: Decimal = Field(..., description="Roll Pot at capture")
    bank_total: Decimal = Field(..., description="Bank at capture")
    total_wealth: Decimal = Field(..., description="Total wealth at capture")

    model_config = {"frozen": True}
