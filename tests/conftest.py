"""Shared fixtures and builders for rollpot tests."""

import tempfile
from datetime import date, datetime, timezone
from decimal import ROUND_DOWN, Decimal
from pathlib import Path
from typing import Optional

import pytest
from hypothesis import strategies as st

from rollpot.db.store import SQLiteLedgerStore
from rollpot.engine.rules import LedgerRules
from rollpot.engine.transition import Transition, apply_trade
from rollpot.models import TradeInput, TradeRecord

CREATED_AT = datetime(2026, 1, 15, 18, 0, tzinfo=timezone.utc)


def make_trade(
    stake,
    multiplier,
    outcome: str = "win",
    trade_id: Optional[str] = None,
    trade_number: int = 1,
    description: str = "",
) -> TradeRecord:
    """Build a trade record with placeholder derived fields."""
    return TradeRecord(
        id=trade_id,
        trade_number=trade_number,
        created_at=CREATED_AT,
        trade_date=date(2026, 1, 15),
        description=description,
        multiplier=Decimal(str(multiplier)),
        stake=Decimal(str(stake)),
        outcome=outcome,
    )


def make_input(stake, multiplier, outcome: str = "win", description: str = "") -> TradeInput:
    return TradeInput(
        trade_date=date(2026, 1, 15),
        description=description,
        multiplier=Decimal(str(multiplier)),
        stake=Decimal(str(stake)),
        outcome=outcome,
    )


# Each step: fraction of the available capital to stake, multiplier, outcome
step_strategy = st.tuples(
    st.decimals(min_value=Decimal("0.01"), max_value=Decimal("1"), places=2),
    st.decimals(min_value=Decimal("1.01"), max_value=Decimal("10"), places=2),
    st.sampled_from(["win", "loss"]),
)


def build_valid_history(steps, rules: Optional[LedgerRules] = None) -> list[TradeRecord]:
    """Turn generated steps into an affordable chronological history.

    Stops early once the capital source is too small to fund a stake.
    """
    rules = rules or LedgerRules()
    roll, bank = rules.starting_roll_pot, rules.starting_bank
    trades = []
    for i, (fraction, multiplier, outcome) in enumerate(steps, start=1):
        available = bank if roll <= 0 else roll
        stake = (available * fraction).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
        if stake <= 0:
            break
        result = apply_trade(
            roll,
            bank,
            stake,
            multiplier,
            outcome,
            roll_retention=rules.roll_retention,
            allocation_base=rules.allocation_base,
        )
        assert isinstance(result, Transition)
        roll, bank = result.new_roll, result.new_bank
        trades.append(make_trade(stake, multiplier, outcome, trade_id=f"t{i}", trade_number=i))
    return trades


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_store(temp_dir: Path) -> SQLiteLedgerStore:
    """Create a store backed by a temporary database."""
    return SQLiteLedgerStore(temp_dir / "test.db")
