"""Ledger statistics and goal tracking."""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Sequence

import pytz

from rollpot.engine.rules import LedgerRules
from rollpot.models import LedgerStats, TradeRecord

MAX_MINI_COMPOUND_RATE = Decimal("0.25")


def calculate_stats(
    trades_desc: Sequence[TradeRecord],
    rules: Optional[LedgerRules] = None,
) -> LedgerStats:
    """Calculate current balances and win/loss counts.

    Args:
        trades_desc: Trade records, newest first.
        rules: Starting state used when the ledger is empty.

    Returns:
        LedgerStats for the ledger.
    """
    rules = rules or LedgerRules()
    if not trades_desc:
        return LedgerStats(
            roll_pot=rules.starting_roll_pot,
            bank_total=rules.starting_bank,
            total_wealth=rules.starting_wealth,
            total_trades=0,
            wins=0,
            losses=0,
            success_rate=0.0,
        )

    latest = trades_desc[0]
    wins = sum(1 for t in trades_desc if t.outcome == "win")
    losses = len(trades_desc) - wins

    return LedgerStats(
        roll_pot=latest.roll_pot_after,
        bank_total=latest.bank_total_after,
        total_wealth=latest.total_wealth_after,
        total_trades=len(trades_desc),
        wins=wins,
        losses=losses,
        success_rate=wins / len(trades_desc) * 100,
    )


def goal_progress(total_wealth: Decimal, goal: Decimal) -> float:
    """Progress toward the wealth goal as a percentage (can exceed 100)."""
    if goal <= 0:
        return 0.0
    return float(total_wealth / goal * 100)


def mini_goal(total_wealth: Decimal, rate: Decimal) -> Decimal:
    """Wealth target for the next mini-goal block.

    The compound rate is clamped to [0, 0.25].
    """
    rate = max(Decimal("0"), min(MAX_MINI_COMPOUND_RATE, rate))
    return total_wealth * (1 + rate)


def _to_zone(now: datetime, timezone: str) -> tuple[datetime, "pytz.BaseTzInfo"]:
    tz = pytz.timezone(timezone)
    if now.tzinfo is None:
        now = pytz.utc.localize(now)
    return now.astimezone(tz), tz


def next_boundary(
    now: datetime,
    step_hours: int = 4,
    timezone: str = "America/Chicago",
) -> datetime:
    """Next wall-clock hour that is a multiple of ``step_hours``.

    Boundaries at or past 24:00 roll over to the next midnight. Naive
    datetimes are treated as UTC.
    """
    local, tz = _to_zone(now, timezone)
    wall = local.replace(tzinfo=None, minute=0, second=0, microsecond=0)
    next_hour = (wall.hour // step_hours + 1) * step_hours
    if next_hour >= 24:
        boundary = wall.replace(hour=0) + timedelta(days=1)
    else:
        boundary = wall.replace(hour=next_hour)
    return tz.localize(boundary)


def block_start(
    now: datetime,
    step_hours: int = 4,
    timezone: str = "America/Chicago",
) -> datetime:
    """Start of the mini-goal block containing ``now``."""
    local, tz = _to_zone(now, timezone)
    wall = local.replace(tzinfo=None, minute=0, second=0, microsecond=0)
    return tz.localize(wall.replace(hour=wall.hour // step_hours * step_hours))


def format_countdown(remaining: timedelta) -> str:
    """Format a duration as HH:MM:SS, clamped at zero."""
    total = max(0, int(remaining.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def snapshot_due(
    last_captured_at: Optional[datetime],
    now: datetime,
    step_hours: int = 4,
    timezone: str = "America/Chicago",
) -> bool:
    """Whether a wealth snapshot should be captured for the current block."""
    if last_captured_at is None:
        return True
    if last_captured_at.tzinfo is None:
        last_captured_at = pytz.utc.localize(last_captured_at)
    return last_captured_at < block_start(now, step_hours, timezone)
