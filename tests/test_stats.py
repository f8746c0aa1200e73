"""Tests for ledger statistics, goal tracking and time bucketing.

**Feature: roll-pot-ledger**
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytz
from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import make_trade
from rollpot.engine.buckets import bucket_key, summarize_by_bucket
from rollpot.engine.recompute import recompute_all
from rollpot.engine.rules import LedgerRules
from rollpot.engine.stats import (
    block_start,
    calculate_stats,
    format_countdown,
    goal_progress,
    mini_goal,
    next_boundary,
    snapshot_due,
)

D = Decimal
UTC = timezone.utc
CHICAGO = pytz.timezone("America/Chicago")


class TestCalculateStats:
    """
    **Property 19: Stats from latest record**

    *For any* ledger, balances come from the newest record and the win
    rate from the outcome counts.
    """

    def test_empty_ledger_uses_starting_state(self):
        stats = calculate_stats([], LedgerRules(starting_bank=D("5000")))

        assert stats.roll_pot == D("0")
        assert stats.bank_total == D("5000")
        assert stats.total_wealth == D("5000")
        assert stats.total_trades == 0
        assert stats.success_rate == 0.0

    def test_counts_and_latest_balances(self):
        records = recompute_all([
            make_trade(100, 2, "win", trade_id="a"),
            make_trade(50, 2, "loss", trade_id="b"),
            make_trade(20, 2, "win", trade_id="c"),
            make_trade(10, 2, "loss", trade_id="d"),
        ]).records

        stats = calculate_stats(list(reversed(records)))

        assert stats.wins == 2
        assert stats.losses == 2
        assert stats.success_rate == 50.0
        assert stats.roll_pot == records[-1].roll_pot_after
        assert stats.total_wealth == records[-1].total_wealth_after


class TestGoals:
    """
    **Property 20: Goal tracking**

    *For any* wealth, progress is a percentage of the goal and the mini
    goal compounds at a clamped rate.
    """

    def test_goal_progress(self):
        assert goal_progress(D("3000"), D("20000")) == 15.0
        assert goal_progress(D("30000"), D("20000")) == 150.0

    def test_mini_goal(self):
        assert mini_goal(D("3000"), D("0.02")) == D("3060")

    @given(rate=st.decimals(min_value=D("-5"), max_value=D("5"), places=3))
    @settings(max_examples=50)
    def test_mini_goal_rate_is_clamped(self, rate: Decimal):
        target = mini_goal(D("1000"), rate)

        assert D("1000") <= target <= D("1250")

    def test_format_countdown(self):
        assert format_countdown(timedelta(hours=3, minutes=5, seconds=9)) == "03:05:09"
        assert format_countdown(timedelta(seconds=-10)) == "00:00:00"


class TestBoundaries:
    """
    **Property 21: Mini-goal blocks**

    *For any* instant, the next boundary is the next multiple of the
    block length in local wall time.
    """

    def test_next_boundary_same_day(self):
        now = datetime(2026, 1, 15, 15, 30, tzinfo=UTC)  # 09:30 CST

        boundary = next_boundary(now, 4, "America/Chicago")

        assert boundary == CHICAGO.localize(datetime(2026, 1, 15, 12, 0))
        assert boundary.astimezone(UTC) == datetime(2026, 1, 15, 18, 0, tzinfo=UTC)

    def test_next_boundary_rolls_to_midnight(self):
        now = datetime(2026, 1, 16, 4, 30, tzinfo=UTC)  # 22:30 CST

        boundary = next_boundary(now, 4, "America/Chicago")

        assert boundary == CHICAGO.localize(datetime(2026, 1, 16, 0, 0))

    def test_exact_boundary_moves_forward(self):
        now = CHICAGO.localize(datetime(2026, 1, 15, 8, 0))

        assert next_boundary(now, 4, "America/Chicago") == CHICAGO.localize(datetime(2026, 1, 15, 12, 0))
        assert block_start(now, 4, "America/Chicago") == now

    def test_snapshot_due(self):
        now = datetime(2026, 1, 15, 15, 30, tzinfo=UTC)

        assert snapshot_due(None, now)
        assert not snapshot_due(now - timedelta(minutes=30), now)
        assert snapshot_due(now - timedelta(hours=2), now)


class TestBucketKey:
    """
    **Property 22: Timezone bucketing**

    *For any* instant, the bucket reflects wall time in the configured
    timezone, with Monday-start weeks.
    """

    def test_buckets_in_chicago_wall_time(self):
        instant = datetime(2026, 1, 15, 3, 30, tzinfo=UTC)  # Wed 21:30 CST

        assert bucket_key(instant, "hour") == "2026-01-14 21:00"
        assert bucket_key(instant, "day") == "2026-01-14"
        assert bucket_key(instant, "week") == "Week of 2026-01-12"

    def test_daylight_saving_offset(self):
        instant = datetime(2026, 7, 1, 3, 30, tzinfo=UTC)  # 22:30 CDT

        assert bucket_key(instant, "hour") == "2026-06-30 22:00"

    def test_naive_instant_is_utc(self):
        assert bucket_key(datetime(2026, 1, 15, 3, 30), "day") == "2026-01-14"

    def test_other_timezone(self):
        instant = datetime(2026, 1, 15, 3, 30, tzinfo=UTC)

        assert bucket_key(instant, "day", "Asia/Kolkata") == "2026-01-15"

    def test_invalid_granularity(self):
        with pytest.raises(ValueError):
            bucket_key(datetime(2026, 1, 15, tzinfo=UTC), "month")

    @given(instant=st.datetimes(
        min_value=datetime(2020, 1, 1),
        max_value=datetime(2030, 12, 31),
        timezones=st.just(UTC),
    ))
    @settings(max_examples=100)
    def test_week_key_is_a_monday(self, instant: datetime):
        key = bucket_key(instant, "week")
        monday = datetime.strptime(key.removeprefix("Week of "), "%Y-%m-%d")

        assert monday.weekday() == 0
        local_day = datetime.strptime(bucket_key(instant, "day"), "%Y-%m-%d")
        assert timedelta(0) <= local_day - monday < timedelta(days=7)


class TestSummarizeByBucket:
    """
    **Property 23: Bucket totals**

    *For any* set of trades, bucket P&L sums to the ledger's P&L.
    """

    def test_summary(self):
        records = recompute_all([
            make_trade(100, 2, "win", trade_id="a"),
            make_trade(50, 2, "loss", trade_id="b"),
            make_trade(20, 3, "win", trade_id="c"),
        ]).records
        records = [
            records[0].model_copy(update={"created_at": datetime(2026, 1, 15, 15, 0, tzinfo=UTC)}),
            records[1].model_copy(update={"created_at": datetime(2026, 1, 15, 16, 0, tzinfo=UTC)}),
            records[2].model_copy(update={"created_at": datetime(2026, 1, 16, 15, 0, tzinfo=UTC)}),
        ]

        buckets = summarize_by_bucket(records, "day")

        assert [b.key for b in buckets] == ["2026-01-15", "2026-01-16"]
        assert buckets[0].trades == 2
        assert buckets[0].wins == 1
        assert buckets[0].losses == 1
        assert buckets[0].profit_loss == D("50")
        assert sum(b.profit_loss for b in buckets) == sum(r.profit_loss for r in records)

    def test_empty(self):
        assert summarize_by_bucket([], "week") == []
