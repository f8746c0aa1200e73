"""Time bucketing of trades for hour/day/week summaries."""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Literal

import pytz

from rollpot.models import BucketSummary, TradeRecord

Granularity = Literal["hour", "day", "week"]

GRANULARITIES = ("hour", "day", "week")
DEFAULT_TIMEZONE = "America/Chicago"


def bucket_key(
    instant: datetime,
    granularity: Granularity,
    timezone: str = DEFAULT_TIMEZONE,
) -> str:
    """Sortable bucket key for an instant in the given timezone's wall time.

    Naive datetimes are treated as UTC. Weeks start on Monday.

    Args:
        instant: The instant to bucket.
        granularity: "hour", "day" or "week".
        timezone: IANA timezone name.

    Returns:
        "YYYY-MM-DD HH:00", "YYYY-MM-DD" or "Week of YYYY-MM-DD".

    Raises:
        ValueError: If granularity is unknown.
    """
    if granularity not in GRANULARITIES:
        raise ValueError(f"Invalid granularity: {granularity}. Must be one of {list(GRANULARITIES)}")

    if instant.tzinfo is None:
        instant = pytz.utc.localize(instant)
    local = instant.astimezone(pytz.timezone(timezone))

    if granularity == "hour":
        return local.strftime("%Y-%m-%d %H:00")
    if granularity == "day":
        return local.strftime("%Y-%m-%d")

    monday = local.date() - timedelta(days=local.weekday())
    return f"Week of {monday.isoformat()}"


def summarize_by_bucket(
    trades: Iterable[TradeRecord],
    granularity: Granularity,
    timezone: str = DEFAULT_TIMEZONE,
) -> list[BucketSummary]:
    """Sum P&L and count wins/losses per bucket of ``created_at``.

    Returns:
        One summary per bucket, sorted by key.
    """
    buckets: dict[str, dict] = {}
    for trade in trades:
        key = bucket_key(trade.created_at, granularity, timezone)
        cur = buckets.setdefault(
            key, {"profit_loss": Decimal("0"), "trades": 0, "wins": 0, "losses": 0}
        )
        cur["profit_loss"] += trade.profit_loss
        cur["trades"] += 1
        if trade.outcome == "win":
            cur["wins"] += 1
        else:
            cur["losses"] += 1

    return [
        BucketSummary(key=key, label=key, **values)
        for key, values in sorted(buckets.items())
    ]
