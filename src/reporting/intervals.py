# ========================
# src/reporting/intervals.py
# ========================

"""
Time Bucketing

Fixed-length revenue buckets on a global truncation grid. Grid points are
multiples of the interval counted from 0001-01-01T00:00:00Z, so day buckets
start at UTC midnight and week buckets start on Monday.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from .models import IntervalRevenue, OrderItem

logger = logging.getLogger(__name__)

DAY = timedelta(hours=24)
WEEK = 7 * DAY

GRID_ORIGIN = datetime(1, 1, 1, tzinfo=timezone.utc)

TitleFn = Callable[[datetime, datetime], str]


def as_utc(ts: datetime) -> datetime:
    """Return ``ts`` as an aware UTC datetime. Naive values are taken to be UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def truncate(ts: datetime, interval: timedelta) -> datetime:
    """Largest grid point that is <= ``ts``."""
    steps = (as_utc(ts) - GRID_ORIGIN) // interval
    return GRID_ORIGIN + steps * interval


def day_title(start: datetime, end: datetime) -> str:
    return f"Day {start:%Y-%m-%d}"


def week_title(start: datetime, end: datetime) -> str:
    return f"Week {start:%Y-%m-%d} - {end:%Y-%m-%d}"


def interval_title(start: datetime, end: datetime) -> str:
    return f"Interval {start.isoformat()} - {end.isoformat()}"


def revenue_by_interval(items: Iterable[OrderItem],
                        start: datetime,
                        end: datetime,
                        interval: timedelta,
                        title_fn: Optional[TitleFn] = None) -> List[IntervalRevenue]:
    """
    Sum ``price - refunded`` per bucket over ``[truncate(start), truncate(end)]``.

    Every bucket in the range is returned, including empty ones, in ascending
    order. An ``end`` before ``start`` yields no buckets.

    Args:
        items: Order items to scan
        start: First timestamp of the range
        end: Last timestamp of the range (inclusive)
        interval: Bucket length, must be positive
        title_fn: Builds a bucket title from (bucket_start, bucket_end)

    Returns:
        list[IntervalRevenue]: One entry per bucket
    """
    if interval <= timedelta(0):
        raise ValueError(f"interval must be positive, got {interval}")
    title_fn = title_fn or interval_title

    try:
        first = truncate(start, interval)
        last = truncate(end, interval)
        # End of the last bucket; must still be a representable datetime
        stop = last + interval
    except OverflowError as e:
        raise ValueError(f"interval out of range: {interval}") from e
    if last < first:
        return []

    num_buckets = (stop - first) // interval
    totals = [Decimal(0)] * num_buckets

    for item in items:
        index = (truncate(item.ordered_at, interval) - first) // interval
        if 0 <= index < num_buckets:
            totals[index] += item.item_price - item.refunded

    logger.debug(f"Bucketed revenue into {num_buckets} buckets of {interval}")

    results = []
    for index, revenue in enumerate(totals):
        bucket_start = first + index * interval
        bucket_end = bucket_start + interval
        results.append(IntervalRevenue(
            start=bucket_start,
            end=bucket_end,
            title=title_fn(bucket_start, bucket_end),
            revenue=revenue,
        ))
    return results
