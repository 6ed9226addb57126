# ========================
# src/reporting/dataset.py
# ========================

"""
Order Dataset

Append-only record store with incrementally maintained bitmap indices.
The dataset is populated by a single writer and then queried read-only.
"""

import logging
import math
import threading
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Set, Tuple

from pyroaring import BitMap

from . import intervals
from .exceptions import CategoryNotFoundError, EmptyAggregateError
from .models import (
    Category,
    CategoryStats,
    DeliveryStats,
    IntervalRevenue,
    OrderID,
    OrderItem,
)

logger = logging.getLogger(__name__)


class OrderDataset:
    """
    Stores parsed order items and answers aggregate queries over them.

    Each item's position in insertion order is its permanent dense id. Category
    bitmaps are keyed by those positions (``order_item_category``) and by the
    item's dense numeric order id (``order_category``). ``returned`` holds the
    positions of refunded items.

    ``add`` is not safe for concurrent callers. All queries are safe once the
    dataset is built.
    """

    def __init__(self):
        self._items: List[OrderItem] = []
        self._orders: Dict[OrderID, List[OrderItem]] = {}
        self._categories: Set[Category] = set()

        self._order_category: Dict[Category, BitMap] = defaultdict(BitMap)
        self._order_item_category: Dict[Category, BitMap] = defaultdict(BitMap)
        self._returned = BitMap()

        self._earliest_ordered_at: Optional[datetime] = None
        self._latest_ordered_at: Optional[datetime] = None

        self._total_revenue = Decimal(0)
        self._aov: Optional[Decimal] = None
        self._aov_lock = threading.Lock()

    def add(self, item: OrderItem) -> None:
        """
        Append an item and update every index.

        The item must already be validated; nothing is checked here.
        """
        item_id = len(self._items)
        self._items.append(item)

        group = self._orders.get(item.order_id)
        if group is None:
            group = self._orders[item.order_id] = []
        group.append(item)

        self._total_revenue += item.item_price - item.refunded

        if self._earliest_ordered_at is None or item.ordered_at < self._earliest_ordered_at:
            self._earliest_ordered_at = item.ordered_at
        if self._latest_ordered_at is None or item.ordered_at > self._latest_ordered_at:
            self._latest_ordered_at = item.ordered_at

        if item.refunded != 0:
            self._returned.add(item_id)

        for cat in item.category:
            self._categories.add(cat)
            self._order_category[cat].add(item.numeric_order_id)
            self._order_item_category[cat].add(item_id)

    # ------------------------------------------------------------------
    # Record store accessors
    # ------------------------------------------------------------------

    def all_items(self) -> Iterator[OrderItem]:
        """Iterate items in insertion order."""
        return iter(self._items)

    def all_orders(self) -> Iterator[List[OrderItem]]:
        """Iterate orders as lists of their items. Group order is unspecified."""
        return iter(self._orders.values())

    def num_order_items(self) -> int:
        return len(self._items)

    def num_orders(self) -> int:
        return len(self._orders)

    def date_range(self) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Earliest and latest ``ordered_at`` seen, or (None, None) when empty."""
        return self._earliest_ordered_at, self._latest_ordered_at

    # ------------------------------------------------------------------
    # Category queries
    # ------------------------------------------------------------------

    def all_categories(self) -> List[Category]:
        return sorted(self._categories)

    def _require_category(self, cat: Category) -> None:
        if cat not in self._categories:
            raise CategoryNotFoundError(cat)

    def num_orders_by_category(self, cat: Category) -> int:
        """Number of distinct orders with at least one item in ``cat``."""
        self._require_category(cat)
        return len(self._order_category[cat])

    def num_items_by_category(self, cat: Category) -> int:
        self._require_category(cat)
        return len(self._order_item_category[cat])

    def return_rate_by_category(self, cat: Category) -> float:
        """Fraction of the category's items that were returned."""
        self._require_category(cat)
        in_category = self._order_item_category[cat]
        if not in_category:
            raise EmptyAggregateError(f"category {cat!r} has no items")
        returned = in_category.intersection_cardinality(self._returned)
        return returned / len(in_category)

    def category_report(self) -> List[CategoryStats]:
        """Per-category order count, item count and return rate, sorted by category."""
        return [
            CategoryStats(
                category=cat,
                num_orders=self.num_orders_by_category(cat),
                num_items=self.num_items_by_category(cat),
                return_rate=self.return_rate_by_category(cat),
            )
            for cat in self.all_categories()
        ]

    # ------------------------------------------------------------------
    # Scalar aggregates
    # ------------------------------------------------------------------

    def aov(self) -> Decimal:
        """
        Average order value: total item price (refunds not subtracted) per order.

        Computed once on first call and cached for the lifetime of the dataset.
        Concurrent first callers wait for the single computation.
        """
        aov = self._aov
        if aov is not None:
            return aov
        with self._aov_lock:
            if self._aov is None:
                if not self._orders:
                    raise EmptyAggregateError("cannot compute AOV of a dataset with no orders")
                total = sum((item.item_price for item in self._items), Decimal(0))
                self._aov = total / Decimal(len(self._orders))
                logger.debug(f"AOV computed over {len(self._orders)} orders: {self._aov}")
            return self._aov

    def total_revenue(self) -> Decimal:
        """Sum of ``price - refunded`` over all items."""
        return self._total_revenue

    def return_rate(self) -> float:
        """Fraction of all items that were returned."""
        if not self._items:
            raise EmptyAggregateError("cannot compute return rate of an empty dataset")
        return len(self._returned) / len(self._items)

    def delivery_stats(self, percentile: int = 95) -> DeliveryStats:
        """
        Median and nearest-rank percentile of delivery time in days.

        Only items with a ``delivered_at`` timestamp are considered.
        """
        if not 0 < percentile <= 100:
            raise ValueError(f"percentile must be in (0, 100], got {percentile}")
        days = sorted(
            (item.delivered_at - item.ordered_at) / timedelta(days=1)
            for item in self._items
            if item.delivered_at is not None
        )
        if not days:
            raise EmptyAggregateError("no delivered items")

        mid = len(days) // 2
        if len(days) % 2:
            median = days[mid]
        else:
            median = (days[mid - 1] + days[mid]) / 2
        rank = math.ceil(percentile / 100 * len(days))
        return DeliveryStats(
            count=len(days),
            median_days=median,
            percentile=percentile,
            percentile_days=days[rank - 1],
        )

    # ------------------------------------------------------------------
    # Time-bucketed revenue
    # ------------------------------------------------------------------

    def revenue_by_day(self, start: datetime, end: datetime) -> List[IntervalRevenue]:
        return self.revenue_by_interval(start, end, intervals.DAY, intervals.day_title)

    def revenue_by_week(self, start: datetime, end: datetime) -> List[IntervalRevenue]:
        return self.revenue_by_interval(start, end, intervals.WEEK, intervals.week_title)

    def revenue_by_interval(self,
                            start: datetime,
                            end: datetime,
                            interval: timedelta,
                            title_fn: Optional[intervals.TitleFn] = None) -> List[IntervalRevenue]:
        """Revenue per fixed-length bucket covering ``[start, end]``, empty buckets included."""
        return intervals.revenue_by_interval(self._items, start, end, interval, title_fn)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return (f"OrderDataset(items={len(self._items)}, orders={len(self._orders)}, "
                f"categories={len(self._categories)})")
