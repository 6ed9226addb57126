# ========================
# src/reporting/models.py
# ========================

"""
Order Data Model

Immutable value types shared by the parser, the dataset and the presentation layer.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

# Aliases kept for readability at call sites
Category = str
OrderID = str


@dataclass(frozen=True)
class ItemSpec:
    """A single key/value specification attached to an order item (e.g. color=black)."""
    key: str
    raw_value: str


@dataclass(frozen=True)
class OrderItem:
    """
    One purchased line item.

    Amounts are exact decimals. ``refunded`` of zero means the item was not
    returned. ``shipped_at`` / ``delivered_at`` are None when unset.
    ``numeric_order_id`` is the dense order key assigned at load time.
    """
    order_id: OrderID
    numeric_order_id: int
    ordered_at: datetime
    customer_email: str
    item_name: str
    item_specs: Tuple[ItemSpec, ...]
    item_price: Decimal
    commission: Decimal
    refunded: Decimal
    payment_status: str
    country: str
    shipped_at: Optional[datetime]
    delivered_at: Optional[datetime]
    category: Tuple[Category, ...]

    @property
    def is_returned(self) -> bool:
        return self.refunded != 0

    @property
    def net_revenue(self) -> Decimal:
        """Item price minus the refunded amount."""
        return self.item_price - self.refunded


@dataclass(frozen=True)
class IntervalRevenue:
    """Revenue total for one time bucket ``[start, end)``."""
    start: datetime
    end: datetime
    title: str
    revenue: Decimal


@dataclass(frozen=True)
class CategoryStats:
    category: Category
    num_orders: int
    num_items: int
    return_rate: float


@dataclass(frozen=True)
class DeliveryStats:
    """Delivery time distribution in days over items that have been delivered."""
    count: int
    median_days: float
    percentile: int
    percentile_days: float
