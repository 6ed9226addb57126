# ========================
# src/reporting/rendering.py
# ========================

"""
Text Rendering

Formats query results as plain-text tables for the terminal.
"""

import logging
from decimal import Decimal
from typing import List, Sequence

from .dataset import OrderDataset
from .exceptions import EmptyAggregateError
from .models import IntervalRevenue

logger = logging.getLogger(__name__)

RULE_WIDTH = 70


def format_money(amount: Decimal, currency: str = "€") -> str:
    """Format an amount with thousands separators and two decimals, e.g. '€ 1,234.50'."""
    return f"{currency} {amount.quantize(Decimal('0.01')):,}"


def format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render a bordered table. The first column is left aligned, the rest right aligned."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(cells: Sequence[str]) -> str:
        padded = [
            cell.ljust(widths[i]) if i == 0 else cell.rjust(widths[i])
            for i, cell in enumerate(cells)
        ]
        return "| " + " | ".join(padded) + " |"

    border = "+-" + "-+-".join("-" * w for w in widths) + "-+"
    out = [border, line(headers), border]
    out.extend(line(row) for row in rows)
    out.append(border)
    return "\n".join(out)


def render_summary(dataset: OrderDataset, currency: str = "€", percentile: int = 95) -> str:
    """Headline figures for the whole dataset."""
    lines = ["=" * RULE_WIDTH, "ORDER DATASET SUMMARY", "=" * RULE_WIDTH]
    lines.append(f"   • Order items: {dataset.num_order_items():,}")
    lines.append(f"   • Orders: {dataset.num_orders():,}")
    lines.append(f"   • Categories: {len(dataset.all_categories()):,}")

    earliest, latest = dataset.date_range()
    if earliest is not None:
        lines.append(f"   • Ordered between: {earliest:%Y-%m-%d} and {latest:%Y-%m-%d}")

    try:
        lines.append(f"   • AOV: {format_money(dataset.aov(), currency)}")
        lines.append(f"   • Total revenue: {format_money(dataset.total_revenue(), currency)}")
        lines.append(f"   • Return rate: {dataset.return_rate():.2%}")
    except EmptyAggregateError:
        lines.append("   • No orders loaded")

    try:
        delivery = dataset.delivery_stats(percentile)
        lines.append(
            f"   • Delivery days median: {delivery.median_days:.1f}, "
            f"p{delivery.percentile}: {delivery.percentile_days:.1f}"
        )
    except EmptyAggregateError:
        lines.append("   • Delivery days: no delivered items")

    lines.append("=" * RULE_WIDTH)
    return "\n".join(lines)


def render_revenue(buckets: List[IntervalRevenue], currency: str = "€", heading: str = "Period") -> str:
    """Revenue per bucket, followed by the total over all buckets."""
    rows = [[bucket.title, format_money(bucket.revenue, currency)] for bucket in buckets]
    total = sum((bucket.revenue for bucket in buckets), Decimal(0))
    rows.append(["Total", format_money(total, currency)])
    return format_table([heading, "Revenue"], rows)


def render_return_rates(dataset: OrderDataset) -> str:
    rows = [
        [stats.category, f"{stats.num_items:,}", f"{stats.return_rate:.2%}"]
        for stats in dataset.category_report()
    ]
    return format_table(["Category", "Items", "Return rate"], rows)


def render_order_counts(dataset: OrderDataset) -> str:
    rows = [
        [stats.category, f"{stats.num_orders:,}", f"{stats.num_orders / dataset.num_orders():.2%}"]
        for stats in dataset.category_report()
    ]
    return format_table(["Category", "Orders", "Share of orders"], rows)
