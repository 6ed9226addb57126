# ========================
# src/utils/data_generator.py
# ========================

"""
Data Generation Utilities

Generates realistic order item exports with optional error injection,
for demos, scale tests and unit tests.
"""

import csv
import io
import random
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Dict, Any, Optional, TextIO
from pathlib import Path

from src.reporting.ingestion import REQUIRED_FIELDS

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def format_timestamp(ts: datetime) -> str:
    """RFC 3339 with a 'Z' suffix for UTC."""
    return ts.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


class DataGenerator:
    """
    Order export generator.

    Every order gets 1-4 line items sharing the order id and order timestamp.
    Rows are written with the header in REQUIRED_FIELDS order.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize data generator.

        Args:
            seed (int): Random seed for reproducible data generation
        """
        self.rng = random.Random(seed)
        self._initialize_data_patterns()
        logger.info(f"DataGenerator initialized with seed: {seed}")

    def _initialize_data_patterns(self) -> None:
        """Initialize the product catalog and distributions."""
        self.products = [
            {"name": "iPhone 13", "category": "Electronics > Phones > Smartphones", "base_price": 520,
             "specs": {"color": ["black", "blue", "pink"], "storage": ["128GB", "256GB"]}},
            {"name": "Galaxy S21", "category": "Electronics > Phones > Smartphones", "base_price": 380,
             "specs": {"color": ["gray", "violet"], "storage": ["128GB", "256GB"]}},
            {"name": "Pixel 7", "category": "Electronics > Phones", "base_price": 330,
             "specs": {"color": ["obsidian", "snow"]}},
            {"name": "MacBook Air M1", "category": "Electronics > Laptops", "base_price": 700,
             "specs": {"ram": ["8GB", "16GB"], "keyboard": ["DE", "US", "FR"]}},
            {"name": "ThinkPad T14", "category": "Electronics > Laptops", "base_price": 560,
             "specs": {"ram": ["16GB", "32GB"]}},
            {"name": "iPad 9", "category": "Electronics > Tablets", "base_price": 290,
             "specs": {"storage": ["64GB", "256GB"]}},
            {"name": "Apple Watch SE", "category": "Electronics > Wearables", "base_price": 180,
             "specs": {"size": ["40mm", "44mm"]}},
            {"name": "AirPods Pro", "category": "Electronics > Audio", "base_price": 150, "specs": {}},
            {"name": "Nintendo Switch", "category": "Gaming > Consoles", "base_price": 230,
             "specs": {"edition": ["standard", "OLED"]}},
            {"name": "Espresso Machine", "category": "Home > Kitchen", "base_price": 260,
             "specs": {"color": ["silver", "black"]}},
        ]

        self.countries = [
            {"code": "DE", "weight": 0.35},
            {"code": "FR", "weight": 0.2},
            {"code": "IT", "weight": 0.15},
            {"code": "AT", "weight": 0.1},
            {"code": "NL", "weight": 0.1},
            {"code": "ES", "weight": 0.1},
        ]

        self.customers = [f"customer{i}@example.com" for i in range(1, 200)]
        self.payment_statuses = ["paid", "paid", "paid", "pending", "refunded"]

        self.return_probability = 0.08
        self.commission_rate = Decimal('0.12')

    def generate_dataset(self,
                         file_path: str,
                         num_rows: int,
                         error_rate: float = 0.0,
                         start_date: Optional[datetime] = None,
                         days: int = 90) -> Dict[str, Any]:
        """
        Generate an order export file.

        Args:
            file_path (str): Output CSV file path
            num_rows (int): Number of item rows to generate
            error_rate (float): Fraction of rows with an intentionally malformed field
            start_date (datetime): Earliest order timestamp
            days (int): Number of days the orders are spread over

        Returns:
            dict: Generation statistics
        """
        logger.info(f"Generating {num_rows:,} rows with {error_rate:.1%} error rate...")
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, 'w', newline='', encoding='utf-8') as f:
            stats = self.write_rows(f, num_rows, error_rate, start_date, days)

        logger.info(f"Dataset generated: {file_path}")
        logger.info(f"Error breakdown: {stats['error_types']}")
        return stats

    def generate_csv_text(self,
                          num_rows: int,
                          error_rate: float = 0.0,
                          start_date: Optional[datetime] = None,
                          days: int = 90) -> str:
        """Generate an order export as an in-memory CSV string."""
        buffer = io.StringIO()
        self.write_rows(buffer, num_rows, error_rate, start_date, days)
        return buffer.getvalue()

    def write_rows(self,
                   stream: TextIO,
                   num_rows: int,
                   error_rate: float = 0.0,
                   start_date: Optional[datetime] = None,
                   days: int = 90) -> Dict[str, Any]:
        """Write the header and ``num_rows`` item rows to ``stream``."""
        if start_date is None:
            today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
            start_date = today - timedelta(days=days)

        stats = {
            'total_rows': num_rows,
            'error_rate': error_rate,
            'start_date': start_date,
            'num_orders': 0,
            'records_with_errors': 0,
            'error_types': {}
        }

        writer = csv.writer(stream)
        writer.writerow(REQUIRED_FIELDS)

        rows_written = 0
        while rows_written < num_rows:
            order_size = min(self.rng.randint(1, 4), num_rows - rows_written)
            for row in self._generate_order(stats['num_orders'], order_size, start_date, days):
                if self.rng.random() < error_rate:
                    self._inject_error(row, stats)
                writer.writerow(row)
            stats['num_orders'] += 1
            rows_written += order_size

        logger.debug(f"Generated {rows_written:,} records in {stats['num_orders']:,} orders")
        stats['error_rate_actual'] = stats['records_with_errors'] / num_rows if num_rows else 0.0
        return stats

    def _generate_order(self,
                        order_index: int,
                        size: int,
                        start_date: datetime,
                        days: int) -> List[List[str]]:
        """Generate the item rows of one order."""
        order_id = f"ORD-{order_index:08d}"
        ordered_at = start_date + timedelta(seconds=self.rng.randint(0, days * 86400 - 1))
        customer_email = self.rng.choice(self.customers)
        country = self.rng.choices(
            self.countries, weights=[c["weight"] for c in self.countries]
        )[0]["code"]

        rows = []
        for _ in range(size):
            product = self.rng.choice(self.products)
            price = (Decimal(product["base_price"]) *
                     Decimal(str(self.rng.uniform(0.8, 1.2)))).quantize(CENT)
            commission = (price * self.commission_rate).quantize(CENT)
            refunded = price if self.rng.random() < self.return_probability else Decimal('0')
            payment_status = "refunded" if refunded else self.rng.choice(self.payment_statuses[:-1])

            shipped_at = delivered_at = None
            if self.rng.random() < 0.9:
                shipped_at = ordered_at + timedelta(hours=self.rng.randint(4, 72))
                if self.rng.random() < 0.85:
                    delivered_at = shipped_at + timedelta(hours=self.rng.randint(20, 120))

            specs = "|".join(
                f"{key}={self.rng.choice(values)}" for key, values in product["specs"].items()
            )
            rows.append([
                order_id,
                format_timestamp(ordered_at),
                customer_email,
                product["name"],
                specs,
                str(price),
                str(commission),
                str(refunded),
                payment_status,
                country,
                format_timestamp(shipped_at) if shipped_at else "",
                format_timestamp(delivered_at) if delivered_at else "",
                product["category"],
            ])
        return rows

    def _inject_error(self, row: List[str], stats: Dict[str, Any]) -> None:
        """Corrupt one parsed field of ``row`` in place."""
        error_type = self.rng.choice(['malformed_price', 'malformed_timestamp', 'missing_timestamp'])
        fields = list(REQUIRED_FIELDS)

        if error_type == 'malformed_price':
            row[fields.index('item_price')] = f"€{row[fields.index('item_price')]}"
        elif error_type == 'malformed_timestamp':
            row[fields.index('ordered_at')] = row[fields.index('ordered_at')].replace('T', ' at ')
        else:
            row[fields.index('ordered_at')] = ""

        stats['records_with_errors'] += 1
        stats['error_types'][error_type] = stats['error_types'].get(error_type, 0) + 1
