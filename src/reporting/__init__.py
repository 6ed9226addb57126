# ========================
# src/reporting/__init__.py
# ========================

"""
Order Reporting Package

In-memory order dataset with bitmap-indexed aggregate queries:
- models: OrderItem and result value types
- ingestion: Chunked CSV reading and header validation
- cleaning: Row parsing into OrderItem values
- dataset: Record store, bitmap indices and queries
- intervals: Time-bucketed revenue
- loader: Build coordination
- rendering: Text output for the CLI
"""

from .models import ItemSpec, OrderItem, IntervalRevenue, CategoryStats, DeliveryStats
from .exceptions import (
    ReportingError,
    CategoryNotFoundError,
    EmptyAggregateError,
    MissingFieldError,
    OrderParseError,
)
from .ingestion import CSVReader
from .cleaning import OrderItemParser
from .dataset import OrderDataset
from .loader import DatasetLoader, import_order_dataset_from_csv

__all__ = [
    'ItemSpec',
    'OrderItem',
    'IntervalRevenue',
    'CategoryStats',
    'DeliveryStats',
    'ReportingError',
    'CategoryNotFoundError',
    'EmptyAggregateError',
    'MissingFieldError',
    'OrderParseError',
    'CSVReader',
    'OrderItemParser',
    'OrderDataset',
    'DatasetLoader',
    'import_order_dataset_from_csv',
]

__version__ = "1.0.0"
