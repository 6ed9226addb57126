# ========================
# src/reporting/exceptions.py
# ========================

"""
Reporting Exceptions

Exception Hierarchy:
    ReportingError
    ├── CategoryNotFoundError (LookupError)
    ├── EmptyAggregateError (ZeroDivisionError)
    ├── MissingFieldError (ValueError)
    └── OrderParseError (ValueError)

Query errors are raised to the immediate caller and never leave the dataset
in a modified state.
"""

from typing import Optional, Sequence


class ReportingError(Exception):
    """Base exception for all reporting errors."""
    pass


class CategoryNotFoundError(ReportingError, LookupError):
    """Raised when a query names a category that was never observed."""

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"unknown category {category!r}")


class EmptyAggregateError(ReportingError, ZeroDivisionError):
    """Raised when an aggregate would divide by an empty population."""
    pass


class MissingFieldError(ReportingError, ValueError):
    """Raised when the CSV header lacks a required field."""

    def __init__(self, field: str, header: Sequence[str]):
        self.field = field
        self.header = list(header)
        super().__init__(f"missing required field {field!r} in header {self.header!r}")


class OrderParseError(ReportingError, ValueError):
    """Raised when a field of an order item row cannot be parsed."""

    def __init__(self, field: str, value: str, reason: str, row_number: Optional[int] = None):
        self.field = field
        self.value = value
        self.reason = reason
        self.row_number = row_number
        location = f"row {row_number}: " if row_number is not None else ""
        super().__init__(f"{location}parse {field}: {reason} (value={value!r})")
