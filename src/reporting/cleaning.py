# ========================
# src/reporting/cleaning.py
# ========================

"""
Order Item Parsing Module

Validates raw CSV rows and converts them into immutable OrderItem values.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Any, Tuple

from .exceptions import OrderParseError
from .models import Category, ItemSpec, OrderItem

logger = logging.getLogger(__name__)

# YYYY-MM-DDTHH:MM:SS[.fraction](Z|+HH:MM|-HH:MM), the offset optional only when allowed
RFC3339_PATTERN = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))?",
    re.ASCII,
)


def parse_rfc3339(text: str, require_offset: bool = True) -> datetime:
    """
    Parse an RFC 3339 timestamp such as 2024-01-05T10:00:00.5Z.

    Fractional seconds beyond microseconds are truncated. Without
    ``require_offset`` a missing offset yields a naive datetime.

    Raises:
        ValueError: If the text is not RFC 3339 or a component is out of range
    """
    match = RFC3339_PATTERN.fullmatch(text.strip())
    if match is None:
        raise ValueError(f"not an RFC 3339 timestamp: {text!r}")
    year, month, day, hour, minute, second, fraction, zulu, sign, off_hours, off_minutes = match.groups()

    if zulu:
        tz = timezone.utc
    elif sign:
        if int(off_hours) > 23 or int(off_minutes) > 59:
            raise ValueError(f"UTC offset out of range: {text!r}")
        offset = timedelta(hours=int(off_hours), minutes=int(off_minutes))
        tz = timezone(-offset if sign == '-' else offset)
    elif require_offset:
        raise ValueError("missing UTC offset")
    else:
        tz = None

    microsecond = int((fraction + '000000')[:6]) if fraction else 0
    return datetime(int(year), int(month), int(day), int(hour), int(minute), int(second),
                    microsecond, tzinfo=tz)


class OrderItemParser:
    """
    Parses raw order item rows.

    Besides type conversion the parser assigns each distinct order id a dense
    numeric id (0, 1, 2, ...) in order of first appearance. One parser instance
    must be used for the whole load so those ids stay stable.
    """

    # Fields copied through as text; a short CSV row leaves them as None
    TEXT_FIELDS = ('order_id', 'customer_email', 'item_name', 'item_specs',
                   'payment_status', 'country', 'category')

    def __init__(self,
                 category_separator: str = '>',
                 spec_separator: str = '|',
                 spec_key_value_separator: str = '='):
        """
        Initialize the parser.

        Args:
            category_separator (str): Separator between category path segments
            spec_separator (str): Separator between item spec entries
            spec_key_value_separator (str): Separator between a spec key and its value
        """
        self.category_separator = category_separator
        self.spec_separator = spec_separator
        self.spec_key_value_separator = spec_key_value_separator

        self._numeric_order_ids: Dict[str, int] = {}
        self.records_processed = 0
        self.records_dropped = 0
        logger.info("OrderItemParser initialized")

    def numeric_order_id(self, order_id: str) -> int:
        """Dense id for ``order_id``, assigned on first sight."""
        numeric_id = self._numeric_order_ids.get(order_id)
        if numeric_id is None:
            numeric_id = len(self._numeric_order_ids)
            self._numeric_order_ids[order_id] = numeric_id
        return numeric_id

    def parse_row(self, row: Dict[str, Any], row_number: Optional[int] = None) -> OrderItem:
        """
        Convert a raw row into an OrderItem.

        Args:
            row (dict): Raw row keyed by CSV header field
            row_number (int): Data row number, used in error messages

        Returns:
            OrderItem: The parsed item

        Raises:
            OrderParseError: If any field is malformed
        """
        self.records_processed += 1
        try:
            for field in self.TEXT_FIELDS:
                if row.get(field) is None:
                    raise OrderParseError(field, '', "missing column")
            ordered_at = self._parse_timestamp(row, 'ordered_at')
            item_price = self._parse_decimal(row, 'item_price')
            commission = self._parse_decimal(row, 'commission')
            refunded = self._parse_decimal(row, 'refunded')
            shipped_at = self._parse_optional_timestamp(row, 'shipped_at')
            delivered_at = self._parse_optional_timestamp(row, 'delivered_at')
        except OrderParseError as e:
            if row_number is None:
                raise
            raise OrderParseError(e.field, e.value, e.reason, row_number) from e

        order_id = row['order_id']
        return OrderItem(
            order_id=order_id,
            numeric_order_id=self.numeric_order_id(order_id),
            ordered_at=ordered_at,
            customer_email=row['customer_email'],
            item_name=row['item_name'],
            item_specs=self.parse_item_specs(row['item_specs']),
            item_price=item_price,
            commission=commission,
            refunded=refunded,
            payment_status=row['payment_status'],
            country=row['country'],
            shipped_at=shipped_at,
            delivered_at=delivered_at,
            category=self.parse_category_path(row['category']),
        )

    def parse_category_path(self, raw: Optional[str]) -> Tuple[Category, ...]:
        """Split a path like 'Electronics > Phones' into its non-empty segments."""
        if not raw:
            return ()
        segments = (segment.strip() for segment in raw.split(self.category_separator))
        return tuple(segment for segment in segments if segment)

    def parse_item_specs(self, raw: Optional[str]) -> Tuple[ItemSpec, ...]:
        """Split 'color=black|storage=128GB' into specs. Entries without a separator are skipped."""
        if not raw:
            return ()
        specs = []
        for entry in raw.split(self.spec_separator):
            key, found, value = entry.partition(self.spec_key_value_separator)
            if not found:
                continue
            specs.append(ItemSpec(key=key, raw_value=value))
        return tuple(specs)

    def _parse_timestamp(self, row: Dict[str, Any], field: str) -> datetime:
        """Parse an RFC 3339 timestamp. A UTC offset (or 'Z') is required."""
        value = row.get(field)
        if not value:
            raise OrderParseError(field, value or '', "empty timestamp")
        try:
            return parse_rfc3339(value)
        except ValueError as e:
            raise OrderParseError(field, value, str(e)) from e

    def _parse_optional_timestamp(self, row: Dict[str, Any], field: str) -> Optional[datetime]:
        if not row.get(field):
            return None
        return self._parse_timestamp(row, field)

    def _parse_decimal(self, row: Dict[str, Any], field: str) -> Decimal:
        """Parse an exact decimal amount. NaN and infinities are rejected."""
        value = row.get(field)
        if value is None:
            raise OrderParseError(field, '', "missing amount")
        try:
            amount = Decimal(value)
        except InvalidOperation as e:
            raise OrderParseError(field, value, "invalid decimal") from e
        if not amount.is_finite():
            raise OrderParseError(field, value, "amount must be finite")
        return amount

    def get_statistics(self) -> Dict[str, Any]:
        """Get parsing statistics."""
        return {
            'records_processed': self.records_processed,
            'records_dropped': self.records_dropped,
            'records_parsed': self.records_processed - self.records_dropped,
            'distinct_orders': len(self._numeric_order_ids),
            'success_rate': (self.records_processed - self.records_dropped) / self.records_processed * 100 if self.records_processed > 0 else 0
        }
