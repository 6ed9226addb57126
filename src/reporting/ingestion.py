# ========================
# src/reporting/ingestion.py
# ========================

"""
Data Ingestion Module

Streams order item rows from a CSV export in chunks and validates the header.
"""

import csv
import io
import logging
from typing import Iterator, List, Dict, Optional, Union, TextIO

from .exceptions import MissingFieldError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    'order_id',
    'ordered_at',
    'customer_email',
    'item_name',
    'item_specs',
    'item_price',
    'commission',
    'refunded',
    'payment_status',
    'country',
    'shipped_at',
    'delivered_at',
    'category',
)


def check_header(header) -> None:
    """Raise MissingFieldError for the first required field absent from ``header``."""
    for field in REQUIRED_FIELDS:
        if field not in header:
            raise MissingFieldError(field, header)


class CSVReader:
    """
    Reads an order export in chunks of row dictionaries.

    The source can be a file path or an already opened text stream
    (an upload, for instance). Each row dict carries its 1-based data
    row number under ``__row__``.
    """

    ROW_NUMBER_KEY = '__row__'

    def __init__(self, source: Union[str, TextIO], name: Optional[str] = None):
        """
        Initialize the CSV reader.

        Args:
            source (str | TextIO): Path to the CSV file, or a text stream
            name (str): Optional display name used in log messages
        """
        self.source = source
        self.name = name
        self.header: List[str] = []
        self.rows_read = 0
        logger.info(f"Initialized CSVReader for: {self._describe_source()}")

    def _describe_source(self) -> str:
        if self.name:
            return self.name
        if isinstance(self.source, str):
            return self.source
        return getattr(self.source, 'name', '<stream>')

    def read_in_chunks(self, chunk_size: int) -> Iterator[List[Dict[str, str]]]:
        """
        A generator that yields lists of row dictionaries.

        Args:
            chunk_size (int): The number of rows to yield per chunk.

        Yields:
            list[dict]: A chunk of rows keyed by header field.

        Raises:
            MissingFieldError: If a required field is missing from the header
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        try:
            if isinstance(self.source, str):
                with open(self.source, 'r', newline='', encoding='utf-8') as f:
                    yield from self._read_stream(f, chunk_size)
            else:
                yield from self._read_stream(self.source, chunk_size)
        except FileNotFoundError:
            logger.error(f"File '{self.source}' was not found")
            raise
        except MissingFieldError as e:
            logger.error(f"Invalid CSV header: {e}")
            raise
        except csv.Error as e:
            logger.error(f"Error reading CSV row {self.rows_read + 1}: {e}")
            raise

    def _read_stream(self, stream: TextIO, chunk_size: int) -> Iterator[List[Dict[str, str]]]:
        reader = csv.DictReader(stream)
        self.header = list(reader.fieldnames or [])
        if not self.header:
            logger.warning(f"Empty CSV input: {self._describe_source()}")
            return
        check_header(self.header)
        logger.info(f"CSV header: {self.header}")

        chunk = []
        for row in reader:
            self.rows_read += 1
            row[self.ROW_NUMBER_KEY] = self.rows_read
            chunk.append(row)

            if len(chunk) == chunk_size:
                logger.debug(f"Yielding chunk with {len(chunk)} rows")
                yield chunk
                chunk = []

        if chunk:
            logger.debug(f"Yielding final chunk with {len(chunk)} rows")
            yield chunk

        logger.info(f"Total rows read: {self.rows_read}")


def reader_from_bytes(content: bytes, name: str = '<upload>') -> CSVReader:
    """Build a CSVReader over in-memory CSV bytes (UTF-8, optional BOM)."""
    stream = io.StringIO(content.decode('utf-8-sig'), newline='')
    return CSVReader(stream, name=name)
