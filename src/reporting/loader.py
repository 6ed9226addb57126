# ========================
# src/reporting/loader.py
# ========================

"""
Dataset Loader Module

Coordinates reading, parsing and indexing of an order export into an OrderDataset.
"""

import logging
from typing import Any, Dict, Optional, TextIO, Union

from .cleaning import OrderItemParser
from .dataset import OrderDataset
from .exceptions import OrderParseError
from .ingestion import CSVReader
from ..utils.config import Config
from ..utils.performance_monitor import monitor_performance

logger = logging.getLogger(__name__)


class DatasetLoader:
    """
    Builds an OrderDataset from a CSV export.

    The loader owns the dataset exclusively until ``load`` returns; the
    returned dataset is then only read.
    """

    def __init__(self,
                 source: Union[str, TextIO, CSVReader],
                 config: Optional[Config] = None,
                 chunk_size: Optional[int] = None,
                 strict: Optional[bool] = None):
        """
        Initialize the loader.

        Args:
            source: CSV path, text stream, or a prepared CSVReader
            config (Config): Configuration object
            chunk_size (int): Rows per chunk, defaults to the configured value
            strict (bool): Abort on the first malformed row instead of dropping it
        """
        self.config = config or Config()
        self.reader = source if isinstance(source, CSVReader) else CSVReader(source)
        self.chunk_size = chunk_size or self.config.DEFAULT_CHUNK_SIZE
        self.strict = self.config.STRICT_PARSING if strict is None else strict
        self.parser = OrderItemParser(
            category_separator=self.config.CATEGORY_SEPARATOR,
            spec_separator=self.config.SPEC_SEPARATOR,
            spec_key_value_separator=self.config.SPEC_KEY_VALUE_SEPARATOR,
        )
        self.results: Dict[str, Any] = {}

        logger.info("DatasetLoader initialized:")
        logger.info(f"  Chunk size: {self.chunk_size}")
        logger.info(f"  Strict parsing: {self.strict}")

    def load(self) -> OrderDataset:
        """
        Read, parse and index every row.

        Returns:
            OrderDataset: The built dataset

        Raises:
            MissingFieldError: If the header lacks a required field
            OrderParseError: In strict mode, on the first malformed row
        """
        dataset = OrderDataset()

        with monitor_performance("Dataset build", self.config.LOG_CHUNK_INTERVAL) as monitor:
            for chunk_num, raw_chunk in enumerate(self.reader.read_in_chunks(self.chunk_size), start=1):
                added = self._process_chunk(dataset, raw_chunk)
                logger.debug(f"Chunk {chunk_num}: {added}/{len(raw_chunk)} rows indexed")
                monitor.update_progress(len(raw_chunk))

        self.results = {
            'num_order_items': dataset.num_order_items(),
            'num_orders': dataset.num_orders(),
            'num_categories': len(dataset.all_categories()),
            'parsing_stats': self.parser.get_statistics(),
            'performance': monitor.summary,
        }
        self._log_final_summary(dataset)
        return dataset

    def _process_chunk(self, dataset: OrderDataset, raw_chunk) -> int:
        added = 0
        for row in raw_chunk:
            row_number = row.get(CSVReader.ROW_NUMBER_KEY)
            try:
                item = self.parser.parse_row(row, row_number)
            except OrderParseError as e:
                if self.strict:
                    logger.error(f"Aborting import: {e}")
                    raise
                self.parser.records_dropped += 1
                logger.warning(f"Dropping malformed row: {e}")
                continue
            dataset.add(item)
            added += 1
        return added

    def _log_final_summary(self, dataset: OrderDataset) -> None:
        stats = self.results['parsing_stats']
        logger.info("=" * 60)
        logger.info("DATASET BUILD SUMMARY")
        logger.info("=" * 60)
        logger.info(f"Rows read: {stats['records_processed']:,}")
        logger.info(f"Rows dropped: {stats['records_dropped']:,}")
        logger.info(f"Order items: {dataset.num_order_items():,}")
        logger.info(f"Orders: {dataset.num_orders():,}")
        logger.info(f"Categories: {self.results['num_categories']:,}")
        logger.info("=" * 60)


def import_order_dataset_from_csv(source: Union[str, TextIO, CSVReader],
                                  config: Optional[Config] = None,
                                  **kwargs) -> OrderDataset:
    """Convenience wrapper: build a DatasetLoader and return the loaded dataset."""
    return DatasetLoader(source, config=config, **kwargs).load()
