# ========================
# src/utils/performance_monitor.py
# ========================

"""
Build Monitoring Utilities

Tracks elapsed time, indexing rate and resident memory while a dataset is built.
"""

import os
import time
import logging
from contextlib import contextmanager
from typing import Dict, Any, Iterator, Optional

import psutil

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """
    Watches one dataset build.

    Memory is sampled once per chunk, so ``peak_rss_mb`` is the highest
    sampled value rather than a true high-water mark.
    """

    def __init__(self, name: str = "Dataset build", log_interval: int = 20):
        """
        Args:
            name (str): Label used in log lines
            log_interval (int): Emit a progress line every N chunks
        """
        self.name = name
        self.log_interval = max(1, log_interval)
        self.started_at: Optional[float] = None
        self.finished_at: Optional[float] = None
        self.peak_rss_mb = 0.0
        self.rows = 0
        self.chunks = 0
        self.summary: Dict[str, Any] = {}
        self._process = psutil.Process(os.getpid())

    def start_monitoring(self) -> None:
        self.started_at = time.perf_counter()
        self.peak_rss_mb = self._rss_mb()
        logger.info(f"{self.name} started (RSS {self.peak_rss_mb:.2f} MB)")

    def update_progress(self, rows_in_chunk: int) -> None:
        """Record one finished chunk of ``rows_in_chunk`` rows."""
        self.rows += rows_in_chunk
        self.chunks += 1
        rss = self._rss_mb()
        if rss > self.peak_rss_mb:
            self.peak_rss_mb = rss

        if self.chunks % self.log_interval == 0:
            elapsed = self._elapsed()
            rate = self.rows / elapsed if elapsed > 0 else 0
            logger.info(
                f"{self.name}: {self.chunks} chunks, {self.rows:,} rows "
                f"({rate:.0f} rows/sec), RSS {rss:.2f} MB"
            )

    def _elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else time.perf_counter()
        return end - self.started_at

    def stop_monitoring(self) -> Dict[str, Any]:
        """
        Close the measurement window.

        Returns:
            dict: build_seconds, rows, chunks, rows_per_second, peak_rss_mb
        """
        self.finished_at = time.perf_counter()
        seconds = self._elapsed()
        self.summary = {
            'name': self.name,
            'build_seconds': seconds,
            'rows': self.rows,
            'chunks': self.chunks,
            'rows_per_second': self.rows / seconds if seconds > 0 else 0,
            'peak_rss_mb': self.peak_rss_mb,
        }

        logger.info(
            f"{self.name} finished: {self.rows:,} rows in {seconds:.2f}s "
            f"({self.summary['rows_per_second']:.0f} rows/sec), peak RSS {self.peak_rss_mb:.2f} MB"
        )
        return self.summary

    def _rss_mb(self) -> float:
        return self._process.memory_info().rss / (1024 * 1024)


@contextmanager
def monitor_performance(name: str = "Dataset build", log_interval: int = 20) -> Iterator[PerformanceMonitor]:
    """
    Run the enclosed block under a PerformanceMonitor.

    The summary is filled in even when the block raises.

    Yields:
        PerformanceMonitor: The active monitor
    """
    monitor = PerformanceMonitor(name, log_interval)
    monitor.start_monitoring()
    try:
        yield monitor
    finally:
        monitor.stop_monitoring()
