#!/usr/bin/env python3
# ========================
# scripts/run_large_scale_test.py
# ========================

"""
Script to test the reporting engine with a large order export.
Generates the data (unless it already exists), builds the dataset and
times every query against it.
"""

import sys
import os
import time
import logging

# Add project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.reporting import DatasetLoader
from src.utils.config import Config
from src.utils.data_generator import DataGenerator
from src.utils.logging_setup import setup_logging


def timed(label, fn, *args):
    started = time.perf_counter()
    result = fn(*args)
    elapsed_ms = (time.perf_counter() - started) * 1000
    print(f"   • {label}: {elapsed_ms:.2f} ms")
    return result


def main():
    """Run a large-scale test of the reporting engine."""

    if len(sys.argv) > 1:
        try:
            num_rows = int(sys.argv[1])
        except ValueError:
            print("Usage: python run_large_scale_test.py [num_rows]")
            print("Example: python run_large_scale_test.py 300000")
            sys.exit(1)
    else:
        num_rows = 300_000

    config = Config()
    setup_logging(config.LOG_LEVEL)
    input_file = f'data/raw/large_orders_{num_rows}.csv'

    print("=" * 60)
    print("LARGE SCALE REPORTING TEST")
    print("=" * 60)
    print(f"Target dataset size: {num_rows:,} rows")
    print(f"Input file: {input_file}")
    print("=" * 60)

    print(f"\n🔄 Step 1: Generating {num_rows:,} rows of sample data...")
    if os.path.exists(input_file):
        print("Using existing data file.")
    else:
        DataGenerator(seed=42).generate_dataset(input_file, num_rows, days=365)

    print("\n🔄 Step 2: Building dataset...")
    loader = DatasetLoader(input_file, config=config)
    dataset = loader.load()
    performance = loader.results['performance']
    print(f"   • Build time: {performance['build_seconds']:.2f} s")
    print(f"   • Peak memory: {performance['peak_rss_mb']:.1f} MB")

    print("\n🔄 Step 3: Timing queries...")
    start, end = dataset.date_range()
    timed("AOV (first call)", dataset.aov)
    timed("AOV (cached)", dataset.aov)
    timed("Total revenue", dataset.total_revenue)
    timed("Revenue by day", dataset.revenue_by_day, start, end)
    timed("Revenue by week", dataset.revenue_by_week, start, end)
    categories = timed("All categories", dataset.all_categories)
    timed(f"Order count for {len(categories)} categories",
          lambda: [dataset.num_orders_by_category(c) for c in categories])
    timed(f"Return rate for {len(categories)} categories",
          lambda: [dataset.return_rate_by_category(c) for c in categories])

    print("\n✅ Large scale test complete.")
    logging.getLogger(__name__).info(f"Large scale test finished for {dataset!r}")


if __name__ == '__main__':
    main()
