#!/usr/bin/env python3
# ========================
# main.py
# ========================

"""
Main Entry Point for the Order Reporting Engine

Loads an order export into memory and prints reports, either one-shot
(--report) or through an interactive menu.
"""

import re
import sys
import logging
import argparse
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

from src.reporting import OrderDataset, ReportingError, import_order_dataset_from_csv
from src.reporting import rendering
from src.reporting.cleaning import parse_rfc3339
from src.utils import Config, setup_logging
from src.utils.data_generator import DataGenerator

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)

REPORTS = {
    'summary': "Summary",
    'revenue-by-day': "Revenue by day",
    'revenue-by-week': "Revenue by week",
    'return-rate-by-category': "Return rate by category",
    'order-count-by-category': "Order count by category and subcategory",
}


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Order data reporting")
    parser.add_argument("csv", nargs="?", help="Order export CSV (defaults to REPORTING_INPUT_FILE)")
    parser.add_argument("--report", choices=sorted(REPORTS), help="Print one report and exit")
    parser.add_argument("--start", type=parse_date, help="Range start, YYYY-MM-DD or RFC 3339")
    parser.add_argument("--end", type=parse_date, help="Range end, YYYY-MM-DD or RFC 3339")
    parser.add_argument("--generate", type=int, metavar="N",
                        help="Generate N sample rows into the CSV path before loading")
    parser.add_argument("--seed", type=int, default=42, help="Seed for --generate")
    parser.add_argument("--lenient", action="store_true", help="Drop malformed rows instead of aborting")
    return parser.parse_args(argv)


def parse_date(value: str) -> datetime:
    """Accept a date or an RFC 3339 timestamp; naive values are taken as UTC."""
    text = value.strip()
    try:
        if DATE_PATTERN.fullmatch(text):
            parsed = datetime.strptime(text, '%Y-%m-%d')
        else:
            parsed = parse_rfc3339(text, require_offset=False)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def resolve_range(dataset: OrderDataset,
                  start: Optional[datetime],
                  end: Optional[datetime]) -> Tuple[datetime, datetime]:
    earliest, latest = dataset.date_range()
    start = start or earliest
    end = end or latest
    if start is None or end is None:
        raise ReportingError("dataset is empty and no --start/--end range was given")
    return start, end


def render_report(name: str, dataset: OrderDataset, config: Config,
                  start: Optional[datetime] = None, end: Optional[datetime] = None) -> str:
    currency = config.CURRENCY_SYMBOL
    if name == 'summary':
        return rendering.render_summary(dataset, currency, config.DELIVERY_PERCENTILE)
    if name == 'revenue-by-day':
        buckets = dataset.revenue_by_day(*resolve_range(dataset, start, end))
        return rendering.render_revenue(buckets, currency, heading="Day")
    if name == 'revenue-by-week':
        buckets = dataset.revenue_by_week(*resolve_range(dataset, start, end))
        return rendering.render_revenue(buckets, currency, heading="Week")
    if name == 'return-rate-by-category':
        return rendering.render_return_rates(dataset)
    if name == 'order-count-by-category':
        return rendering.render_order_counts(dataset)
    raise ValueError(f"unknown report {name!r}")


def run_menu(dataset: OrderDataset, config: Config, start=None, end=None) -> None:
    """Interactive loop: summary, numbered menu, report, repeat until quit."""
    choices = [name for name in REPORTS if name != 'summary']
    while True:
        print(render_report('summary', dataset, config))
        print("\nSelect from the below options:")
        for number, name in enumerate(choices, start=1):
            print(f"  {number}. {REPORTS[name]}")
        print(f"  {len(choices) + 1}. Quit")

        try:
            answer = input("> ").strip()
        except EOFError:
            return
        if answer in ('q', str(len(choices) + 1)):
            return
        if not answer.isdigit() or not 1 <= int(answer) <= len(choices):
            print(f"Unknown option: {answer!r}")
            continue

        print()
        print(render_report(choices[int(answer) - 1], dataset, config, start, end))
        try:
            input("\nPress Enter to return to menu")
        except EOFError:
            return


def main(argv=None) -> int:
    """Main execution function."""
    args = parse_args(argv)
    config = Config()

    setup_logging(
        log_level=config.LOG_LEVEL,
        log_file="reporting.log",
        log_dir=config.LOG_DIR
    )

    invalid = config.invalid_settings()
    if invalid:
        logger.error(f"Invalid configuration: {', '.join(invalid)}")
        return 1
    logger.debug(str(config))

    input_file = args.csv or config.DEFAULT_INPUT_FILE

    try:
        if args.generate:
            generator = DataGenerator(seed=args.seed)
            stats = generator.generate_dataset(input_file, args.generate)
            logger.info(f"Sample data generated: {stats['total_rows']:,} rows, {stats['num_orders']:,} orders")

        if not Path(input_file).is_file():
            logger.error(f"Input file does not exist: {input_file}")
            return 1

        strict = False if args.lenient else None
        dataset = import_order_dataset_from_csv(input_file, config=config, strict=strict)

        if args.report:
            print(render_report(args.report, dataset, config, args.start, args.end))
        else:
            run_menu(dataset, config, args.start, args.end)
        return 0

    except ReportingError as e:
        logger.error(f"Reporting failed: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
