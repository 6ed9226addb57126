# ========================
# api_server.py
# ========================

"""
FastAPI Server for the Order Reporting Engine

Serves read-only aggregate queries over an in-memory order dataset.
A dataset is loaded at startup from the configured input file (if present)
and can be replaced by uploading a new CSV export.
"""

import csv
import logging
import threading
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, File, UploadFile, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from src.reporting import (
    CategoryNotFoundError,
    DatasetLoader,
    EmptyAggregateError,
    IntervalRevenue,
    MissingFieldError,
    OrderDataset,
    OrderParseError,
)
from src.reporting.ingestion import reader_from_bytes
from src.utils.config import Config
from src.utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)

config = Config()

NO_DATASET_MSG = "No dataset loaded. Upload a CSV export via POST /upload"


class DatasetState:
    """
    Holds the currently published dataset.

    Builds happen on a private OrderDataset; only a fully built one is
    published, so readers never observe a dataset under construction.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.dataset: Optional[OrderDataset] = None
        self.source: Optional[str] = None
        self.loaded_at: Optional[str] = None
        self.load_results: Dict[str, Any] = {}

    def publish(self, dataset: OrderDataset, source: str, results: Dict[str, Any]) -> None:
        with self._lock:
            self.dataset = dataset
            self.source = source
            self.loaded_at = datetime.now().isoformat()
            self.load_results = results
        logger.info(f"Published dataset from {source}: {dataset!r}")

    def clear(self) -> None:
        with self._lock:
            self.dataset = None
            self.source = None
            self.loaded_at = None
            self.load_results = {}


dataset_state = DatasetState()


def load_default_dataset() -> None:
    """Load the configured input file, if there is one."""
    input_file = Path(config.DEFAULT_INPUT_FILE)
    if not input_file.is_file():
        logger.warning(f"Input file not found: {input_file}. Waiting for an upload.")
        return
    loader = DatasetLoader(str(input_file), config=config)
    dataset = loader.load()
    dataset_state.publish(dataset, str(input_file), loader.results)


app = FastAPI(
    title="Order Reporting API",
    description="Aggregate queries (AOV, revenue buckets, category order counts and return rates) over order exports",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def require_dataset() -> OrderDataset:
    dataset = dataset_state.dataset
    if dataset is None:
        raise HTTPException(status_code=503, detail=NO_DATASET_MSG)
    return dataset


def money(amount: Decimal) -> str:
    """Decimals go over the wire as strings to stay exact."""
    return str(amount)


def serialize_buckets(buckets: List[IntervalRevenue]) -> List[Dict[str, Any]]:
    return [
        {
            'start': bucket.start.isoformat(),
            'end': bucket.end.isoformat(),
            'title': bucket.title,
            'revenue': money(bucket.revenue),
        }
        for bucket in buckets
    ]


def resolve_range(dataset: OrderDataset,
                  start: Optional[datetime],
                  end: Optional[datetime]):
    earliest, latest = dataset.date_range()
    start = start or earliest
    end = end or latest
    if start is None or end is None:
        raise HTTPException(status_code=422, detail="Dataset is empty; pass explicit start and end")
    return start, end


@app.get("/")
async def root():
    """API information and available endpoints."""
    return {
        "message": "Order Reporting API",
        "version": app.version,
        "endpoints": {
            "health": "GET /health",
            "upload": "POST /upload",
            "summary": "GET /summary",
            "categories": "GET /categories",
            "category": "GET /categories/{category}",
            "revenue_by_day": "GET /revenue/day?start=&end=",
            "revenue_by_week": "GET /revenue/week?start=&end=",
            "revenue_by_interval": "GET /revenue/interval?hours=&start=&end=",
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "dataset_loaded": dataset_state.dataset is not None,
        "source": dataset_state.source,
    }


@app.post("/upload")
def upload_file(file: UploadFile = File(..., description="Order export CSV")):
    """
    Build a dataset from an uploaded CSV export and publish it.

    Malformed rows abort the build (or are dropped when STRICT_PARSING is off);
    the previously published dataset stays in place on failure.
    """
    if not file.filename or not file.filename.lower().endswith('.csv'):
        raise HTTPException(status_code=400, detail="Only CSV files are supported")

    content = file.file.read()
    try:
        reader = reader_from_bytes(content, name=file.filename)
        loader = DatasetLoader(reader, config=config)
        dataset = loader.load()
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File is not valid UTF-8")
    except (MissingFieldError, OrderParseError, csv.Error) as e:
        logger.warning(f"Rejected upload {file.filename}: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    dataset_state.publish(dataset, file.filename, loader.results)
    return {
        "status": "loaded",
        "filename": file.filename,
        "num_order_items": loader.results['num_order_items'],
        "num_orders": loader.results['num_orders'],
        "num_categories": loader.results['num_categories'],
        "parsing_stats": loader.results['parsing_stats'],
    }


@app.get("/summary")
def get_summary():
    """Headline figures: counts, AOV, total revenue, return rate, delivery times."""
    dataset = require_dataset()
    earliest, latest = dataset.date_range()
    try:
        summary = {
            "num_order_items": dataset.num_order_items(),
            "num_orders": dataset.num_orders(),
            "num_categories": len(dataset.all_categories()),
            "earliest_ordered_at": earliest.isoformat() if earliest else None,
            "latest_ordered_at": latest.isoformat() if latest else None,
            "aov": money(dataset.aov()),
            "total_revenue": money(dataset.total_revenue()),
            "return_rate": dataset.return_rate(),
        }
    except EmptyAggregateError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        delivery = dataset.delivery_stats(config.DELIVERY_PERCENTILE)
        summary["delivery_days"] = {
            "count": delivery.count,
            "median": delivery.median_days,
            f"p{delivery.percentile}": delivery.percentile_days,
        }
    except EmptyAggregateError:
        summary["delivery_days"] = None
    return summary


@app.get("/categories")
def list_categories():
    """Order count, item count and return rate for every category."""
    dataset = require_dataset()
    return {
        "categories": [
            {
                "category": stats.category,
                "num_orders": stats.num_orders,
                "num_items": stats.num_items,
                "return_rate": stats.return_rate,
            }
            for stats in dataset.category_report()
        ]
    }


@app.get("/categories/{category}")
def get_category(category: str):
    dataset = require_dataset()
    try:
        return {
            "category": category,
            "num_orders": dataset.num_orders_by_category(category),
            "num_items": dataset.num_items_by_category(category),
            "return_rate": dataset.return_rate_by_category(category),
        }
    except CategoryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EmptyAggregateError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/revenue/day")
def revenue_by_day(start: Optional[datetime] = Query(None, description="Range start (defaults to earliest order)"),
                   end: Optional[datetime] = Query(None, description="Range end (defaults to latest order)")):
    dataset = require_dataset()
    return {"buckets": serialize_buckets(dataset.revenue_by_day(*resolve_range(dataset, start, end)))}


@app.get("/revenue/week")
def revenue_by_week(start: Optional[datetime] = Query(None, description="Range start (defaults to earliest order)"),
                    end: Optional[datetime] = Query(None, description="Range end (defaults to latest order)")):
    dataset = require_dataset()
    return {"buckets": serialize_buckets(dataset.revenue_by_week(*resolve_range(dataset, start, end)))}


@app.get("/revenue/interval")
def revenue_by_interval(hours: int = Query(..., gt=0, description="Bucket length in hours"),
                        start: Optional[datetime] = Query(None),
                        end: Optional[datetime] = Query(None)):
    dataset = require_dataset()
    start, end = resolve_range(dataset, start, end)
    try:
        buckets = dataset.revenue_by_interval(start, end, timedelta(hours=hours))
    except (ValueError, OverflowError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"interval_hours": hours, "buckets": serialize_buckets(buckets)}


def start_server(host: str = "0.0.0.0", port: int = config.API_PORT):
    """Start the FastAPI server."""
    setup_logging(config.LOG_LEVEL, log_file="api_server.log", log_dir=config.LOG_DIR)
    invalid = config.invalid_settings()
    if invalid:
        logger.error(f"Invalid configuration: {', '.join(invalid)}")
        raise SystemExit(1)
    load_default_dataset()
    logger.info(f"Starting Order Reporting API server on {host}:{port}")
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="info"
    )


if __name__ == "__main__":
    start_server()
