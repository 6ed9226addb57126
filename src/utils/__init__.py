# ========================
# src/utils/__init__.py
# ========================

"""
Utilities Package

Configuration, logging and performance monitoring shared by the CLI and API.
DataGenerator lives in ``src.utils.data_generator``.
"""

from .config import Config
from .performance_monitor import monitor_performance, PerformanceMonitor
from .logging_setup import setup_logging

__all__ = [
    'Config',
    'monitor_performance',
    'PerformanceMonitor',
    'setup_logging',
]
