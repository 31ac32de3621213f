"""
Shared utilities for the backtesting engine

Contents:
- JSONFormatter: JSON log formatter
- setup_logger: Logger configuration utility
- MetricsCalculator: Drawdown, win rate and per-trade statistics
- PostgresClient: Async database connection
"""

from .logging import JSONFormatter, setup_logger
from .metrics import MetricsCalculator
from .postgres_client import PostgresClient

__all__ = [
    "JSONFormatter",
    "MetricsCalculator",
    "PostgresClient",
    "setup_logger",
]
