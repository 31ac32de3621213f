"""Repositories for the strategy catalog and the backtest store."""

from .backtest_repository import BacktestRepository
from .strategy_repository import StrategyRepository

__all__ = ["BacktestRepository", "StrategyRepository"]
