"""Backtesting engines module.

Provides the strategy engine (candles to signals) and the trade simulator
(signals to trades, equity curve and summary).
"""

from .strategy_engine import StrategyEngine
from .trade_simulator import TradeSimulator

__all__ = ["StrategyEngine", "TradeSimulator"]
