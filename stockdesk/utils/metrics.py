"""Performance metrics calculation utilities.

Provides the statistics derived from a simulated trade log and equity curve.
"""

import logging
from typing import Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


class MetricsCalculator:
    """Calculator for backtest summary statistics."""

    @staticmethod
    def calculate_max_drawdown(
        equity: Sequence[float], initial_peak: Optional[float] = None
    ) -> float:
        """Calculate maximum drawdown of an equity curve.

        The running peak starts at ``initial_peak`` (when given) so a curve
        that only ever declines from the starting capital still registers
        its drawdown.

        Args:
            equity: Equity values in time order
            initial_peak: Starting peak, usually the initial capital

        Returns:
            Maximum drawdown as a percentage (0-100), 0 when equity never
            dips below its running peak
        """
        values = np.asarray(equity, dtype=float)
        if initial_peak is not None:
            values = np.concatenate(([float(initial_peak)], values))
        if len(values) < 2:
            return 0.0

        running_max = np.maximum.accumulate(values)
        with np.errstate(divide="ignore", invalid="ignore"):
            drawdowns = np.where(running_max > 0, (running_max - values) / running_max, 0.0)

        return float(np.max(drawdowns) * 100)

    @staticmethod
    def calculate_win_rate(winning_trades: int, total_trades: int) -> float:
        """Calculate win rate.

        Args:
            winning_trades: Number of profitable round trips
            total_trades: Number of closed round trips

        Returns:
            Win rate as a percentage (0-100), 0 when there are no trades
        """
        if total_trades <= 0:
            return 0.0

        return float(winning_trades / total_trades * 100)

    @staticmethod
    def calculate_average_trade_profit(profits: Sequence[float]) -> float:
        """Average realized P&L per closed trade (0 when there are none)."""
        if not profits:
            return 0.0

        return float(np.sum(profits) / len(profits))
