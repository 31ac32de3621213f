"""Trade simulator.

Replays a signal sequence against a cash account with a single long-only
position and no leverage:

- FLAT + BUY  -> LONG, buying ``floor(cash / price)`` shares (no-op if 0)
- LONG + SELL -> FLAT, realizing ``quantity * (price - entry_price)``
- BUY while LONG and SELL while FLAT are ignored
- a position still open on the final bar is closed at that bar's price
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..errors import InvalidParameter
from ..models import (
    BacktestSummary,
    EquityPoint,
    Position,
    PositionState,
    Signal,
    SignalAction,
    SimulationResult,
    Trade,
    TradeType,
)
from ..utils.metrics import MetricsCalculator

logger = logging.getLogger(__name__)


@dataclass
class _Account:
    """Cash, position and trade log of one run."""

    cash: float
    position: Position = field(default_factory=Position)
    trades: list[Trade] = field(default_factory=list)
    closed_profits: list[float] = field(default_factory=list)


class TradeSimulator:
    """Deterministic single-position trade simulator."""

    def __init__(self, metrics_calculator: Optional[MetricsCalculator] = None):
        """Initialize the simulator.

        Args:
            metrics_calculator: Calculator for summary statistics
        """
        self.metrics = metrics_calculator or MetricsCalculator()

    def run(self, signals: Sequence[Signal], initial_capital: float) -> SimulationResult:
        """Simulate trading on a signal sequence.

        Args:
            signals: One signal per bar, in bar order
            initial_capital: Starting cash, must be positive

        Returns:
            SimulationResult with trades, one equity point per bar and the
            summary statistics

        Raises:
            InvalidParameter: If ``initial_capital`` is not positive
        """
        if not initial_capital > 0 or math.isinf(initial_capital):
            raise InvalidParameter(
                f"initial_capital must be a positive amount, got {initial_capital!r}"
            )

        initial_capital = float(initial_capital)
        account = _Account(cash=initial_capital)
        equity_curve: list[EquityPoint] = []

        last = len(signals) - 1
        for i, signal in enumerate(signals):
            if signal.action == SignalAction.BUY and account.position.state is PositionState.FLAT:
                self._open_position(account, signal)
            elif signal.action == SignalAction.SELL and account.position.state is PositionState.LONG:
                self._close_position(account, signal)

            if i == last and account.position.state is PositionState.LONG:
                logger.debug(f"Forced close at final bar {signal.timestamp}")
                self._close_position(account, signal)

            equity = account.cash + account.position.quantity * signal.price
            equity_curve.append(EquityPoint(date=signal.timestamp, equity=equity))

        if not equity_curve:
            equity_curve.append(EquityPoint(date=None, equity=initial_capital))

        summary = self._summarize(account, equity_curve, initial_capital)
        return SimulationResult(summary=summary, trades=account.trades, equity_curve=equity_curve)

    def _open_position(self, account: _Account, signal: Signal) -> None:
        price = signal.price
        if price <= 0:
            return

        quantity = math.floor(account.cash / price)
        # float division can round up past what the cash actually covers
        if quantity > 0 and quantity * price > account.cash:
            quantity -= 1
        if quantity <= 0:
            return

        account.cash -= quantity * price
        account.position.open(quantity, price)
        account.trades.append(
            Trade(date=signal.timestamp, type=TradeType.BUY, price=price, quantity=quantity)
        )

    def _close_position(self, account: _Account, signal: Signal) -> None:
        position = account.position
        price = signal.price
        quantity = position.quantity
        profit = quantity * (price - position.entry_price)

        account.cash += quantity * price
        account.closed_profits.append(profit)
        account.trades.append(
            Trade(
                date=signal.timestamp,
                type=TradeType.SELL,
                price=price,
                quantity=quantity,
                profit=profit,
            )
        )
        position.close()

    def _summarize(
        self,
        account: _Account,
        equity_curve: list[EquityPoint],
        initial_capital: float,
    ) -> BacktestSummary:
        final_capital = account.cash
        profit = final_capital - initial_capital
        total_trades = len(account.closed_profits)
        winning_trades = sum(1 for p in account.closed_profits if p > 0)

        return BacktestSummary(
            initial_capital=initial_capital,
            final_capital=final_capital,
            profit=profit,
            profit_percentage=profit / initial_capital * 100,
            total_trades=total_trades,
            winning_trades=winning_trades,
            losing_trades=total_trades - winning_trades,
            win_rate=self.metrics.calculate_win_rate(winning_trades, total_trades),
            max_drawdown=self.metrics.calculate_max_drawdown(
                [point.equity for point in equity_curve], initial_peak=initial_capital
            ),
            avg_trade_profit=self.metrics.calculate_average_trade_profit(account.closed_profits),
        )
