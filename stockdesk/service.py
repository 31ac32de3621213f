"""Backtesting Service.

Implements the backtesting operations exposed to the API layer:
- run a backtest (catalog lookup, candle fetch, signals, simulation, storage)
- list a user's backtests
- fetch one backtest with its trades and equity curve
- list the strategies available for backtesting
"""

import logging
import math
from datetime import datetime
from typing import Any, Mapping, Optional

from .clients.market_data_client import CandleSource
from .config import config
from .engines.strategy_engine import StrategyEngine
from .engines.trade_simulator import TradeSimulator
from .errors import BacktestError, InvalidParameter, NoHistoricalData, NotFound, StrategyNotFound
from .models import BacktestDetail, BacktestListItem, BacktestResult, StrategyDefinition
from .repositories.backtest_repository import BacktestRepository
from .repositories.strategy_repository import StrategyRepository
from .strategies import merge_parameters, parse_parameters, resolve_strategy

logger = logging.getLogger(__name__)


class BacktestService:
    """Orchestrates backtest runs and read access to stored backtests."""

    def __init__(
        self,
        strategy_repository: StrategyRepository,
        backtest_repository: BacktestRepository,
        candle_source: CandleSource,
        strategy_engine: Optional[StrategyEngine] = None,
        trade_simulator: Optional[TradeSimulator] = None,
    ):
        """Initialize the service.

        Args:
            strategy_repository: Strategy catalog lookups
            backtest_repository: Backtest store
            candle_source: Historical market data
            strategy_engine: Signal generator (default StrategyEngine)
            trade_simulator: Simulator (default TradeSimulator)
        """
        self.strategies = strategy_repository
        self.backtests = backtest_repository
        self.candles = candle_source
        self.engine = strategy_engine or StrategyEngine()
        self.simulator = trade_simulator or TradeSimulator()

        logger.info("Backtesting service initialized")

    async def run_backtest(
        self,
        user_id: str,
        strategy_id: int,
        symbol: str,
        start_date: datetime,
        end_date: datetime,
        initial_capital: Optional[float] = None,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> BacktestResult:
        """Run a backtest and store it.

        Args:
            user_id: Requesting user, owner of the stored backtest
            strategy_id: Strategy catalog id
            symbol: Instrument symbol
            start_date: Window start
            end_date: Window end, after ``start_date``
            initial_capital: Starting cash, positive. Defaults to
                ``default_initial_capital`` from configuration
            parameters: Strategy parameters overriding the catalog defaults

        Returns:
            BacktestResult with the new backtest id, summary, trades and
            equity curve

        Raises:
            StrategyNotFound: Unknown strategy id
            InvalidParameter: Bad dates, capital or parameter types
            NoHistoricalData: No candles for the window
            UnknownStrategy: Catalog strategy not supported by the engine
            InsufficientData: Fewer candles than the strategy's lookback
            PersistenceFailure: The result could not be stored
        """
        logger.info(
            f"RunBacktest: user={user_id}, strategy_id={strategy_id}, symbol={symbol}, "
            f"window={start_date.isoformat()}..{end_date.isoformat()}"
        )
        if initial_capital is None:
            initial_capital = config.default_initial_capital

        try:
            strategy = await self.strategies.get_strategy(strategy_id)
            if strategy is None:
                raise StrategyNotFound(f"Strategy with id {strategy_id} not found")

            self._validate_request(start_date, end_date, initial_capital)

            candles = await self.candles.get_historical_candles(symbol, start_date, end_date)
            if not candles:
                raise NoHistoricalData(
                    f"No historical data available for {symbol} in the specified date range"
                )

            spec = resolve_strategy(strategy.name)
            requested = merge_parameters(spec, strategy.parameters, parameters)
            signals = self.engine.generate_signals(strategy.name, candles, requested)
            effective_parameters = parse_parameters(spec, requested).model_dump(by_alias=True)
            simulation = self.simulator.run(signals, initial_capital)

            backtest_id = await self.backtests.save_backtest(
                user_id=user_id,
                strategy_id=strategy.id,
                stock_symbol=symbol,
                start_date=start_date,
                end_date=end_date,
                parameters=effective_parameters,
                result=simulation,
            )

        except BacktestError as e:
            logger.warning(
                f"RunBacktest failed: {type(e).__name__}: {e}",
                extra={"user_id": user_id, "strategy_id": strategy_id, "symbol": symbol},
            )
            raise

        summary = simulation.summary
        logger.info(
            f"RunBacktest completed: backtest_id={backtest_id}, bars={len(candles)}, "
            f"trades={summary.total_trades}, final_capital={summary.final_capital:.2f}, "
            f"max_drawdown={summary.max_drawdown:.2f}%"
        )

        return BacktestResult(
            backtest_id=backtest_id,
            summary=summary,
            trades=simulation.trades,
            equity_curve=simulation.equity_curve,
        )

    async def list_backtests(self, user_id: str) -> list[BacktestListItem]:
        """List a user's backtests ordered by creation time."""
        backtests = await self.backtests.list_backtests(user_id)
        logger.info(f"ListBacktests: user={user_id}, count={len(backtests)}")
        return backtests

    async def get_backtest(self, backtest_id: str, user_id: str) -> BacktestDetail:
        """Fetch one backtest with its trades and equity curve.

        Raises:
            NotFound: If the backtest does not exist or belongs to another user
        """
        detail = await self.backtests.get_backtest(backtest_id, user_id)
        if detail is None:
            logger.warning(f"GetBacktest: backtest_id={backtest_id} not found for user={user_id}")
            raise NotFound(f"Backtest with id {backtest_id} not found")
        return detail

    async def list_strategies(self) -> list[StrategyDefinition]:
        """List the strategies available for backtesting."""
        return await self.strategies.list_strategies()

    @staticmethod
    def _validate_request(start_date: datetime, end_date: datetime, initial_capital: float) -> None:
        if (start_date.tzinfo is None) != (end_date.tzinfo is None):
            raise InvalidParameter(
                "start_date and end_date must both be timezone-aware or both be naive"
            )
        if start_date >= end_date:
            raise InvalidParameter(
                f"start_date ({start_date.isoformat()}) must be before end_date ({end_date.isoformat()})"
            )
        if not initial_capital > 0 or math.isinf(initial_capital):
            raise InvalidParameter(f"initial_capital must be positive, got {initial_capital!r}")
