"""Pytest fixtures for backtesting engine tests."""

from datetime import datetime, timedelta, timezone
from typing import Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

from stockdesk.models import Candle, Signal, SignalAction, StrategyDefinition
from stockdesk.repositories.backtest_repository import BacktestRepository
from stockdesk.repositories.strategy_repository import StrategyRepository
from stockdesk.service import BacktestService
from stockdesk.strategies import MA_CROSSOVER

BASE_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)

# Rises 100 -> 110 and falls back, repeated three times (33 bars)
OSCILLATING_CLOSES = [100, 102, 104, 106, 108, 110, 108, 106, 104, 102, 100] * 3


def make_candles(closes: Sequence[float], start: datetime = BASE_DATE) -> list[Candle]:
    """Build daily candles whose open/high/low hug the close."""
    return [
        Candle(
            timestamp=start + timedelta(days=i),
            open=float(close),
            high=float(close) + 1.0,
            low=float(close) - 1.0,
            close=float(close),
            volume=1_000_000,
        )
        for i, close in enumerate(closes)
    ]


def make_signals(prices: Sequence[float], actions: dict[int, SignalAction]) -> list[Signal]:
    """Build a signal per price, HOLD unless listed in ``actions``."""
    return [
        Signal(
            index=i,
            timestamp=BASE_DATE + timedelta(days=i),
            price=float(price),
            action=actions.get(i, SignalAction.HOLD),
        )
        for i, price in enumerate(prices)
    ]


class MockSessionContext:
    """Reusable async context manager for mocking postgres sessions."""

    def __init__(self, session: AsyncMock):
        self.session = session

    async def __aenter__(self) -> AsyncMock:
        return self.session

    async def __aexit__(self, *args) -> None:
        pass


@pytest.fixture
def oscillating_candles() -> list[Candle]:
    """33 bars oscillating between 100 and 110."""
    return make_candles(OSCILLATING_CLOSES)


@pytest.fixture
def flat_candles() -> list[Candle]:
    """50 bars with a constant close of 100."""
    return make_candles([100.0] * 50)


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock SQLAlchemy async session."""
    session = AsyncMock()
    session.add = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    return session


@pytest.fixture
def mock_postgres(mock_session: AsyncMock) -> MagicMock:
    """Create a mock PostgresClient with session context manager."""
    mock = MagicMock()
    mock.get_session = MagicMock(return_value=MockSessionContext(mock_session))
    return mock


@pytest.fixture
def crossover_definition() -> StrategyDefinition:
    """Catalog entry for the moving average crossover strategy."""
    return StrategyDefinition(
        id=1,
        name=MA_CROSSOVER.name,
        description=MA_CROSSOVER.description,
        parameters=MA_CROSSOVER.default_parameters(),
    )


@pytest.fixture
def mock_strategy_repository(crossover_definition: StrategyDefinition) -> AsyncMock:
    """Mock strategy catalog returning the crossover strategy."""
    repo = AsyncMock(spec=StrategyRepository)
    repo.get_strategy = AsyncMock(return_value=crossover_definition)
    repo.list_strategies = AsyncMock(return_value=[crossover_definition])
    return repo


@pytest.fixture
def mock_backtest_repository() -> AsyncMock:
    """Mock backtest store that assigns a fixed id."""
    repo = AsyncMock(spec=BacktestRepository)
    repo.save_backtest = AsyncMock(return_value="7f6d3c1e-0000-4000-8000-000000000001")
    repo.list_backtests = AsyncMock(return_value=[])
    repo.get_backtest = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def mock_candle_source(oscillating_candles: list[Candle]) -> AsyncMock:
    """Frozen candle source returning the oscillating series."""
    source = AsyncMock()
    source.get_historical_candles = AsyncMock(return_value=oscillating_candles)
    return source


@pytest.fixture
def backtest_service(
    mock_strategy_repository: AsyncMock,
    mock_backtest_repository: AsyncMock,
    mock_candle_source: AsyncMock,
) -> BacktestService:
    """Create BacktestService with mocked dependencies."""
    return BacktestService(
        strategy_repository=mock_strategy_repository,
        backtest_repository=mock_backtest_repository,
        candle_source=mock_candle_source,
    )
