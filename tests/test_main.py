"""Tests for the service bootstrap."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from stockdesk import main
from stockdesk.config import ServiceConfig
from stockdesk.models import Base
from stockdesk.service import BacktestService


@pytest.fixture
def settings() -> ServiceConfig:
    """Settings using synthetic data."""
    return ServiceConfig(
        _env_file=None,
        database_url="postgresql+asyncpg://u:p@db:5432/stockdesk",
        market_data_provider="synthetic",
        log_level="WARNING",
    )


@pytest.fixture
def mock_postgres_class():
    """Patch PostgresClient in the bootstrap module."""
    with patch("stockdesk.main.PostgresClient") as mock_class:
        client = mock_class.return_value
        client.connect = AsyncMock()
        client.create_tables = AsyncMock()
        client.close = AsyncMock()
        yield mock_class


@pytest.fixture(autouse=True)
def reset_global_client():
    """Reset the module-level client between tests."""
    yield
    main.postgres_client = None


class TestCreateService:
    """Tests for create_service and shutdown."""

    @pytest.mark.asyncio
    async def test_create_service(self, settings, mock_postgres_class):
        """Test the database is prepared and the service wired."""
        with patch(
            "stockdesk.main.StrategyRepository.seed_default_strategies",
            new=AsyncMock(return_value=4),
        ) as mock_seed, patch("stockdesk.main.setup_logger") as mock_setup_logger:
            service = await main.create_service(settings)

        assert isinstance(service, BacktestService)
        mock_setup_logger.assert_called_once_with("backtesting", "WARNING")
        mock_postgres_class.assert_called_once_with(settings.database_url)
        client = mock_postgres_class.return_value
        client.connect.assert_awaited_once()
        client.create_tables.assert_awaited_once_with(Base.metadata)
        mock_seed.assert_awaited_once()
        assert service.strategies.postgres is client
        assert service.backtests.postgres is client

    @pytest.mark.asyncio
    async def test_connection_failure(self, settings, mock_postgres_class):
        """Test a database that cannot be reached fails startup."""
        mock_postgres_class.return_value.connect.side_effect = ConnectionError("refused")

        with patch("stockdesk.main.setup_logger"):
            with pytest.raises(ConnectionError):
                await main.create_service(settings)

        mock_postgres_class.return_value.create_tables.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_shutdown_closes_client(self):
        """Test shutdown closes and forgets the client."""
        client = MagicMock()
        client.close = AsyncMock()
        main.postgres_client = client

        await main.shutdown()

        client.close.assert_awaited_once()
        assert main.postgres_client is None

    @pytest.mark.asyncio
    async def test_shutdown_without_client(self):
        """Test shutdown is a no-op before startup."""
        await main.shutdown()

        assert main.postgres_client is None
