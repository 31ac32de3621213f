"""Backtesting Engine - Bootstrap.

Wires configuration, logging, the database and market data into a ready
``BacktestService``. Running the module initializes the store (schema,
tables, default strategies) and exits.
"""

import asyncio
import logging
import sys

from .clients.market_data_client import create_candle_source
from .config import ServiceConfig, config
from .models import Base
from .repositories.backtest_repository import BacktestRepository
from .repositories.strategy_repository import StrategyRepository
from .service import BacktestService
from .utils.logging import setup_logger
from .utils.postgres_client import PostgresClient

logger = logging.getLogger(__name__)

# Global client for shutdown
postgres_client: PostgresClient | None = None


async def create_service(settings: ServiceConfig = config) -> BacktestService:
    """Build a BacktestService backed by PostgreSQL and the configured market data.

    Args:
        settings: Service configuration

    Returns:
        Ready BacktestService

    Raises:
        ConnectionError: If PostgreSQL cannot be reached
    """
    global postgres_client

    setup_logger(settings.service_name, settings.log_level)
    logger.info(f"Starting {settings.service_name} service...")

    postgres_client = PostgresClient(settings.database_url)
    try:
        await postgres_client.connect()
    except ConnectionError as e:
        logger.error(f"Failed to connect to PostgreSQL: {e}")
        raise

    await postgres_client.create_tables(Base.metadata)

    strategy_repository = StrategyRepository(postgres_client)
    seeded = await strategy_repository.seed_default_strategies()
    logger.info(f"Strategy catalog ready ({seeded} newly seeded)")

    return BacktestService(
        strategy_repository=strategy_repository,
        backtest_repository=BacktestRepository(postgres_client),
        candle_source=create_candle_source(settings),
    )


async def shutdown() -> None:
    """Close the PostgreSQL client created by ``create_service``."""
    global postgres_client

    logger.info("Shutting down...")
    if postgres_client is not None:
        await postgres_client.close()
        postgres_client = None
        logger.info("PostgreSQL client closed")

    logger.info("Shutdown complete")


async def initialize() -> None:
    """Create the store and seed the catalog, then release the connection."""
    try:
        service = await create_service()
        strategies = await service.list_strategies()
        logger.info(f"Backtesting store initialized with {len(strategies)} strategies")
    finally:
        await shutdown()


def main() -> None:
    """Main entry point."""
    try:
        asyncio.run(initialize())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
