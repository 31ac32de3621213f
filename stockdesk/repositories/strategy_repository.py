"""Strategy catalog repository."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..errors import PersistenceFailure
from ..models import StrategyDefinition, StrategyRecord
from ..strategies import SUPPORTED_STRATEGIES
from ..utils.postgres_client import PostgresClient

logger = logging.getLogger(__name__)


class StrategyRepository:
    """Read-only lookups into the strategy catalog, plus default seeding."""

    def __init__(self, postgres_client: PostgresClient) -> None:
        """Initialize repository with PostgreSQL client.

        Args:
            postgres_client: PostgreSQL client for database operations.
        """
        self.postgres = postgres_client

    async def get_strategy(self, strategy_id: int) -> Optional[StrategyDefinition]:
        """Get a strategy definition by id.

        Args:
            strategy_id: Catalog identifier.

        Returns:
            StrategyDefinition if found, None otherwise.
        """
        try:
            async with self.postgres.get_session() as session:
                stmt = select(StrategyRecord).where(StrategyRecord.id == strategy_id)
                result = await session.execute(stmt)
                record = result.scalar_one_or_none()
        except (SQLAlchemyError, ConnectionError) as e:
            raise PersistenceFailure(f"Failed to load strategy {strategy_id}: {e}") from e

        if record is None:
            return None

        return StrategyDefinition.from_record(record)

    async def list_strategies(self) -> list[StrategyDefinition]:
        """List every catalog entry ordered by id."""
        try:
            async with self.postgres.get_session() as session:
                result = await session.execute(select(StrategyRecord).order_by(StrategyRecord.id))
                records = result.scalars().all()
        except (SQLAlchemyError, ConnectionError) as e:
            raise PersistenceFailure(f"Failed to list strategies: {e}") from e

        return [StrategyDefinition.from_record(record) for record in records]

    async def seed_default_strategies(self) -> int:
        """Insert the supported strategies that are missing from the catalog.

        Returns:
            Number of strategies inserted.
        """
        try:
            async with self.postgres.get_session() as session:
                result = await session.execute(select(StrategyRecord.name))
                existing = set(result.scalars().all())

                missing = [spec for spec in SUPPORTED_STRATEGIES if spec.name not in existing]
                for spec in missing:
                    session.add(
                        StrategyRecord(
                            name=spec.name,
                            description=spec.description,
                            parameters=spec.default_parameters(),
                        )
                    )
        except (SQLAlchemyError, ConnectionError) as e:
            raise PersistenceFailure(f"Failed to seed strategies: {e}") from e

        if missing:
            logger.info(f"Seeded {len(missing)} default strategies")
        return len(missing)
