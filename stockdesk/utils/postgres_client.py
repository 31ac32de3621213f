"""
PostgreSQL client for the backtest store.

Provides async sessions using SQLAlchemy with the asyncpg dialect. Each
``get_session`` block is one transaction: committed on normal exit, rolled
back on any exception.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import MetaData, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)


class PostgresClient:
    """
    Async PostgreSQL client.

    When no URL is given the connection is built from environment variables:
    - DATABASE_URL: Full database URL (takes precedence)
    - POSTGRES_USER / POSTGRES_PASSWORD: Credentials (default: 'postgres')
    - POSTGRES_HOST: Hostname (default: 'localhost')
    - POSTGRES_PORT: Port (default: 5432)
    - POSTGRES_DB: Database name (default: 'stockdesk')

    Example:
        client = PostgresClient()
        await client.connect()
        async with client.get_session() as session:
            session.add(record)
        await client.close()
    """

    def __init__(self, database_url: Optional[str] = None) -> None:
        """
        Initialize client configuration.

        Args:
            database_url: Full SQLAlchemy database URL.
        """
        self.database_url: str = database_url or self._url_from_env()
        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    @staticmethod
    def _url_from_env() -> str:
        env_url = os.getenv("DATABASE_URL")
        if env_url:
            return env_url
        user = os.getenv("POSTGRES_USER") or "postgres"
        password = os.getenv("POSTGRES_PASSWORD") or "postgres"
        host = os.getenv("POSTGRES_HOST") or "localhost"
        port = os.getenv("POSTGRES_PORT") or "5432"
        db = os.getenv("POSTGRES_DB") or "stockdesk"
        return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"

    @property
    def is_connected(self) -> bool:
        return self.session_maker is not None

    async def connect(self) -> None:
        """
        Create the engine and session maker, then test the connection.

        Raises:
            ConnectionError: If the database cannot be reached.
        """
        host_info = self._extract_host_info()
        try:
            self.engine = create_async_engine(
                self.database_url,
                echo=False,
                pool_pre_ping=True,
            )
            self.session_maker = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            logger.info("Connected to PostgreSQL", extra={"host": host_info})

        except Exception as e:
            logger.error(
                "PostgreSQL connection failed",
                extra={"host": host_info, "error": str(e)},
            )
            raise ConnectionError(
                f"Failed to connect to PostgreSQL at {host_info}: {e}"
            ) from e

    async def create_tables(self, metadata: MetaData) -> None:
        """
        Create any missing tables (and their schemas) for ``metadata``.

        Raises:
            ConnectionError: If not connected.
        """
        if self.engine is None:
            raise ConnectionError(
                "PostgreSQL client is not connected. Call connect() first."
            )

        async with self.engine.begin() as conn:
            for schema in {t.schema for t in metadata.tables.values() if t.schema}:
                await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema}"'))
            await conn.run_sync(metadata.create_all)

        logger.info("Ensured tables", extra={"tables": sorted(metadata.tables)})

    async def close(self) -> None:
        """Dispose of the engine and its connection pool."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.session_maker = None
            logger.info(
                "Disconnected from PostgreSQL",
                extra={"host": self._extract_host_info()},
            )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Open a transactional session.

        Yields:
            AsyncSession committed on exit, rolled back on error.

        Raises:
            ConnectionError: If not connected.
        """
        if self.session_maker is None:
            raise ConnectionError(
                "PostgreSQL client is not connected. Call connect() first."
            )

        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def _extract_host_info(self) -> str:
        """Return ``host:port`` from the database URL without credentials."""
        url = self.database_url
        if "@" not in url:
            return "unknown"
        return url.split("@", 1)[1].split("/", 1)[0]
