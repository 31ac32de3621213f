"""Backtest repository.

A backtest and its trade rows are written in one transaction, so readers
never see a backtest without its trades.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..errors import PersistenceFailure
from ..models import (
    BacktestDetail,
    BacktestListItem,
    BacktestRecord,
    BacktestTradeRecord,
    EquityPoint,
    SimulationResult,
    StrategyRecord,
)
from ..utils.postgres_client import PostgresClient

logger = logging.getLogger(__name__)


def _decimal(value: float) -> Decimal:
    return Decimal(str(value))


class BacktestRepository:
    """Repository for backtest records and their trades."""

    def __init__(self, postgres_client: PostgresClient) -> None:
        """Initialize repository with PostgreSQL client.

        Args:
            postgres_client: PostgreSQL client for database operations.
        """
        self.postgres = postgres_client

    async def save_backtest(
        self,
        user_id: str,
        strategy_id: int,
        stock_symbol: str,
        start_date: datetime,
        end_date: datetime,
        parameters: Mapping[str, Any],
        result: SimulationResult,
    ) -> str:
        """Persist a completed backtest together with its trades.

        Args:
            user_id: Owner of the backtest.
            strategy_id: Catalog id of the strategy used.
            stock_symbol: Instrument symbol.
            start_date: Start of the backtest window.
            end_date: End of the backtest window.
            parameters: Effective strategy parameters.
            result: Simulation output to store.

        Returns:
            Identifier of the new backtest.

        Raises:
            PersistenceFailure: If any write fails; nothing is stored then.
        """
        summary = result.summary
        record = BacktestRecord(
            id=uuid.uuid4(),
            user_id=user_id,
            strategy_id=strategy_id,
            stock_symbol=stock_symbol,
            start_date=start_date,
            end_date=end_date,
            parameters=dict(parameters),
            initial_capital=_decimal(summary.initial_capital),
            final_capital=_decimal(summary.final_capital),
            profit=_decimal(summary.profit),
            profit_percentage=_decimal(summary.profit_percentage),
            total_trades=summary.total_trades,
            winning_trades=summary.winning_trades,
            losing_trades=summary.losing_trades,
            win_rate=_decimal(summary.win_rate),
            max_drawdown=_decimal(summary.max_drawdown),
            avg_trade_profit=_decimal(summary.avg_trade_profit),
            equity_curve=[point.model_dump(mode="json") for point in result.equity_curve],
            created_at=datetime.now(timezone.utc),
        )
        record.trades = [
            BacktestTradeRecord(
                type=trade.type.value,
                date=trade.date,
                price=_decimal(trade.price),
                quantity=trade.quantity,
                profit=_decimal(trade.profit) if trade.profit is not None else None,
            )
            for trade in result.trades
        ]

        try:
            async with self.postgres.get_session() as session:
                session.add(record)
                await session.flush()
        except (SQLAlchemyError, ConnectionError) as e:
            logger.error(
                "Failed to save backtest",
                extra={"user_id": user_id, "symbol": stock_symbol, "error": str(e)},
            )
            raise PersistenceFailure(f"Failed to save backtest: {e}") from e

        logger.info(f"Saved backtest {record.id} with {len(record.trades)} trades")
        return str(record.id)

    async def list_backtests(self, user_id: str) -> list[BacktestListItem]:
        """List a user's backtests, oldest first.

        Args:
            user_id: Owner of the backtests.

        Returns:
            List items joined with their strategy name and description.
        """
        stmt = (
            select(BacktestRecord, StrategyRecord.name, StrategyRecord.description)
            .outerjoin(StrategyRecord, StrategyRecord.id == BacktestRecord.strategy_id)
            .where(BacktestRecord.user_id == user_id)
            .order_by(BacktestRecord.created_at.asc())
        )

        try:
            async with self.postgres.get_session() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except (SQLAlchemyError, ConnectionError) as e:
            raise PersistenceFailure(f"Failed to list backtests: {e}") from e

        return [BacktestListItem.from_record(record, name, description) for record, name, description in rows]

    async def get_backtest(self, backtest_id: str, user_id: str) -> Optional[BacktestDetail]:
        """Get one backtest with its trades, scoped to its owner.

        Args:
            backtest_id: Backtest identifier.
            user_id: Requesting user.

        Returns:
            BacktestDetail if it exists and belongs to the user, None otherwise.
        """
        try:
            backtest_uuid = uuid.UUID(str(backtest_id))
        except ValueError:
            return None

        stmt = (
            select(BacktestRecord, StrategyRecord.name, StrategyRecord.description)
            .outerjoin(StrategyRecord, StrategyRecord.id == BacktestRecord.strategy_id)
            .where(BacktestRecord.id == backtest_uuid, BacktestRecord.user_id == user_id)
        )

        try:
            async with self.postgres.get_session() as session:
                result = await session.execute(stmt)
                row = result.first()
                if row is None:
                    return None

                trades_stmt = (
                    select(BacktestTradeRecord)
                    .where(BacktestTradeRecord.backtest_id == backtest_uuid)
                    .order_by(BacktestTradeRecord.id)
                )
                trade_result = await session.execute(trades_stmt)
                trade_records = trade_result.scalars().all()
        except (SQLAlchemyError, ConnectionError) as e:
            raise PersistenceFailure(f"Failed to load backtest {backtest_id}: {e}") from e

        record, name, description = row
        item = BacktestListItem.from_record(record, name, description)
        return BacktestDetail(
            **item.model_dump(),
            trades=[trade.to_trade() for trade in trade_records],
            equity_curve=[EquityPoint.model_validate(p) for p in record.equity_curve or []],
        )
