"""
Backtesting - Domain Models and SQLAlchemy ORM.

Pydantic models describe the values crossing module boundaries (candles,
trades, equity points, results). Dataclasses hold the per-bar signal and the
simulator's mutable position. SQLAlchemy ORM models back the strategy catalog
and the backtest store.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from .config import config


class SignalAction(str, Enum):
    """Per-bar decision emitted by the strategy engine."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class TradeType(str, Enum):
    """Side of an executed trade."""

    BUY = "BUY"
    SELL = "SELL"


class PositionState(str, Enum):
    """Simulator position state. Shorting is not supported."""

    FLAT = "FLAT"
    LONG = "LONG"


# Market data and simulation values


class Candle(BaseModel):
    """Single OHLCV bar."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(description="Bar timestamp")
    open: float = Field(description="Open price")
    high: float = Field(description="High price")
    low: float = Field(description="Low price")
    close: float = Field(description="Close price")
    volume: int = Field(default=0, ge=0, description="Trading volume")


@dataclass(frozen=True)
class Signal:
    """Strategy decision for one bar, with the bar's close price."""

    index: int
    timestamp: datetime
    price: float
    action: SignalAction = SignalAction.HOLD


@dataclass
class Position:
    """
    Mutable position owned by a single simulation run.

    ``quantity > 0`` holds exactly when ``state`` is LONG.
    """

    quantity: int = 0
    entry_price: float = 0.0
    state: PositionState = PositionState.FLAT

    def open(self, quantity: int, price: float) -> None:
        self.quantity = quantity
        self.entry_price = price
        self.state = PositionState.LONG

    def close(self) -> None:
        self.quantity = 0
        self.entry_price = 0.0
        self.state = PositionState.FLAT


class Trade(BaseModel):
    """Executed buy or sell. ``profit`` is None for an opening BUY."""

    model_config = ConfigDict(frozen=True)

    date: datetime = Field(description="Bar timestamp of the execution")
    type: TradeType = Field(description="BUY or SELL")
    price: float = Field(description="Execution price")
    quantity: int = Field(gt=0, description="Number of shares")
    profit: Optional[float] = Field(
        default=None, description="Realized P&L of the round trip (SELL only)"
    )


class EquityPoint(BaseModel):
    """Mark-to-market equity snapshot."""

    model_config = ConfigDict(frozen=True)

    date: Optional[datetime] = Field(default=None, description="Bar timestamp")
    equity: float = Field(description="Cash plus position value")


class BacktestSummary(BaseModel):
    """Aggregate statistics of one backtest run."""

    initial_capital: float = Field(gt=0, description="Starting cash")
    final_capital: float = Field(description="Cash after forced liquidation")
    profit: float = Field(description="final_capital - initial_capital")
    profit_percentage: float = Field(description="Profit relative to initial capital (%)")
    total_trades: int = Field(ge=0, description="Closed round trips")
    winning_trades: int = Field(ge=0, description="Round trips with profit > 0")
    losing_trades: int = Field(ge=0, description="Round trips with profit <= 0")
    win_rate: float = Field(ge=0, le=100, description="Winning trades (%)")
    max_drawdown: float = Field(ge=0, description="Largest decline from peak equity (%)")
    avg_trade_profit: float = Field(description="Realized P&L per closed trade")


class SimulationResult(BaseModel):
    """Output of the trade simulator."""

    summary: BacktestSummary
    trades: list[Trade] = Field(default_factory=list)
    equity_curve: list[EquityPoint] = Field(default_factory=list)


class BacktestResult(SimulationResult):
    """Complete result of ``run_backtest`` including the stored identifier."""

    backtest_id: str = Field(description="Identifier assigned by the backtest store")


class StrategyDefinition(BaseModel):
    """Strategy catalog entry."""

    id: int
    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(
        default_factory=dict, description="Default parameter values"
    )

    @classmethod
    def from_record(cls, record: "StrategyRecord") -> "StrategyDefinition":
        return cls(
            id=record.id,
            name=record.name,
            description=record.description or "",
            parameters=dict(record.parameters or {}),
        )


class BacktestListItem(BaseModel):
    """Stored backtest summary as shown in a user's backtest list."""

    backtest_id: str
    user_id: str
    strategy_id: int
    strategy_name: str = "Unknown Strategy"
    strategy_description: str = ""
    stock_symbol: str
    start_date: datetime
    end_date: datetime
    parameters: dict[str, Any] = Field(default_factory=dict)
    summary: BacktestSummary
    created_at: datetime

    @classmethod
    def from_record(
        cls,
        record: "BacktestRecord",
        strategy_name: Optional[str] = None,
        strategy_description: Optional[str] = None,
    ) -> "BacktestListItem":
        """
        Create a list item from a stored backtest row.

        Args:
            record: SQLAlchemy BacktestRecord.
            strategy_name: Name joined from the strategy catalog, if any.
            strategy_description: Description joined from the strategy catalog.

        Returns:
            BacktestListItem with float-converted monetary values.
        """
        summary = BacktestSummary(
            initial_capital=float(record.initial_capital),
            final_capital=float(record.final_capital),
            profit=float(record.profit),
            profit_percentage=float(record.profit_percentage),
            total_trades=record.total_trades,
            winning_trades=record.winning_trades,
            losing_trades=record.losing_trades,
            win_rate=float(record.win_rate),
            max_drawdown=float(record.max_drawdown),
            avg_trade_profit=float(record.avg_trade_profit),
        )
        return cls(
            backtest_id=str(record.id),
            user_id=record.user_id,
            strategy_id=record.strategy_id,
            strategy_name=strategy_name or "Unknown Strategy",
            strategy_description=strategy_description or "",
            stock_symbol=record.stock_symbol,
            start_date=record.start_date,
            end_date=record.end_date,
            parameters=dict(record.parameters or {}),
            summary=summary,
            created_at=record.created_at,
        )


class BacktestDetail(BacktestListItem):
    """Stored backtest with its trades and equity curve."""

    trades: list[Trade] = Field(default_factory=list)
    equity_curve: list[EquityPoint] = Field(default_factory=list)


# SQLAlchemy ORM Models


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class StrategyRecord(Base):
    """
    SQLAlchemy model for the strategies catalog table.

    ``parameters`` holds the default parameter values as JSON.
    """

    __tablename__ = "strategies"
    __table_args__ = {"schema": config.db_schema}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    parameters: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)


class BacktestRecord(Base):
    """
    SQLAlchemy model for the backtests table.

    One row per completed run, owned by ``user_id``. The equity curve is stored
    as a JSON list of ``{"date", "equity"}`` objects.
    """

    __tablename__ = "backtests"
    __table_args__ = {"schema": config.db_schema}

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    strategy_id: Mapped[int] = mapped_column(
        Integer, ForeignKey(f"{config.db_schema}.strategies.id"), nullable=False
    )
    stock_symbol: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    parameters: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    initial_capital: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=8), nullable=False)
    final_capital: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=8), nullable=False)
    profit: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=8), nullable=False)
    profit_percentage: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=6), nullable=False)
    total_trades: Mapped[int] = mapped_column(Integer, nullable=False)
    winning_trades: Mapped[int] = mapped_column(Integer, nullable=False)
    losing_trades: Mapped[int] = mapped_column(Integer, nullable=False)
    win_rate: Mapped[Decimal] = mapped_column(Numeric(precision=9, scale=6), nullable=False)
    max_drawdown: Mapped[Decimal] = mapped_column(Numeric(precision=9, scale=6), nullable=False)
    avg_trade_profit: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=8), nullable=False)
    equity_curve: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    trades: Mapped[list["BacktestTradeRecord"]] = relationship(
        back_populates="backtest",
        order_by="BacktestTradeRecord.id",
        cascade="all, delete-orphan",
    )


class BacktestTradeRecord(Base):
    """SQLAlchemy model for the backtest_trades table."""

    __tablename__ = "backtest_trades"
    __table_args__ = {"schema": config.db_schema}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    backtest_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey(f"{config.db_schema}.backtests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(4), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=8), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    profit: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=20, scale=8), nullable=True
    )

    backtest: Mapped[BacktestRecord] = relationship(back_populates="trades")

    def to_trade(self) -> Trade:
        return Trade(
            date=self.date,
            type=TradeType(self.type),
            price=float(self.price),
            quantity=self.quantity,
            profit=float(self.profit) if self.profit is not None else None,
        )
