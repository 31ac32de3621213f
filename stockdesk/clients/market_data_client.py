"""Historical candle sources.

The backtest service only depends on the ``CandleSource`` contract. Falling
back to synthetic data when the live source fails is an explicit composition
(``FallbackCandleSource``) chosen by ``create_candle_source`` from
configuration, not behaviour hidden inside the service.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Protocol

import pandas as pd
import yfinance as yf

from ..config import ServiceConfig, config
from ..errors import MarketDataUnavailable
from ..models import Candle
from .synthetic_data import SyntheticCandleSource

logger = logging.getLogger(__name__)


class CandleSource(Protocol):
    """Provider of historical OHLCV candles."""

    async def get_historical_candles(
        self, symbol: str, start: datetime, end: datetime
    ) -> list[Candle]:
        """Return candles for ``symbol`` in ``[start, end]``, oldest first."""
        ...


class YFinanceCandleSource:
    """Fetches historical candles from Yahoo Finance using yfinance."""

    # Valid intervals for yfinance
    VALID_INTERVALS = {"1m", "2m", "5m", "15m", "30m", "60m", "90m", "1h", "1d", "5d", "1wk", "1mo", "3mo"}

    def __init__(self, interval: str = "1d") -> None:
        """Initialize the source.

        Args:
            interval: Bar interval ("1d", "1h", "1wk", ...)

        Raises:
            ValueError: If the interval is not supported by yfinance
        """
        if interval not in self.VALID_INTERVALS:
            raise ValueError(f"Invalid interval: {interval}. Valid intervals: {self.VALID_INTERVALS}")
        self.interval = interval

    async def get_historical_candles(
        self, symbol: str, start: datetime, end: datetime
    ) -> list[Candle]:
        """Fetch candles without blocking the event loop.

        Raises:
            MarketDataUnavailable: If the Yahoo Finance request fails
        """
        return await asyncio.to_thread(self._fetch, symbol, start, end)

    def _fetch(self, symbol: str, start: datetime, end: datetime) -> list[Candle]:
        try:
            ticker = yf.Ticker(symbol)
            # yfinance treats ``end`` as exclusive
            hist = ticker.history(
                start=start,
                end=end + timedelta(days=1),
                interval=self.interval,
            )
        except Exception as e:
            logger.error(f"Error fetching OHLCV for {symbol}: {e}")
            raise MarketDataUnavailable(f"Failed to fetch data for {symbol}: {e}") from e

        candles = self._to_candles(hist)
        logger.info(f"Fetched {len(candles)} bars for {symbol}")
        return candles

    def _to_candles(self, hist: pd.DataFrame) -> list[Candle]:
        """Convert a yfinance history frame to candles.

        Rows without prices are dropped and duplicate timestamps collapsed so
        timestamps are strictly increasing.
        """
        if hist is None or hist.empty:
            return []

        df = hist.copy()
        df.columns = [str(col).lower().replace(" ", "_") for col in df.columns]
        df = df.dropna(subset=["open", "high", "low", "close"])
        df = df[~df.index.duplicated(keep="last")].sort_index()

        candles = []
        for ts, row in df.iterrows():
            volume = row.get("volume", 0)
            candles.append(
                Candle(
                    timestamp=pd.Timestamp(ts).to_pydatetime(),
                    open=float(row["open"]),
                    high=float(row["high"]),
                    low=float(row["low"]),
                    close=float(row["close"]),
                    volume=int(volume) if pd.notna(volume) else 0,
                )
            )
        return candles


class FallbackCandleSource:
    """Delegates to a primary source and falls back when it fails."""

    def __init__(self, primary: CandleSource, fallback: CandleSource) -> None:
        """Initialize the decorator.

        Args:
            primary: Source tried first
            fallback: Source used when the primary raises MarketDataUnavailable
        """
        self.primary = primary
        self.fallback = fallback

    async def get_historical_candles(
        self, symbol: str, start: datetime, end: datetime
    ) -> list[Candle]:
        try:
            return await self.primary.get_historical_candles(symbol, start, end)
        except MarketDataUnavailable as e:
            logger.warning(
                "Primary market data source failed, using fallback",
                extra={"symbol": symbol, "error": str(e)},
            )
            return await self.fallback.get_historical_candles(symbol, start, end)


def create_candle_source(settings: ServiceConfig = config) -> CandleSource:
    """Build the candle source selected by configuration.

    Args:
        settings: Service configuration

    Returns:
        Synthetic source, Yahoo Finance source, or Yahoo Finance wrapped with
        a synthetic fallback
    """
    synthetic = SyntheticCandleSource(
        seed=settings.synthetic_seed, max_days=settings.synthetic_max_days
    )
    if settings.market_data_provider == "synthetic":
        logger.info("Using synthetic market data")
        return synthetic

    live = YFinanceCandleSource(interval=settings.market_data_interval)
    if settings.synthetic_fallback_enabled:
        logger.info("Using Yahoo Finance market data with synthetic fallback")
        return FallbackCandleSource(primary=live, fallback=synthetic)

    logger.info("Using Yahoo Finance market data")
    return live
