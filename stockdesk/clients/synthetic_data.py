"""Deterministic synthetic candles for development and testing.

Produces a bounded random walk of daily bars that skips weekends. The random
generator is seeded from the configured seed and the symbol, so the same
request always yields the same candles.
"""

import logging
import math
import zlib
from datetime import datetime, timedelta

import numpy as np

from ..models import Candle

logger = logging.getLogger(__name__)


class SyntheticCandleSource:
    """Random-walk candle generator."""

    START_PRICE = 100.0
    MAX_DAILY_CHANGE = 0.02  # 2% of price
    DAILY_RANGE = 0.015  # 1.5% of price

    def __init__(self, seed: int = 42, max_days: int = 365) -> None:
        """Initialize the generator.

        Args:
            seed: Base seed, combined with the symbol
            max_days: Maximum number of calendar days generated per request
        """
        self.seed = seed
        self.max_days = max_days

    async def get_historical_candles(
        self, symbol: str, start: datetime, end: datetime
    ) -> list[Candle]:
        return self.generate(symbol, start, end)

    def generate(self, symbol: str, start: datetime, end: datetime) -> list[Candle]:
        """Generate weekday candles from ``start`` for up to ``max_days`` days."""
        day_count = math.ceil((end - start).total_seconds() / 86400)
        day_count = max(0, min(day_count, self.max_days))

        rng = np.random.default_rng(self.seed ^ zlib.crc32(symbol.upper().encode()))
        price = self.START_PRICE
        candles: list[Candle] = []

        for i in range(day_count):
            date = start + timedelta(days=i)
            if date.weekday() >= 5:
                continue

            price += (rng.random() - 0.5) * 2 * price * self.MAX_DAILY_CHANGE

            day_range = price * self.DAILY_RANGE
            high = price + rng.random() * day_range
            low = price - rng.random() * day_range
            open_ = low + rng.random() * (high - low)
            close = low + rng.random() * (high - low)

            candles.append(
                Candle(
                    timestamp=date,
                    open=round(open_, 2),
                    high=round(high, 2),
                    low=round(low, 2),
                    close=round(close, 2),
                    volume=int(10_000 + rng.random() * 90_000),
                )
            )

        logger.debug(f"Generated {len(candles)} synthetic bars for {symbol}")
        return candles
