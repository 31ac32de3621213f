"""Market data sources for historical candles.

- CandleSource: async contract the backtest service depends on
- YFinanceCandleSource: daily bars from Yahoo Finance
- SyntheticCandleSource: deterministic random-walk bars for development
- FallbackCandleSource: decorator falling back to a second source on failure
"""

from .market_data_client import (
    CandleSource,
    FallbackCandleSource,
    YFinanceCandleSource,
    create_candle_source,
)
from .synthetic_data import SyntheticCandleSource

__all__ = [
    "CandleSource",
    "FallbackCandleSource",
    "SyntheticCandleSource",
    "YFinanceCandleSource",
    "create_candle_source",
]
