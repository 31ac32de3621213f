"""Technical indicators over closing prices.

Every result is a pandas object indexed by the original bar index of the
price it was computed from. Series of different lengths (a 12-bar EMA and a
26-bar EMA, a MACD line and its signal line) therefore line up by label, never
by position. Passing a ``pd.Series`` keeps its index; any other sequence is
indexed ``0..n-1``.
"""

from typing import Sequence, Union

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view

from .errors import InsufficientData, InvalidParameter

PriceInput = Union[Sequence[float], np.ndarray, pd.Series]


def _as_series(prices: PriceInput) -> pd.Series:
    if isinstance(prices, pd.Series):
        return prices.astype(float)
    return pd.Series(np.asarray(prices, dtype=float), dtype=float)


def _check_period(period: int, name: str = "period") -> int:
    if isinstance(period, bool) or not isinstance(period, (int, np.integer)) or period < 1:
        raise InvalidParameter(f"{name} must be a positive integer, got {period!r}")
    return int(period)


def ema(prices: PriceInput, period: int) -> pd.Series:
    """Exponential moving average.

    Seeded with the simple mean of the first ``period`` prices, then smoothed
    with ``k = 2 / (period + 1)``. The first value sits at the bar index of the
    ``period``-th price.

    Raises:
        InsufficientData: If fewer than ``period`` prices are given.
    """
    period = _check_period(period)
    series = _as_series(prices)
    if len(series) < period:
        raise InsufficientData(
            f"EMA({period}) needs at least {period} prices, got {len(series)}"
        )

    values = series.to_numpy()
    k = 2.0 / (period + 1)
    out = np.empty(len(values) - period + 1)
    out[0] = values[:period].mean()
    for i, price in enumerate(values[period:], start=1):
        # prev + k*(price - prev) keeps a constant series exactly constant
        out[i] = out[i - 1] + k * (price - out[i - 1])

    return pd.Series(out, index=series.index[period - 1:], name=f"ema_{period}")


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)


def rsi(prices: PriceInput, period: int = 14) -> pd.Series:
    """Wilder's Relative Strength Index.

    Average gain and loss are seeded as the simple mean of the first
    ``period`` price changes and then smoothed with weight
    ``(period - 1) / period``. RSI is 100 whenever the average loss is 0.

    Raises:
        InsufficientData: If fewer than ``period + 1`` prices are given.
    """
    period = _check_period(period)
    series = _as_series(prices)
    if len(series) < period + 1:
        raise InsufficientData(
            f"RSI({period}) needs at least {period + 1} prices, got {len(series)}"
        )

    deltas = np.diff(series.to_numpy())
    gains = np.clip(deltas, 0.0, None)
    losses = np.clip(-deltas, 0.0, None)

    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()

    out = np.empty(len(deltas) - period + 1)
    out[0] = _rsi_value(avg_gain, avg_loss)
    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        out[i - period + 1] = _rsi_value(avg_gain, avg_loss)

    # deltas[j] is the change into bar j + 1
    return pd.Series(out, index=series.index[period:], name=f"rsi_{period}")


def macd(
    prices: PriceInput,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> pd.DataFrame:
    """Moving Average Convergence Divergence.

    Returns:
        DataFrame with ``macd``, ``signal`` and ``histogram`` columns, indexed
        by bar from the first bar where both EMAs exist. ``signal`` and
        ``histogram`` are NaN until the signal EMA is seeded.

    Raises:
        InsufficientData: If fewer than ``slow_period + signal_period`` prices
            are given.
    """
    fast_period = _check_period(fast_period, "fast_period")
    slow_period = _check_period(slow_period, "slow_period")
    signal_period = _check_period(signal_period, "signal_period")
    series = _as_series(prices)
    required = slow_period + signal_period
    if len(series) < required:
        raise InsufficientData(
            f"MACD({fast_period},{slow_period},{signal_period}) needs at least "
            f"{required} prices, got {len(series)}"
        )

    macd_line = (ema(series, fast_period) - ema(series, slow_period)).dropna()
    signal_line = ema(macd_line, signal_period)

    frame = pd.DataFrame({"macd": macd_line, "signal": signal_line})
    frame["histogram"] = frame["macd"] - frame["signal"]
    return frame


def bollinger_bands(
    prices: PriceInput,
    period: int = 20,
    multiplier: float = 2.0,
) -> pd.DataFrame:
    """Bollinger Bands over a trailing window.

    Uses the window's simple mean and population standard deviation.

    Returns:
        DataFrame with ``middle``, ``upper`` and ``lower`` columns, the first
        row at the bar index of the ``period``-th price.

    Raises:
        InsufficientData: If fewer than ``period`` prices are given.
    """
    period = _check_period(period)
    if isinstance(multiplier, bool) or not isinstance(multiplier, (int, float, np.number)):
        raise InvalidParameter(f"multiplier must be a number, got {multiplier!r}")
    series = _as_series(prices)
    if len(series) < period:
        raise InsufficientData(
            f"Bollinger Bands({period}) need at least {period} prices, got {len(series)}"
        )

    windows = sliding_window_view(series.to_numpy(), period)
    middle = windows.mean(axis=1)
    std = windows.std(axis=1)

    return pd.DataFrame(
        {
            "middle": middle,
            "upper": middle + multiplier * std,
            "lower": middle - multiplier * std,
        },
        index=series.index[period - 1:],
    )
