"""Strategy engine.

Turns a named strategy, its parameters and a candle sequence into one signal
per candle. Signals fire on crossings only, so a strategy reacts once per
regime change instead of on every bar a threshold stays breached.
"""

import logging
from typing import Any, Callable, Mapping, Optional, Sequence

import pandas as pd

from ..errors import InsufficientData
from ..indicators import bollinger_bands, ema, macd, rsi
from ..models import Candle, Signal, SignalAction
from ..strategies import (
    BollingerParameters,
    CrossoverParameters,
    MACDParameters,
    RSIParameters,
    StrategyParameters,
    parse_parameters,
    resolve_strategy,
)

logger = logging.getLogger(__name__)

SignalRule = Callable[[pd.Series, Any], pd.Series]


def _to_actions(buy: pd.Series, sell: pd.Series) -> pd.Series:
    actions = pd.Series(SignalAction.HOLD, index=buy.index, dtype=object)
    actions[buy] = SignalAction.BUY
    actions[sell] = SignalAction.SELL
    return actions


def _crossover_rule(closes: pd.Series, params: CrossoverParameters) -> pd.Series:
    lines = pd.DataFrame(
        {
            "short": ema(closes, params.short_period),
            "long": ema(closes, params.long_period),
        }
    ).dropna()
    prev = lines.shift(1)

    buy = (prev["short"] <= prev["long"]) & (lines["short"] > lines["long"])
    sell = (prev["short"] >= prev["long"]) & (lines["short"] < lines["long"])
    return _to_actions(buy, sell)


def _rsi_rule(closes: pd.Series, params: RSIParameters) -> pd.Series:
    current = rsi(closes, params.period)
    prev = current.shift(1)

    buy = (prev <= params.oversold) & (current > params.oversold)
    sell = (prev >= params.overbought) & (current < params.overbought)
    return _to_actions(buy, sell)


def _macd_rule(closes: pd.Series, params: MACDParameters) -> pd.Series:
    lines = macd(closes, params.fast_period, params.slow_period, params.signal_period).dropna()
    prev = lines.shift(1)

    buy = (
        (prev["histogram"] <= 0)
        & (lines["histogram"] > 0)
        & (lines["macd"] > lines["signal"])
    )
    sell = (
        (prev["histogram"] >= 0)
        & (lines["histogram"] < 0)
        & (lines["macd"] < lines["signal"])
    )
    return _to_actions(buy, sell)


def _bollinger_rule(closes: pd.Series, params: BollingerParameters) -> pd.Series:
    bands = bollinger_bands(closes, params.period, params.std_dev)
    close = closes.loc[bands.index]
    prev_close = close.shift(1)
    prev_bands = bands.shift(1)

    buy = (prev_close <= prev_bands["lower"]) & (close > bands["lower"])
    sell = (prev_close >= prev_bands["upper"]) & (close < bands["upper"])
    return _to_actions(buy, sell)


_RULES: dict[str, SignalRule] = {
    "ma_crossover": _crossover_rule,
    "rsi": _rsi_rule,
    "macd": _macd_rule,
    "bollinger_bands": _bollinger_rule,
}


class StrategyEngine:
    """Maps strategy + parameters + candles onto per-bar signals."""

    def generate_signals(
        self,
        strategy_name: str,
        candles: Sequence[Candle],
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> list[Signal]:
        """Generate one signal per candle.

        Bars before the strategy's lookback is satisfied, and bars where an
        indicator has no previous value yet, are HOLD.

        Args:
            strategy_name: Catalog name ("RSI Strategy") or short key ("rsi")
            candles: Candles ordered by timestamp
            parameters: Raw parameter mapping; missing keys use defaults

        Returns:
            List of signals, exactly ``len(candles)`` long

        Raises:
            UnknownStrategy: If the strategy is not supported
            InvalidParameter: If a parameter has the wrong type
            InsufficientData: If there are fewer candles than the lookback
        """
        spec = resolve_strategy(strategy_name)
        params: StrategyParameters = parse_parameters(spec, parameters)

        required = params.lookback()
        if len(candles) < required:
            raise InsufficientData(
                f"{spec.name} needs at least {required} candles, got {len(candles)}"
            )

        closes = pd.Series([c.close for c in candles], dtype=float)
        actions = _RULES[spec.key](closes, params).reindex(
            closes.index, fill_value=SignalAction.HOLD
        )

        signals = [
            Signal(
                index=i,
                timestamp=candle.timestamp,
                price=candle.close,
                action=SignalAction(actions.iat[i]),
            )
            for i, candle in enumerate(candles)
        ]

        logger.debug(
            f"{spec.name}: {len(signals)} bars, "
            f"{sum(s.action is SignalAction.BUY for s in signals)} buy, "
            f"{sum(s.action is SignalAction.SELL for s in signals)} sell"
        )
        return signals
