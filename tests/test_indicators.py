"""Tests for technical indicators."""

import math

import numpy as np
import pandas as pd
import pytest

from stockdesk.errors import InsufficientData, InvalidParameter
from stockdesk.indicators import bollinger_bands, ema, macd, rsi


class TestEMA:
    """Tests for the exponential moving average."""

    def test_seeded_with_simple_mean(self):
        """Test first value is the mean of the first period prices."""
        result = ema([1.0, 2.0, 3.0, 4.0, 5.0], 3)

        assert result.iloc[0] == pytest.approx(2.0)

    def test_smoothing(self):
        """Test later values use k = 2 / (period + 1)."""
        result = ema([1.0, 2.0, 3.0, 4.0, 5.0], 3)

        # k = 0.5: 2 -> 3 -> 4
        assert list(result) == pytest.approx([2.0, 3.0, 4.0])

    def test_index_starts_at_period_minus_one(self):
        """Test values carry the bar index they belong to."""
        result = ema([10.0] * 8, 5)

        assert list(result.index) == [4, 5, 6, 7]

    def test_keeps_series_index(self):
        """Test a pandas Series input keeps its labels."""
        prices = pd.Series([1.0, 2.0, 3.0], index=[10, 11, 12])

        result = ema(prices, 2)

        assert list(result.index) == [11, 12]

    def test_constant_series_stays_constant(self):
        """Test a flat series produces exactly the flat value."""
        result = ema([100.0] * 30, 7)

        assert (result == 100.0).all()

    def test_insufficient_data(self):
        """Test fewer prices than period raises InsufficientData."""
        with pytest.raises(InsufficientData):
            ema([1.0, 2.0], 3)

    @pytest.mark.parametrize("period", [0, -1, 2.5, True])
    def test_invalid_period(self, period):
        """Test non-positive or non-integer periods are rejected."""
        with pytest.raises(InvalidParameter):
            ema([1.0, 2.0, 3.0], period)

    def test_deterministic(self):
        """Test identical inputs give identical outputs."""
        prices = np.linspace(50, 80, 40) + np.sin(np.arange(40))

        pd.testing.assert_series_equal(ema(prices, 9), ema(prices, 9))


class TestRSI:
    """Tests for Wilder's RSI."""

    def test_all_gains_is_100(self):
        """Test RSI is 100 when there are no losses."""
        result = rsi(list(range(1, 20)), 14)

        assert (result == 100.0).all()

    def test_all_losses_is_0(self):
        """Test RSI is 0 when there are no gains."""
        result = rsi(list(range(20, 0, -1)), 14)

        assert result.iloc[0] == pytest.approx(0.0)

    def test_flat_series_is_100(self):
        """Test zero average loss yields 100 even with no gains."""
        result = rsi([100.0] * 20, 14)

        assert (result == 100.0).all()

    def test_first_value_uses_simple_averages(self):
        """Test the seed value from mean gains and losses."""
        # changes: +2, -1, +2, -1
        result = rsi([10.0, 12.0, 11.0, 13.0, 12.0], 4)

        # avg_gain = 1.0, avg_loss = 0.5, RS = 2
        assert result.iloc[0] == pytest.approx(100 - 100 / 3)

    def test_wilder_smoothing(self):
        """Test subsequent values smooth with (period - 1) / period."""
        result = rsi([10.0, 12.0, 11.0, 13.0, 12.0, 14.0], 4)

        avg_gain = (1.0 * 3 + 2.0) / 4
        avg_loss = (0.5 * 3 + 0.0) / 4
        assert result.iloc[1] == pytest.approx(100 - 100 / (1 + avg_gain / avg_loss))

    def test_index_starts_at_period(self):
        """Test first RSI value sits at the period-th bar."""
        result = rsi(list(range(1, 20)), 14)

        assert result.index[0] == 14
        assert len(result) == 5

    def test_bounded(self):
        """Test RSI stays within 0..100."""
        prices = 100 + 5 * np.sin(np.arange(80) / 3.0)

        result = rsi(prices, 14)

        assert result.between(0, 100).all()

    def test_insufficient_data(self):
        """Test fewer than period + 1 prices raises InsufficientData."""
        with pytest.raises(InsufficientData):
            rsi([1.0] * 14, 14)


class TestMACD:
    """Tests for MACD."""

    def test_columns(self):
        """Test MACD frame has macd, signal and histogram."""
        result = macd(np.linspace(10, 20, 40))

        assert list(result.columns) == ["macd", "signal", "histogram"]

    def test_aligned_by_bar_index(self):
        """Test the MACD line starts where the slow EMA starts."""
        prices = np.linspace(10, 20, 40)

        result = macd(prices, 3, 5, 2)

        assert result.index[0] == 4
        assert result.index[-1] == 39
        # signal seeded after signal_period MACD values
        assert math.isnan(result["signal"].iloc[0])
        assert not math.isnan(result["signal"].iloc[1])

    def test_macd_is_fast_minus_slow(self):
        """Test the MACD line equals fast EMA minus slow EMA at the same bar."""
        prices = pd.Series(100 + np.cos(np.arange(50) / 4.0))

        result = macd(prices, 12, 26, 9)
        expected = ema(prices, 12).loc[result.index] - ema(prices, 26).loc[result.index]

        np.testing.assert_allclose(result["macd"].to_numpy(), expected.to_numpy())

    def test_histogram(self):
        """Test histogram is MACD minus signal."""
        result = macd(100 + np.sin(np.arange(60) / 5.0)).dropna()

        np.testing.assert_allclose(
            result["histogram"].to_numpy(),
            (result["macd"] - result["signal"]).to_numpy(),
        )

    def test_flat_series_is_zero(self):
        """Test a flat series has zero MACD, signal and histogram."""
        result = macd([50.0] * 40).dropna()

        assert (result == 0.0).all().all()

    def test_insufficient_data(self):
        """Test fewer than slow + signal prices raises InsufficientData."""
        with pytest.raises(InsufficientData):
            macd([1.0] * 34)


class TestBollingerBands:
    """Tests for Bollinger Bands."""

    def test_bands(self):
        """Test middle is the window mean and bands use population std."""
        result = bollinger_bands([1.0, 2.0, 3.0, 4.0], period=3, multiplier=2.0)

        std = np.std([1.0, 2.0, 3.0])
        assert result["middle"].iloc[0] == pytest.approx(2.0)
        assert result["upper"].iloc[0] == pytest.approx(2.0 + 2 * std)
        assert result["lower"].iloc[0] == pytest.approx(2.0 - 2 * std)
        assert list(result.index) == [2, 3]

    def test_flat_series_collapses_bands(self):
        """Test a flat series has zero width bands."""
        result = bollinger_bands([100.0] * 25, period=20)

        assert (result["upper"] == 100.0).all()
        assert (result["lower"] == 100.0).all()

    def test_upper_above_lower(self):
        """Test upper >= middle >= lower."""
        result = bollinger_bands(100 + np.sin(np.arange(60)), period=20, multiplier=2)

        assert (result["upper"] >= result["middle"]).all()
        assert (result["middle"] >= result["lower"]).all()

    def test_invalid_multiplier(self):
        """Test a non-numeric multiplier is rejected."""
        with pytest.raises(InvalidParameter):
            bollinger_bands([1.0] * 25, period=20, multiplier="2")

    def test_insufficient_data(self):
        """Test fewer than period prices raises InsufficientData."""
        with pytest.raises(InsufficientData):
            bollinger_bands([1.0] * 19, period=20)
