"""Error kinds raised by the backtesting engine and its collaborators.

Lower layers raise the specific kind; the service layer logs and re-raises
them unchanged so callers can map each kind to a user-facing status.
"""


class BacktestError(Exception):
    """Base exception for all backtesting errors."""

    pass


class InsufficientData(BacktestError):
    """Raised when there are not enough candles for the requested strategy or period."""

    pass


class UnknownStrategy(BacktestError):
    """Raised when a strategy name is not supported by the strategy engine."""

    pass


class InvalidParameter(BacktestError, ValueError):
    """Raised for bad dates, non-positive capital or malformed strategy parameters."""

    pass


class StrategyNotFound(BacktestError):
    """Raised when a strategy id is missing from the strategy catalog."""

    pass


class NotFound(BacktestError):
    """Raised when a backtest record does not exist for the requesting user."""

    pass


class NoHistoricalData(BacktestError):
    """Raised when the market data source returns nothing for the window."""

    pass


class MarketDataUnavailable(BacktestError):
    """Raised when the market data source cannot be reached or fails."""

    pass


class PersistenceFailure(BacktestError):
    """Raised when a backtest or its trades cannot be written or read."""

    pass
