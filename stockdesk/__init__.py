"""Stockdesk backtesting engine.

Replays trading strategies over historical candles, simulates long-only
trades and stores the results per user.
"""

__version__ = "0.1.0"
