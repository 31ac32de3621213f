"""Service configuration using Pydantic BaseSettings.

This module provides centralized configuration management for the backtesting
engine. All environment variables are validated at startup.
"""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_WORKSPACE_ENV = Path(__file__).resolve().parent.parent / ".env"


class ServiceConfig(BaseSettings):
    """Configuration for the backtesting engine.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=str(_WORKSPACE_ENV),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Service identity
    service_name: str = "backtesting"
    log_level: str = "INFO"

    # PostgreSQL (falls back to POSTGRES_* variables when unset)
    database_url: str | None = None
    db_schema: str = "trading"

    # Market data source
    market_data_provider: Literal["yfinance", "synthetic"] = "yfinance"
    market_data_interval: str = "1d"
    synthetic_fallback_enabled: bool = True
    synthetic_seed: int = 42
    synthetic_max_days: int = 365

    # Backtest defaults
    default_initial_capital: float = 100000.0


# Global config instance - validated at import time
config = ServiceConfig()
