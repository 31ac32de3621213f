"""Strategy catalog and parameter schemas.

Each supported strategy has a display name (as stored in the strategy catalog),
a short key, a description and a pydantic parameter model holding the
defaults. Parameter validation checks types and required-key presence only:
unknown keys are ignored, missing keys take their defaults.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidParameter, UnknownStrategy


class StrategyParameters(BaseModel):
    """Base class for per-strategy parameter sets."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    @field_validator("*", mode="before")
    @classmethod
    def _require_number(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"must be a number, got {value!r}")
        return value

    def lookback(self) -> int:
        """Minimum number of candles the strategy needs."""
        raise NotImplementedError


class CrossoverParameters(StrategyParameters):
    short_period: int = Field(default=9, ge=1, alias="shortPeriod")
    long_period: int = Field(default=21, ge=1, alias="longPeriod")

    def lookback(self) -> int:
        return self.long_period


class RSIParameters(StrategyParameters):
    period: int = Field(default=14, ge=1)
    overbought: float = Field(default=70.0)
    oversold: float = Field(default=30.0)

    def lookback(self) -> int:
        return self.period + 14


class MACDParameters(StrategyParameters):
    fast_period: int = Field(default=12, ge=1, alias="fastPeriod")
    slow_period: int = Field(default=26, ge=1, alias="slowPeriod")
    signal_period: int = Field(default=9, ge=1, alias="signalPeriod")

    def lookback(self) -> int:
        return self.slow_period + self.signal_period


class BollingerParameters(StrategyParameters):
    period: int = Field(default=20, ge=1)
    std_dev: float = Field(default=2.0, alias="stdDev")

    def lookback(self) -> int:
        return self.period


@dataclass(frozen=True)
class StrategySpec:
    """Static description of a supported strategy."""

    key: str
    name: str
    description: str
    parameters_model: type[StrategyParameters]

    def default_parameters(self) -> dict[str, Any]:
        """Default parameters keyed by their catalog (camelCase) names."""
        return self.parameters_model().model_dump(by_alias=True)


MA_CROSSOVER = StrategySpec(
    key="ma_crossover",
    name="Moving Average Crossover",
    description=(
        "Generates signals when short-term moving average crosses long-term moving average"
    ),
    parameters_model=CrossoverParameters,
)
RSI_STRATEGY = StrategySpec(
    key="rsi",
    name="RSI Strategy",
    description="Uses Relative Strength Index to identify overbought and oversold conditions",
    parameters_model=RSIParameters,
)
MACD_STRATEGY = StrategySpec(
    key="macd",
    name="MACD Strategy",
    description="Uses Moving Average Convergence Divergence for trend following",
    parameters_model=MACDParameters,
)
BOLLINGER_STRATEGY = StrategySpec(
    key="bollinger_bands",
    name="Bollinger Bands Strategy",
    description="Uses price volatility bands to spot reversals from extreme prices",
    parameters_model=BollingerParameters,
)

SUPPORTED_STRATEGIES: tuple[StrategySpec, ...] = (
    MA_CROSSOVER,
    RSI_STRATEGY,
    MACD_STRATEGY,
    BOLLINGER_STRATEGY,
)

_BY_NAME: dict[str, StrategySpec] = {
    **{spec.name: spec for spec in SUPPORTED_STRATEGIES},
    **{spec.key: spec for spec in SUPPORTED_STRATEGIES},
}


def resolve_strategy(name: str) -> StrategySpec:
    """Look up a strategy by catalog name or short key.

    Raises:
        UnknownStrategy: If the name is not supported.
    """
    spec = _BY_NAME.get(name)
    if spec is None:
        supported = ", ".join(s.name for s in SUPPORTED_STRATEGIES)
        raise UnknownStrategy(f"Strategy {name!r} is not supported. Supported: {supported}")
    return spec


def parse_parameters(
    spec: StrategySpec, parameters: Optional[Mapping[str, Any]] = None
) -> StrategyParameters:
    """Validate a raw parameter mapping against the strategy's schema.

    Raises:
        InvalidParameter: If a known parameter has the wrong type.
    """
    try:
        return spec.parameters_model.model_validate(dict(parameters or {}))
    except ValidationError as e:
        raise InvalidParameter(f"Invalid parameters for {spec.name}: {e}") from e


def merge_parameters(
    spec: StrategySpec,
    defaults: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Overlay ``overrides`` on ``defaults`` under catalog (camelCase) names.

    Field names (``short_period``) and catalog names (``shortPeriod``) refer to
    the same parameter, so an override under either name replaces the default.
    """
    aliases = {
        name: field.alias or name
        for name, field in spec.parameters_model.model_fields.items()
    }

    def _catalog_keys(parameters: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        return {aliases.get(key, key): value for key, value in (parameters or {}).items()}

    return {**_catalog_keys(defaults), **_catalog_keys(overrides)}
