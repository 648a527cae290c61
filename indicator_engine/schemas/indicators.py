"""
CONTRACT 2: Indicator Engine

Input: Bar series + indicator options
Output: IndicatorDataPoint sequence

Options are persisted with camelCase keys (``lineWidth``, ``fastPeriod``)
and accepted in either camelCase or snake_case.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from indicator_engine.schemas.bars import Bar, PriceSource


# =============================================================================
# ENUMS
# =============================================================================


class IndicatorKind(str, Enum):
    OVERLAY = "overlay"  # Drawn on main chart
    PANEL = "panel"  # Drawn in separate pane


class IndicatorTypeId(str, Enum):
    """Closed tag identifying the algorithm behind a persisted record."""

    RSI = "RSI"
    EMA = "EMA"
    SMA = "SMA"
    HMA = "HMA"
    BOLLINGER_BANDS = "BollingerBands"
    MACD = "MACD"
    STOCHASTIC = "Stochastic"
    STOCH_RSI = "StochRSI"
    PARABOLIC_SAR = "ParabolicSAR"
    VOLUME = "Volume"


# =============================================================================
# OUTPUT: Calculated series
# =============================================================================


@dataclass
class IndicatorDataPoint:
    """One calculated point, aligned with the bar at the same index."""

    time: int
    value: float
    values: Optional[list[float]] = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form: NaN becomes None."""
        out: dict[str, Any] = {"time": self.time, "value": _nan_to_none(self.value)}
        if self.values is not None:
            out["values"] = [_nan_to_none(v) for v in self.values]
        return out


def _nan_to_none(value: float) -> Optional[float]:
    return None if math.isnan(value) else value


class IndicatorRange(BaseModel):
    """Vertical value range a renderer should scale to."""

    min: float
    max: float
    fixed_min: Optional[float] = None
    fixed_max: Optional[float] = None


class LevelLine(BaseModel):
    """Horizontal threshold line (e.g. RSI 70/30)."""

    y: float
    color: str
    label: str


# =============================================================================
# OPTIONS
# =============================================================================


class IndicatorOptions(BaseModel):
    """Options shared by every indicator."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    id: str = ""
    name: str = "Indicator"
    kind: IndicatorKind = IndicatorKind.OVERLAY
    visible: bool = True
    color: str = "#2962ff"
    line_width: float = 2


class SMAOptions(IndicatorOptions):
    name: str = "SMA"
    period: int = 20
    source: PriceSource = PriceSource.CLOSE
    color: str = "#f23645"  # Red
    line_width: float = 2


class EMAOptions(IndicatorOptions):
    name: str = "EMA"
    period: int = 20
    source: PriceSource = PriceSource.CLOSE
    color: str = "#2962ff"  # Blue
    line_width: float = 2


class HMAOptions(IndicatorOptions):
    name: str = "HMA"
    period: int = 9
    source: PriceSource = PriceSource.CLOSE
    color: str = "#00bcd4"  # Cyan
    line_width: float = 2


class RSIOptions(IndicatorOptions):
    name: str = "RSI"
    kind: IndicatorKind = IndicatorKind.PANEL
    period: int = 14
    source: PriceSource = PriceSource.CLOSE
    overbought_level: float = 70
    oversold_level: float = 30
    overbought_color: str = "rgba(239, 83, 80, 0.5)"
    oversold_color: str = "rgba(38, 166, 154, 0.5)"
    show_levels: bool = True
    color: str = "#9c27b0"  # Purple
    line_width: float = 2


class BollingerBandsOptions(IndicatorOptions):
    name: str = "Bollinger Bands"
    period: int = 20
    std_dev: float = 2
    source: PriceSource = PriceSource.CLOSE
    color: str = "#2962ff"  # Middle band
    line_width: float = 1


class MACDOptions(IndicatorOptions):
    name: str = "MACD"
    kind: IndicatorKind = IndicatorKind.PANEL
    fast_period: int = 12
    slow_period: int = 26
    signal_period: int = 9
    source: PriceSource = PriceSource.CLOSE
    color: str = "#2196f3"  # MACD line
    signal_color: str = "#ff6d00"
    line_width: float = 1.5


class StochasticOptions(IndicatorOptions):
    name: str = "Stochastic"
    kind: IndicatorKind = IndicatorKind.PANEL
    k_period: int = 14
    d_period: int = 3
    s_period: int = 3  # %K smoothing
    color: str = "#2196f3"  # %K
    signal_color: str = "#ff6d00"  # %D
    line_width: float = 1.5


class StochRSIOptions(IndicatorOptions):
    name: str = "Stoch RSI"
    kind: IndicatorKind = IndicatorKind.PANEL
    rsi_period: int = 14
    stoch_period: int = 14
    k_period: int = 3
    d_period: int = 3
    source: PriceSource = PriceSource.CLOSE
    color: str = "#2196f3"  # %K
    signal_color: str = "#ff6d00"  # %D
    line_width: float = 1.5


class ParabolicSAROptions(IndicatorOptions):
    name: str = "SAR"
    start: float = 0.02
    increment: float = 0.02
    maximum: float = 0.2
    color: str = "#2962ff"
    line_width: float = 1


class VolumeOptions(IndicatorOptions):
    name: str = "Volume"
    up_color: str = "rgba(38, 166, 154, 0.5)"  # Green
    down_color: str = "rgba(239, 83, 80, 0.5)"  # Red
    color: str = "#787b86"
    line_width: float = 1


# =============================================================================
# PERSISTENCE
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SerializedIndicator(_CamelModel):
    """One persisted indicator record."""

    id: str
    kind: Optional[IndicatorKind] = Field(None, description="Informational; the type decides the collection on load")
    type_id: str = Field(..., description="IndicatorTypeId value; unknown tags are skipped on load")
    name: Optional[str] = None
    options: dict[str, Any] = Field(default_factory=dict)


class IndicatorsPayload(_CamelModel):
    """Opaque blob handed to the storage adapter."""

    indicators: list[SerializedIndicator] = Field(default_factory=list)
    version: int = 1


class ChartState(_CamelModel):
    """Per-symbol saved chart state."""

    symbol: str
    indicators: list[SerializedIndicator] = Field(default_factory=list)
    saved_at: int = Field(..., description="Epoch milliseconds")
    version: int = 1


# =============================================================================
# API CONTRACTS
# =============================================================================


class IndicatorRequest(_CamelModel):
    """
    Request for a one-off indicator calculation.
    Sent by: API
    Received by: Indicator Service
    """

    type_id: str = Field(..., description="IndicatorTypeId value, e.g. 'RSI'")
    options: dict[str, Any] = Field(default_factory=dict)
    bars: list[Bar] = Field(default_factory=list)


class IndicatorOutput(_CamelModel):
    """Calculated series plus render metadata. NaN is rendered as null."""

    id: str
    type_id: str
    name: str
    kind: IndicatorKind
    visible: bool = True
    options: dict[str, Any] = Field(default_factory=dict)
    data: list[dict[str, Any]] = Field(default_factory=list)
    range: Optional[IndicatorRange] = None
    description: str = "-"
    pane_height: Optional[int] = None
    level_lines: list[LevelLine] = Field(default_factory=list)


class AddIndicatorRequest(_CamelModel):
    type_id: str
    options: dict[str, Any] = Field(default_factory=dict)


class SettingsUpdate(_CamelModel):
    """Partial options patch; keys may be camelCase or snake_case."""

    changes: dict[str, Any] = Field(..., min_length=1)


class SettingsUpdateResult(_CamelModel):
    id: str
    recalculated: bool
    indicator: IndicatorOutput
