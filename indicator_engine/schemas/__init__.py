"""
Data schemas for the indicator engine.

All models use Pydantic for validation; persisted shapes use camelCase keys.
"""

from indicator_engine.schemas.bars import Bar, BarSeries, PriceSource
from indicator_engine.schemas.indicators import (
    ChartState,
    IndicatorDataPoint,
    IndicatorKind,
    IndicatorOptions,
    IndicatorRange,
    IndicatorsPayload,
    IndicatorTypeId,
    LevelLine,
    SerializedIndicator,
)

__all__ = [
    "Bar",
    "BarSeries",
    "PriceSource",
    "ChartState",
    "IndicatorDataPoint",
    "IndicatorKind",
    "IndicatorOptions",
    "IndicatorRange",
    "IndicatorsPayload",
    "IndicatorTypeId",
    "LevelLine",
    "SerializedIndicator",
]
