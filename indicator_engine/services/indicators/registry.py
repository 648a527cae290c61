"""
Indicator Registry

Closed mapping from IndicatorTypeId to the concrete indicator class.
Construction and type tagging dispatch through here only.
"""

from typing import Any, Mapping, Optional, Union

from indicator_engine.schemas.indicators import IndicatorKind, IndicatorOptions, IndicatorTypeId
from indicator_engine.services.indicators.base import Indicator
from indicator_engine.services.indicators.moving_averages import (
    EMAIndicator,
    HMAIndicator,
    SMAIndicator,
)
from indicator_engine.services.indicators.oscillators import (
    MACDIndicator,
    RSIIndicator,
    StochasticIndicator,
    StochRSIIndicator,
)
from indicator_engine.services.indicators.trend import ParabolicSARIndicator
from indicator_engine.services.indicators.volatility import BollingerBandsIndicator
from indicator_engine.services.indicators.volume import VolumeIndicator

INDICATOR_TYPES: dict[IndicatorTypeId, type[Indicator]] = {
    IndicatorTypeId.RSI: RSIIndicator,
    IndicatorTypeId.EMA: EMAIndicator,
    IndicatorTypeId.SMA: SMAIndicator,
    IndicatorTypeId.HMA: HMAIndicator,
    IndicatorTypeId.BOLLINGER_BANDS: BollingerBandsIndicator,
    IndicatorTypeId.MACD: MACDIndicator,
    IndicatorTypeId.STOCHASTIC: StochasticIndicator,
    IndicatorTypeId.STOCH_RSI: StochRSIIndicator,
    IndicatorTypeId.PARABOLIC_SAR: ParabolicSARIndicator,
    IndicatorTypeId.VOLUME: VolumeIndicator,
}


def resolve_type_id(type_id: Union[str, IndicatorTypeId]) -> Optional[IndicatorTypeId]:
    """Parse a persisted type tag; None for tags this build does not know."""
    try:
        return IndicatorTypeId(type_id)
    except ValueError:
        return None


def get_indicator_class(type_id: Union[str, IndicatorTypeId]) -> Optional[type[Indicator]]:
    resolved = resolve_type_id(type_id)
    if resolved is None:
        return None
    return INDICATOR_TYPES[resolved]


def create_indicator(
    type_id: Union[str, IndicatorTypeId],
    options: Union[Mapping[str, Any], IndicatorOptions, None] = None,
    **overrides: Any,
) -> Indicator:
    """
    Build an indicator from its type tag.

    Raises:
        KeyError: unknown type tag
        pydantic.ValidationError: options fail validation
    """
    cls = get_indicator_class(type_id)
    if cls is None:
        raise KeyError(f"Unknown indicator type: {type_id}")
    return cls(options, **overrides)


def describe_types() -> list[dict[str, Any]]:
    """Type id, kind and default options of every registered indicator."""
    described = []
    for type_id, cls in INDICATOR_TYPES.items():
        defaults = cls.options_model(kind=cls.kind)
        described.append({
            "typeId": type_id.value,
            "kind": cls.kind.value,
            "panel": cls.kind == IndicatorKind.PANEL,
            "defaults": defaults.model_dump(
                mode="json", by_alias=True, exclude={"id", "name", "kind"}
            ),
        })
    return described
