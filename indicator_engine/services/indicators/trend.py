"""
Trend Indicators.

Parabolic SAR (Stop and Reverse), drawn as dots above or below the candles
to mark potential reversals of the price direction.
"""

from typing import Optional, Sequence

from indicator_engine.schemas.bars import Bar
from indicator_engine.schemas.indicators import IndicatorTypeId, ParabolicSAROptions
from indicator_engine.services.indicators.base import (
    OverlayIndicator,
    format_param,
    format_value,
)
from indicator_engine.services.indicators.calculations import OHLCVData, parabolic_sar


class ParabolicSARIndicator(OverlayIndicator):
    """Parabolic SAR overlay."""

    type_id = IndicatorTypeId.PARABOLIC_SAR
    options_model = ParabolicSAROptions
    recalc_fields = frozenset({"start", "increment", "maximum"})

    @property
    def start(self) -> float:
        return self._options.start

    @property
    def increment(self) -> float:
        return self._options.increment

    @property
    def maximum(self) -> float:
        return self._options.maximum

    def _params(self) -> str:
        opts = self._options
        return f"{format_param(opts.start)}, {format_param(opts.increment)}, {format_param(opts.maximum)}"

    def build_name(self) -> str:
        return f"SAR ({self._params()})"

    def calculate(self, bars: Sequence[Bar]) -> None:
        opts = self._options
        data = OHLCVData.from_bars(bars)
        sar = parabolic_sar(data.highs, data.lows, data.closes, opts.start, opts.increment, opts.maximum)
        self._data = self._build_points(data.times, sar)

    def get_description(self, index: Optional[int] = None) -> str:
        return f"SAR({self._params()}): {format_value(self._series_value(index))}"
