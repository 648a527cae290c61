"""
Volatility Indicators.

Bollinger Bands: middle = SMA(n), upper/lower = middle +/- k * stddev,
using the population standard deviation of the window.
"""

from typing import Optional, Sequence

from indicator_engine.schemas.bars import Bar
from indicator_engine.schemas.indicators import (
    BollingerBandsOptions,
    IndicatorRange,
    IndicatorTypeId,
)
from indicator_engine.services.indicators.base import (
    OverlayIndicator,
    format_param,
    format_value,
)
from indicator_engine.services.indicators.calculations import (
    OHLCVData,
    bollinger_bands,
    finite_min_max,
    source_prices,
)


class BollingerBandsIndicator(OverlayIndicator):
    """Bollinger Bands overlay. ``values`` is [middle, upper, lower]."""

    type_id = IndicatorTypeId.BOLLINGER_BANDS
    options_model = BollingerBandsOptions
    recalc_fields = frozenset({"period", "std_dev", "source"})

    def _params(self) -> str:
        return f"{self._options.period}, {format_param(self._options.std_dev)}"

    def build_name(self) -> str:
        return f"BB ({self._params()})"

    def calculate(self, bars: Sequence[Bar]) -> None:
        data = OHLCVData.from_bars(bars)
        prices = source_prices(data, self._options.source)
        middle, upper, lower = bollinger_bands(prices, self._options.period, self._options.std_dev)
        self._data = self._build_points(data.times, middle, middle, upper, lower)

    def get_range(self) -> IndicatorRange:
        bounds = finite_min_max(self._values(1), self._values(2))
        if bounds is None:
            return IndicatorRange(min=0, max=100)
        return IndicatorRange(min=bounds[0], max=bounds[1])

    def get_description(self, index: Optional[int] = None) -> str:
        middle = format_value(self._series_value(index, 0))
        upper = format_value(self._series_value(index, 1))
        lower = format_value(self._series_value(index, 2))
        return f"BB({self._params()}): {middle} ({lower}, {upper})"
