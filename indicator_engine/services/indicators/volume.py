"""
Volume Indicator.

Trading volume per bar, drawn as a histogram at the bottom of the main chart.
"""

import math
from typing import Optional, Sequence

from indicator_engine.schemas.bars import Bar
from indicator_engine.schemas.indicators import IndicatorTypeId, VolumeOptions
from indicator_engine.services.indicators.base import OverlayIndicator
from indicator_engine.services.indicators.calculations import OHLCVData, volume_direction


def format_volume(volume: float) -> str:
    if volume >= 1_000_000:
        return f"{volume / 1_000_000:.2f}M"
    if volume >= 1_000:
        return f"{volume / 1_000:.2f}K"
    return f"{volume:.2f}"


class VolumeIndicator(OverlayIndicator):
    """
    Volume histogram overlay.

    ``value`` is the bar volume; ``values[0]`` is the bar direction
    (+1 close >= open, -1 otherwise) used for up/down coloring.
    """

    type_id = IndicatorTypeId.VOLUME
    options_model = VolumeOptions

    def build_name(self) -> str:
        return "Volume"

    def calculate(self, bars: Sequence[Bar]) -> None:
        data = OHLCVData.from_bars(bars)
        direction = volume_direction(data.opens, data.closes)
        self._data = self._build_points(data.times, data.volumes, direction)

    def get_bar_color(self, index: int) -> str:
        point = self.get_value_at(index)
        if point is None or not point.values or point.values[0] >= 0:
            return self._options.up_color
        return self._options.down_color

    def get_description(self, index: Optional[int] = None) -> str:
        value = self._series_value(index)
        return f"Vol {'-' if math.isnan(value) else format_volume(value)}"
