"""
Moving average overlays: SMA, EMA, HMA.

EMA = Price(t) * k + EMA(t-1) * (1 - k), k = 2 / (N + 1), seeded with SMA(N).
HMA = WMA(2 * WMA(n/2) - WMA(n), sqrt(n)).
"""

from abc import abstractmethod
from typing import ClassVar, Optional, Sequence

import numpy as np

from indicator_engine.schemas.bars import Bar
from indicator_engine.schemas.indicators import (
    EMAOptions,
    HMAOptions,
    IndicatorTypeId,
    SMAOptions,
)
from indicator_engine.services.indicators.base import OverlayIndicator, format_value
from indicator_engine.services.indicators.calculations import (
    OHLCVData,
    ema,
    hma,
    sma,
    source_prices,
)


class _MovingAverageIndicator(OverlayIndicator):
    """Single-line average of a price source over ``period`` bars."""

    label: ClassVar[str]
    recalc_fields = frozenset({"period", "source"})

    @property
    def period(self) -> int:
        return self._options.period

    @property
    def source(self) -> str:
        return self._options.source.value

    def build_name(self) -> str:
        return f"{self.label} ({self._options.period})"

    @abstractmethod
    def _average(self, prices: np.ndarray) -> np.ndarray:
        """Average of ``prices``, NaN where undefined."""

    def calculate(self, bars: Sequence[Bar]) -> None:
        data = OHLCVData.from_bars(bars)
        prices = source_prices(data, self._options.source)
        self._data = self._build_points(data.times, self._average(prices))

    def get_description(self, index: Optional[int] = None) -> str:
        value = self._series_value(index)
        return f"{self.label}({self._options.period}): {format_value(value)}"


class SMAIndicator(_MovingAverageIndicator):
    """SMA (Simple Moving Average) overlay."""

    type_id = IndicatorTypeId.SMA
    options_model = SMAOptions
    label = "SMA"

    def _average(self, prices: np.ndarray) -> np.ndarray:
        return sma(prices, self._options.period)


class EMAIndicator(_MovingAverageIndicator):
    """
    EMA (Exponential Moving Average) overlay.

    Gives more weight to recent prices and reacts faster than SMA.
    """

    type_id = IndicatorTypeId.EMA
    options_model = EMAOptions
    label = "EMA"

    def _average(self, prices: np.ndarray) -> np.ndarray:
        return ema(prices, self._options.period)


class HMAIndicator(_MovingAverageIndicator):
    """HMA (Hull Moving Average) overlay: smoother, with reduced lag."""

    type_id = IndicatorTypeId.HMA
    options_model = HMAOptions
    label = "HMA"

    def _average(self, prices: np.ndarray) -> np.ndarray:
        return hma(prices, self._options.period)
