"""
Oscillator Indicators - Momentum-based panel indicators.

Includes:
- RSI (Relative Strength Index)
- MACD (Moving Average Convergence Divergence)
- Stochastic Oscillator
- Stochastic RSI
"""

from typing import Optional, Sequence

import numpy as np

from indicator_engine.schemas.bars import Bar
from indicator_engine.schemas.indicators import (
    IndicatorRange,
    IndicatorTypeId,
    LevelLine,
    MACDOptions,
    RSIOptions,
    StochasticOptions,
    StochRSIOptions,
)
from indicator_engine.services.indicators.base import (
    PanelIndicator,
    format_param,
    format_value,
)
from indicator_engine.services.indicators.calculations import (
    OHLCVData,
    finite_min_max,
    macd,
    rsi,
    source_prices,
    stoch_rsi,
    stochastic,
)


def _fixed_percent_range() -> IndicatorRange:
    return IndicatorRange(min=0, max=100, fixed_min=0, fixed_max=100)


def _stochastic_levels() -> list[LevelLine]:
    return [
        LevelLine(y=80, color="rgba(239, 83, 80, 0.4)", label="80"),
        LevelLine(y=20, color="rgba(38, 166, 154, 0.4)", label="20"),
    ]


class RSIIndicator(PanelIndicator):
    """
    Relative Strength Index (RSI)

    Measures the speed and magnitude of price changes on a 0-100 scale.
    - RSI > 70: Overbought (potential sell signal)
    - RSI < 30: Oversold (potential buy signal)
    """

    type_id = IndicatorTypeId.RSI
    options_model = RSIOptions
    recalc_fields = frozenset({"period", "source"})
    default_pane_height = 100

    @property
    def period(self) -> int:
        return self._options.period

    @property
    def overbought_level(self) -> float:
        return self._options.overbought_level

    @property
    def oversold_level(self) -> float:
        return self._options.oversold_level

    def build_name(self) -> str:
        return f"RSI ({self._options.period})"

    def calculate(self, bars: Sequence[Bar]) -> None:
        data = OHLCVData.from_bars(bars)
        prices = source_prices(data, self._options.source)
        self._data = self._build_points(data.times, rsi(prices, self._options.period))

    def get_range(self) -> IndicatorRange:
        return _fixed_percent_range()

    def get_description(self, index: Optional[int] = None) -> str:
        return f"RSI({self._options.period}): {format_value(self._series_value(index))}"

    def get_level_lines(self) -> list[LevelLine]:
        opts = self._options
        if not opts.show_levels:
            return []

        return [
            LevelLine(y=opts.overbought_level, color=opts.overbought_color, label=format_param(opts.overbought_level)),
            LevelLine(y=50, color="rgba(255, 255, 255, 0.2)", label="50"),
            LevelLine(y=opts.oversold_level, color=opts.oversold_color, label=format_param(opts.oversold_level)),
        ]

    def is_overbought(self) -> bool:
        if not self._data:
            return False
        last = self._data[-1].value
        return not np.isnan(last) and last > self._options.overbought_level

    def is_oversold(self) -> bool:
        if not self._data:
            return False
        last = self._data[-1].value
        return not np.isnan(last) and last < self._options.oversold_level


class MACDIndicator(PanelIndicator):
    """
    MACD (Moving Average Convergence Divergence)

    Renders the MACD line, the signal line and the histogram. ``value`` of
    each point is the histogram, ``values`` is [macd, signal].
    """

    type_id = IndicatorTypeId.MACD
    options_model = MACDOptions
    recalc_fields = frozenset({"fast_period", "slow_period", "signal_period", "source"})
    default_pane_height = 120

    def build_name(self) -> str:
        opts = self._options
        return f"MACD ({opts.fast_period}, {opts.slow_period}, {opts.signal_period})"

    def calculate(self, bars: Sequence[Bar]) -> None:
        opts = self._options
        data = OHLCVData.from_bars(bars)
        prices = source_prices(data, opts.source)

        macd_line, signal_line, histogram = macd(
            prices, opts.fast_period, opts.slow_period, opts.signal_period
        )
        self._data = self._build_points(data.times, histogram, macd_line, signal_line)

    def get_range(self) -> IndicatorRange:
        bounds = finite_min_max(self._values(), self._values(0), self._values(1))
        if bounds is None:
            return IndicatorRange(min=-1, max=1)
        return IndicatorRange(min=bounds[0], max=bounds[1])

    def get_histogram_value(self, index: int) -> float:
        point = self.get_value_at(index)
        return point.value if point is not None else float("nan")

    def get_line_colors(self) -> list[str]:
        return [self._options.color, self._options.signal_color]

    def get_description(self, index: Optional[int] = None) -> str:
        macd_value = format_value(self._series_value(index, 0))
        signal = format_value(self._series_value(index, 1))
        hist = format_value(self._series_value(index))
        return f"MACD: {macd_value} {signal} {hist}"


class StochasticIndicator(PanelIndicator):
    """
    Stochastic Oscillator

    Compares the close to the high/low range of the last ``k_period`` bars.
    ``values`` is [%K, %D].
    - %K < 20: Oversold
    - %K > 80: Overbought
    """

    type_id = IndicatorTypeId.STOCHASTIC
    options_model = StochasticOptions
    recalc_fields = frozenset({"k_period", "d_period", "s_period"})
    default_pane_height = 100

    def build_name(self) -> str:
        opts = self._options
        return f"Stoch ({opts.k_period}, {opts.s_period}, {opts.d_period})"

    def calculate(self, bars: Sequence[Bar]) -> None:
        opts = self._options
        data = OHLCVData.from_bars(bars)
        k, d = stochastic(
            data.highs, data.lows, data.closes, opts.k_period, opts.d_period, opts.s_period
        )
        self._data = self._build_points(data.times, k, k, d)

    def get_range(self) -> IndicatorRange:
        return _fixed_percent_range()

    def get_level_lines(self) -> list[LevelLine]:
        return _stochastic_levels()

    def get_line_colors(self) -> list[str]:
        return [self._options.color, self._options.signal_color]

    def get_description(self, index: Optional[int] = None) -> str:
        k = format_value(self._series_value(index, 0))
        d = format_value(self._series_value(index, 1))
        return f"Stoch({self._options.k_period}): {k} {d}"


class StochRSIIndicator(PanelIndicator):
    """
    Stochastic RSI

    Level of the RSI relative to its own high/low range over
    ``stoch_period`` bars. ``values`` is [%K, %D].
    """

    type_id = IndicatorTypeId.STOCH_RSI
    options_model = StochRSIOptions
    recalc_fields = frozenset({"rsi_period", "stoch_period", "k_period", "d_period", "source"})
    default_pane_height = 110

    def build_name(self) -> str:
        opts = self._options
        return f"Stoch RSI ({opts.rsi_period}, {opts.stoch_period}, {opts.k_period}, {opts.d_period})"

    def calculate(self, bars: Sequence[Bar]) -> None:
        opts = self._options
        data = OHLCVData.from_bars(bars)
        prices = source_prices(data, opts.source)
        k, d = stoch_rsi(prices, opts.rsi_period, opts.stoch_period, opts.k_period, opts.d_period)
        self._data = self._build_points(data.times, k, k, d)

    def get_range(self) -> IndicatorRange:
        return _fixed_percent_range()

    def get_level_lines(self) -> list[LevelLine]:
        return _stochastic_levels()

    def get_line_colors(self) -> list[str]:
        return [self._options.color, self._options.signal_color]

    def get_description(self, index: Optional[int] = None) -> str:
        k = format_value(self._series_value(index, 0))
        d = format_value(self._series_value(index, 1))
        return f"Stoch RSI({self._options.rsi_period}): {k} {d}"
