"""
Technical Indicator Calculations

Pure Python/NumPy implementations of technical indicators.
All math is deterministic.

Every function returns arrays with the same length as its input. Indices
before an algorithm's minimum lookback are NaN, and the whole output is NaN
when the input is shorter than that lookback or a period is not positive.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence
import numpy as np

from indicator_engine.schemas.bars import Bar, PriceSource


@dataclass
class OHLCVData:
    """OHLCV data arrays for calculations."""

    times: np.ndarray
    opens: np.ndarray
    highs: np.ndarray
    lows: np.ndarray
    closes: np.ndarray
    volumes: np.ndarray

    @classmethod
    def from_bars(cls, bars: Sequence[Bar]) -> "OHLCVData":
        return cls(
            times=np.array([b.time for b in bars], dtype=np.int64),
            opens=np.array([b.open for b in bars], dtype=float),
            highs=np.array([b.high for b in bars], dtype=float),
            lows=np.array([b.low for b in bars], dtype=float),
            closes=np.array([b.close for b in bars], dtype=float),
            volumes=np.array([b.volume for b in bars], dtype=float),
        )

    def __len__(self) -> int:
        return len(self.times)


def nan_array(length: int) -> np.ndarray:
    return np.full(length, np.nan)


def source_prices(data: OHLCVData, source: PriceSource) -> np.ndarray:
    """Resolve the price selector for every bar."""
    if source == PriceSource.OPEN:
        return data.opens
    if source == PriceSource.HIGH:
        return data.highs
    if source == PriceSource.LOW:
        return data.lows
    if source == PriceSource.HL2:
        return (data.highs + data.lows) / 2
    if source == PriceSource.HLC3:
        return (data.highs + data.lows + data.closes) / 3
    if source == PriceSource.OHLC4:
        return (data.opens + data.highs + data.lows + data.closes) / 4
    return data.closes


# =============================================================================
# MOVING AVERAGES
# =============================================================================


def sma(data: np.ndarray, period: int) -> np.ndarray:
    """Simple Moving Average (sliding sum, O(1) per step)."""
    result = nan_array(len(data))
    if period < 1 or len(data) < period:
        return result

    total = 0.0
    for i in range(period):
        total += data[i]
    result[period - 1] = total / period

    for i in range(period, len(data)):
        total += data[i]
        total -= data[i - period]
        result[i] = total / period

    return result


def ema(data: np.ndarray, period: int) -> np.ndarray:
    """Exponential Moving Average, seeded with the SMA of the first period."""
    result = nan_array(len(data))
    if period < 1 or len(data) < period:
        return result

    k = 2 / (period + 1)

    # Start with SMA
    total = 0.0
    for i in range(period):
        total += data[i]
    value = total / period
    result[period - 1] = value

    for i in range(period, len(data)):
        value = data[i] * k + value * (1 - k)
        result[i] = value

    return result


def ema_from_first(data: np.ndarray, period: int) -> np.ndarray:
    """EMA seeded with the first value; defined from index 0 (used by MACD)."""
    result = nan_array(len(data))
    if period < 1 or len(data) == 0:
        return result

    k = 2 / (period + 1)
    value = data[0]
    for i in range(len(data)):
        value = data[i] * k + value * (1 - k)
        result[i] = value

    return result


def wma(data: np.ndarray, period: int) -> np.ndarray:
    """
    Weighted Moving Average.

    Weight ``period - j`` for lag ``j``; a NaN anywhere in the window
    makes that output NaN.
    """
    result = nan_array(len(data))
    if period < 1 or len(data) < period:
        return result

    denom = period * (period + 1) / 2

    for i in range(period - 1, len(data)):
        total = 0.0
        for j in range(period):
            value = data[i - j]
            if math.isnan(value):
                total = math.nan
                break
            total += value * (period - j)
        result[i] = total / denom

    return result


def hma(data: np.ndarray, period: int) -> np.ndarray:
    """Hull Moving Average: WMA(2 * WMA(n/2) - WMA(n), sqrt(n))."""
    if period < 1 or len(data) < period:
        return nan_array(len(data))

    wma_half = wma(data, period // 2)
    wma_full = wma(data, period)
    raw = 2 * wma_half - wma_full

    return wma(raw, math.isqrt(period))


def rolling_mean_skipna(data: np.ndarray, period: int) -> np.ndarray:
    """
    Sliding mean that only counts non-NaN values.

    Output is defined once ``period`` valid values have been accumulated.
    """
    result = nan_array(len(data))
    if period < 1 or len(data) < period:
        return result

    total = 0.0
    count = 0
    for i in range(len(data)):
        value = data[i]
        if not math.isnan(value):
            total += value
            count += 1

        if count > period:
            prev = data[i - period]
            if not math.isnan(prev):
                total -= prev
                count -= 1

        if count == period:
            result[i] = total / period

    return result


# =============================================================================
# MOMENTUM INDICATORS
# =============================================================================


def rsi(closes: np.ndarray, period: int = 14) -> np.ndarray:
    """
    Relative Strength Index with Wilder smoothing.

    Seeded with the simple mean of the first ``period`` gains/losses.
    RSI = 100 * avg_gain / (avg_gain + avg_loss); 50 when both are zero.
    """
    result = nan_array(len(closes))
    if period < 1 or len(closes) < period + 1:
        return result

    deltas = np.diff(closes)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = 0.0
    avg_loss = 0.0
    for i in range(period):
        avg_gain += gains[i]
        avg_loss += losses[i]
    avg_gain /= period
    avg_loss /= period

    total = avg_gain + avg_loss
    result[period] = 50.0 if total == 0 else 100 * avg_gain / total

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period

        total = avg_gain + avg_loss
        result[i + 1] = 50.0 if total == 0 else 100 * avg_gain / total

    return result


def rsi_ratio(closes: np.ndarray, period: int = 14) -> np.ndarray:
    """
    RSI in the 100 - 100 / (1 + RS) form; 100 when the average loss is zero.

    This is the series Stochastic RSI is computed on.
    """
    result = nan_array(len(closes))
    if period < 1 or len(closes) < period + 1:
        return result

    avg_gain = 0.0
    avg_loss = 0.0
    for i in range(1, period + 1):
        diff = closes[i] - closes[i - 1]
        if diff >= 0:
            avg_gain += diff
        else:
            avg_loss -= diff
    avg_gain /= period
    avg_loss /= period

    result[period] = 100.0 if avg_loss == 0 else 100 - 100 / (1 + avg_gain / avg_loss)

    for i in range(period + 1, len(closes)):
        diff = closes[i] - closes[i - 1]
        gain = diff if diff >= 0 else 0.0
        loss = -diff if diff < 0 else 0.0

        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

        result[i] = 100.0 if avg_loss == 0 else 100 - 100 / (1 + avg_gain / avg_loss)

    return result


def macd(
    prices: np.ndarray,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    MACD (Moving Average Convergence Divergence).

    Fast, slow and signal EMAs are all seeded from their first input value,
    so every series is defined from index 0 once ``slow_period`` bars exist.

    Returns: (macd_line, signal_line, histogram)
    """
    n = len(prices)
    if min(fast_period, slow_period, signal_period) < 1 or n < slow_period:
        return nan_array(n), nan_array(n), nan_array(n)

    macd_line = ema_from_first(prices, fast_period) - ema_from_first(prices, slow_period)

    # Signal line is EMA of MACD line
    signal_line = ema_from_first(macd_line, signal_period)

    histogram = macd_line - signal_line

    return macd_line, signal_line, histogram


def stochastic(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    k_period: int = 14,
    d_period: int = 3,
    smooth_period: int = 3,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Full Stochastic Oscillator.

    raw %K over ``k_period`` (50 when the high/low range is zero), %K is the
    ``smooth_period`` mean of raw %K, %D the ``d_period`` mean of %K.
    Both series are NaN until %D is defined.

    Returns: (k, d)
    """
    n = len(closes)
    if min(k_period, d_period, smooth_period) < 1 or n < k_period:
        return nan_array(n), nan_array(n)

    raw_k = nan_array(n)
    for i in range(k_period - 1, n):
        highest_high = np.max(highs[i - k_period + 1 : i + 1])
        lowest_low = np.min(lows[i - k_period + 1 : i + 1])

        diff = highest_high - lowest_low
        if diff == 0:
            raw_k[i] = 50.0
        else:
            raw_k[i] = (closes[i] - lowest_low) / diff * 100

    smoothed_k = nan_array(n)
    for i in range(k_period + smooth_period - 2, n):
        window = raw_k[i - smooth_period + 1 : i + 1]
        valid = window[~np.isnan(window)]
        if len(valid) > 0:
            smoothed_k[i] = np.sum(valid) / len(valid)

    k = nan_array(n)
    d = nan_array(n)
    for i in range(k_period + smooth_period + d_period - 3, n):
        window = smoothed_k[i - d_period + 1 : i + 1]
        valid = window[~np.isnan(window)]
        if len(valid) > 0:
            d[i] = np.sum(valid) / len(valid)
        k[i] = smoothed_k[i]

    return np.clip(k, 0, 100), np.clip(d, 0, 100)


def stoch_rsi(
    closes: np.ndarray,
    rsi_period: int = 14,
    stoch_period: int = 14,
    k_period: int = 3,
    d_period: int = 3,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Stochastic RSI.

    Stochastic formula applied to the RSI series (0 when the RSI range is
    zero), smoothed into %K and %D and scaled to 0-100.

    Returns: (k, d)
    """
    n = len(closes)
    if min(rsi_period, stoch_period, k_period, d_period) < 1 or n < rsi_period + stoch_period:
        return nan_array(n), nan_array(n)

    rsi_values = rsi_ratio(closes, rsi_period)

    raw = nan_array(n)
    for i in range(rsi_period + stoch_period - 1, n):
        window = rsi_values[i - stoch_period + 1 : i + 1]
        low = np.min(window)
        high = np.max(window)
        diff = high - low
        raw[i] = 0.0 if diff == 0 else (rsi_values[i] - low) / diff

    k_values = rolling_mean_skipna(raw, k_period)
    d_values = rolling_mean_skipna(k_values, d_period)

    return np.clip(k_values * 100, 0, 100), np.clip(d_values * 100, 0, 100)


# =============================================================================
# VOLATILITY INDICATORS
# =============================================================================


def bollinger_bands(
    prices: np.ndarray, period: int = 20, std_dev: float = 2.0
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Bollinger Bands with population standard deviation.

    Returns: (middle, upper, lower)
    """
    n = len(prices)
    middle = nan_array(n)
    upper = nan_array(n)
    lower = nan_array(n)
    if period < 1 or n < period:
        return middle, upper, lower

    for i in range(period - 1, n):
        window = prices[i - period + 1 : i + 1][::-1]
        total = 0.0
        for p in window:
            total += p
        mean = total / period

        variance = 0.0
        for p in window:
            variance += (p - mean) ** 2
        std = math.sqrt(variance / period)

        middle[i] = mean
        upper[i] = mean + std_dev * std
        lower[i] = mean - std_dev * std

    return middle, upper, lower


# =============================================================================
# TREND INDICATORS
# =============================================================================


def parabolic_sar(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    start: float = 0.02,
    increment: float = 0.02,
    maximum: float = 0.2,
) -> np.ndarray:
    """
    Parabolic SAR (Stop and Reverse).

    The initial trend is taken from the first two closes. While in trend the
    SAR may not cross the prior two bars' lows (uptrend) or highs
    (downtrend); on reversal the SAR jumps to the extreme point and the
    acceleration factor resets to ``start``.
    """
    n = len(closes)
    result = nan_array(n)
    if n < 2:
        return result

    is_uptrend = closes[1] > closes[0]
    sar = lows[0] if is_uptrend else highs[0]
    ep = highs[0] if is_uptrend else lows[0]
    af = start
    result[0] = sar

    for i in range(1, n):
        prev = i - 1
        prev_prev = i - 2 if i > 1 else prev

        next_sar = sar + af * (ep - sar)

        if is_uptrend:
            next_sar = min(next_sar, lows[prev], lows[prev_prev])

            if lows[i] < next_sar:
                # Up to down
                is_uptrend = False
                next_sar = ep
                ep = lows[i]
                af = start
            elif highs[i] > ep:
                ep = highs[i]
                af = min(maximum, af + increment)
        else:
            next_sar = max(next_sar, highs[prev], highs[prev_prev])

            if highs[i] > next_sar:
                # Down to up
                is_uptrend = True
                next_sar = ep
                ep = highs[i]
                af = start
            elif lows[i] < ep:
                ep = lows[i]
                af = min(maximum, af + increment)

        sar = next_sar
        result[i] = sar

    return result


# =============================================================================
# VOLUME INDICATORS
# =============================================================================


def volume_direction(opens: np.ndarray, closes: np.ndarray) -> np.ndarray:
    """+1 for bars closing at or above the open, -1 otherwise."""
    return np.where(closes >= opens, 1.0, -1.0)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def finite_min_max(*arrays: np.ndarray) -> Optional[tuple[float, float]]:
    """Min/max over all finite values, or None when there are none."""
    if not arrays:
        return None
    joined = np.concatenate([np.asarray(a, dtype=float) for a in arrays])
    finite = joined[np.isfinite(joined)]
    if len(finite) == 0:
        return None
    return float(np.min(finite)), float(np.max(finite))
