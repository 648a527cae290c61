"""
CONTRACT 1: Bar Series

Input to every indicator calculation.

The chart session owns the bars; this package only reads them.
Bars are ordered ascending by time with no duplicate timestamps.
"""

from enum import Enum
from pydantic import BaseModel, Field


class PriceSource(str, Enum):
    """Per-bar price selector used by source-driven indicators."""

    OPEN = "open"
    HIGH = "high"
    LOW = "low"
    CLOSE = "close"
    HL2 = "hl2"
    HLC3 = "hlc3"
    OHLC4 = "ohlc4"


class Bar(BaseModel):
    """Single OHLCV bar."""

    time: int = Field(..., description="Bar timestamp (epoch, chart units)")
    open: float
    high: float
    low: float
    close: float
    volume: float = Field(default=0.0, ge=0)


class BarSeries(BaseModel):
    """Ordered bar snapshot as exchanged over the API."""

    bars: list[Bar] = Field(default_factory=list)
