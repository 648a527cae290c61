"""
Indicator Engine

CONTRACT:
    Input:  Bar series + per-indicator options
    Output: IndicatorDataPoint sequence aligned 1:1 with the bars

RESPONSIBILITIES:
    - Calculate SMA, EMA, HMA, RSI, Bollinger Bands, MACD, Stochastic,
      Stochastic RSI, Parabolic SAR and Volume
    - Manage the indicators attached to a chart session
    - Serialize/deserialize the indicator set for persistence

Uses NumPy for calculations.
All math is deterministic and reproducible.
"""

from indicator_engine.services.indicators.base import Indicator, OverlayIndicator, PanelIndicator
from indicator_engine.services.indicators.events import Delegate, ReentrantMutationError
from indicator_engine.services.indicators.interface import IndicatorServiceInterface
from indicator_engine.services.indicators.manager import IndicatorManager
from indicator_engine.services.indicators.registry import INDICATOR_TYPES, create_indicator
from indicator_engine.services.indicators.service import IndicatorService, get_indicator_service

__all__ = [
    "Indicator",
    "OverlayIndicator",
    "PanelIndicator",
    "Delegate",
    "ReentrantMutationError",
    "IndicatorServiceInterface",
    "IndicatorManager",
    "INDICATOR_TYPES",
    "create_indicator",
    "IndicatorService",
    "get_indicator_service",
]
