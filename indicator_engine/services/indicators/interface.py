"""
Indicator Service Interface

Defines the contract for stateless indicator calculation.
"""

from abc import abstractmethod

from indicator_engine.services.base import BaseService
from indicator_engine.schemas.indicators import IndicatorOutput, IndicatorRequest


class IndicatorServiceInterface(BaseService[IndicatorRequest, IndicatorOutput]):
    """
    Indicator Service Contract.

    INPUT: IndicatorRequest
        - type_id: registered indicator type
        - options: partial options (camelCase or snake_case)
        - bars: OHLCV bars, ascending by time

    OUTPUT: IndicatorOutput
        - One data point per bar, NaN rendered as null
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    @abstractmethod
    async def execute(self, input_data: IndicatorRequest) -> IndicatorOutput:
        """Calculate one indicator over the supplied bars."""
        pass

    @abstractmethod
    def list_types(self) -> list[dict]:
        """Registered type ids with their kind and default options."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        pass
