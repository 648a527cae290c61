"""
Indicator Service Implementation

Calculates a single indicator from OHLCV bars.
Pure Python/NumPy calculations, deterministic and reproducible.
"""

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from indicator_engine.core.config import settings
from indicator_engine.schemas.indicators import IndicatorOutput, IndicatorRequest
from indicator_engine.services.base import UnknownIndicatorTypeError, ValidationError
from indicator_engine.services.indicators.base import Indicator, PanelIndicator
from indicator_engine.services.indicators.interface import IndicatorServiceInterface
from indicator_engine.services.indicators.registry import (
    create_indicator,
    describe_types,
    resolve_type_id,
)

logger = logging.getLogger(__name__)


def build_output(indicator: Indicator) -> IndicatorOutput:
    """Render-facing snapshot of an indicator and its calculated data."""
    get_level_lines = getattr(indicator, "get_level_lines", None)
    return IndicatorOutput(
        id=indicator.id,
        type_id=indicator.type_id.value,
        name=indicator.name,
        kind=indicator.kind,
        visible=indicator.visible,
        options=indicator.to_record().options,
        data=[point.to_dict() for point in indicator.data],
        range=indicator.get_range(),
        description=indicator.get_description(),
        pane_height=indicator.pane_height if isinstance(indicator, PanelIndicator) else None,
        level_lines=get_level_lines() if get_level_lines else [],
    )


class IndicatorService(IndicatorServiceInterface):
    """
    Indicator Service.

    Builds a throwaway indicator from the registry, calculates it over the
    request bars and returns the rendered output.
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    async def execute(self, input_data: IndicatorRequest) -> IndicatorOutput:
        indicator = self.build_indicator(input_data.type_id, input_data.options)

        if len(input_data.bars) > settings.max_bars:
            raise ValidationError(
                self.name,
                f"Too many bars: {len(input_data.bars)} > {settings.max_bars}",
            )

        indicator.set_data(input_data.bars)
        output = build_output(indicator)
        indicator.destroy()
        return output

    def build_indicator(self, type_id: str, options: Optional[dict] = None) -> Indicator:
        """
        Construct an indicator, translating registry errors to service errors.

        Raises:
            UnknownIndicatorTypeError: type_id is not registered
            ValidationError: options fail validation
        """
        if resolve_type_id(type_id) is None:
            raise UnknownIndicatorTypeError(self.name, f"Unknown indicator type: {type_id}")

        try:
            return create_indicator(type_id, options or {})
        except PydanticValidationError as e:
            raise ValidationError(
                self.name,
                f"Invalid options for {type_id}",
                {"errors": e.errors(include_url=False, include_context=False)},
            )

    def list_types(self) -> list[dict]:
        return describe_types()

    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        return True


# Singleton instance
_service_instance: Optional[IndicatorService] = None


def get_indicator_service() -> IndicatorService:
    """Get or create indicator service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = IndicatorService()
    return _service_instance
