"""
Base Indicator System

Every indicator owns its options, its calculated data and the bar series it
last calculated against. Indicators come in two variants:
- Overlay: drawn on top of the main price chart (EMA, Bollinger Bands, ...)
- Panel: drawn in a separate pane with its own axis (RSI, MACD, ...)

Calculation is synchronous and never raises for short or degenerate input:
missing history is NaN-filled so ``len(data) == len(bars)`` always holds.
"""

import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Mapping, Optional, Sequence, Union
from uuid import uuid4

import numpy as np
from pydantic.alias_generators import to_camel

from indicator_engine.schemas.bars import Bar, PriceSource
from indicator_engine.schemas.indicators import (
    IndicatorDataPoint,
    IndicatorKind,
    IndicatorOptions,
    IndicatorRange,
    IndicatorTypeId,
    SerializedIndicator,
)
from indicator_engine.services.indicators.calculations import finite_min_max
from indicator_engine.services.indicators.events import Delegate

logger = logging.getLogger(__name__)

OptionsInput = Union[Mapping[str, Any], IndicatorOptions, None]

# Options a caller may never change after creation
IMMUTABLE_FIELDS = frozenset({"id", "kind", "name"})


def format_value(value: float) -> str:
    """Two-decimal legend value; '-' when undefined."""
    return "-" if math.isnan(value) else f"{value:.2f}"


def format_param(value: Any) -> str:
    """Render a parameter for display names: 2 -> '2', 0.20 -> '0.2'."""
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


class Indicator(ABC):
    """Abstract base class for all indicators."""

    type_id: ClassVar[IndicatorTypeId]
    kind: ClassVar[IndicatorKind]
    options_model: ClassVar[type[IndicatorOptions]] = IndicatorOptions

    # Option fields whose change invalidates calculated data
    recalc_fields: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, options: OptionsInput = None, **overrides: Any) -> None:
        if isinstance(options, IndicatorOptions):
            raw = options.model_dump()
        else:
            raw = dict(options or {})
        raw.update(overrides)
        raw["kind"] = self.kind

        self._options = self.options_model.model_validate(raw)
        self._options.name = self.build_name()
        if not self._options.id:
            self._options.id = f"{self.type_id.value}_{uuid4().hex[:12]}"

        self._data: list[IndicatorDataPoint] = []
        self._source_data: list[Bar] = []
        self._data_changed: Delegate["Indicator"] = Delegate(f"{self._options.id}.data_changed")
        self._destroyed = False

    # --- Getters ---

    @property
    def id(self) -> str:
        return self._options.id

    @property
    def name(self) -> str:
        return self._options.name

    @property
    def options(self) -> IndicatorOptions:
        """Snapshot of the current options; mutate through update_options()."""
        return self._options.model_copy(deep=True)

    @property
    def data(self) -> list[IndicatorDataPoint]:
        return self._data

    @property
    def source_data(self) -> list[Bar]:
        return self._source_data

    @property
    def visible(self) -> bool:
        return self._options.visible

    @property
    def data_changed(self) -> Delegate["Indicator"]:
        return self._data_changed

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # --- Abstract methods ---

    @abstractmethod
    def build_name(self) -> str:
        """Display name derived from the type and its parameters."""

    @abstractmethod
    def calculate(self, bars: Sequence[Bar]) -> None:
        """Replace ``data`` with values calculated from ``bars``."""

    @abstractmethod
    def get_description(self, index: Optional[int] = None) -> str:
        """Legend text for the point at ``index`` (last point by default)."""

    # --- Data ---

    def set_data(self, bars: Sequence[Bar]) -> None:
        """Cache ``bars`` as the source series and recalculate."""
        self._source_data = list(bars)
        self.calculate(self._source_data)
        logger.debug(f"{self.id}: calculated {len(self._data)} points")
        self._data_changed.fire(self)

    def get_value_at(self, index: int) -> Optional[IndicatorDataPoint]:
        if 0 <= index < len(self._data):
            return self._data[index]
        return None

    def get_range(self) -> IndicatorRange:
        """Observed min/max of ``value`` (NaN excluded)."""
        bounds = finite_min_max(self._values())
        if bounds is None:
            return IndicatorRange(min=0, max=100)
        return IndicatorRange(min=bounds[0], max=bounds[1])

    def _values(self, column: Optional[int] = None) -> np.ndarray:
        """``value`` (or ``values[column]``) of every point as an array."""
        if column is None:
            return np.array([p.value for p in self._data], dtype=float)
        return np.array(
            [p.values[column] if p.values else math.nan for p in self._data], dtype=float
        )

    def _point_for(self, index: Optional[int]) -> Optional[IndicatorDataPoint]:
        """Point at ``index``, falling back to the last point when out of range."""
        if index is not None and 0 <= index < len(self._data):
            return self._data[index]
        if self._data:
            return self._data[-1]
        return None

    def _series_value(self, index: Optional[int], column: Optional[int] = None) -> float:
        point = self._point_for(index)
        if point is None:
            return math.nan
        if column is None:
            return point.value
        if not point.values or column >= len(point.values):
            return math.nan
        return point.values[column]

    @staticmethod
    def _build_points(
        times: np.ndarray, value: np.ndarray, *series: np.ndarray
    ) -> list[IndicatorDataPoint]:
        """Zip calculated columns into index-aligned data points."""
        time_list = times.tolist()
        value_list = value.tolist()
        if not series:
            return [IndicatorDataPoint(time=t, value=v) for t, v in zip(time_list, value_list)]

        columns = [s.tolist() for s in series]
        return [
            IndicatorDataPoint(time=t, value=v, values=[c[i] for c in columns])
            for i, (t, v) in enumerate(zip(time_list, value_list))
        ]

    # --- Options / settings provider ---

    @classmethod
    def _resolve_field(cls, key: str) -> Optional[str]:
        """Map a snake_case or camelCase option key to the model field name."""
        fields = cls.options_model.model_fields
        if key in fields:
            return key
        for name in fields:
            if to_camel(name) == key:
                return name
        return None

    def get_setting_value(self, key: str) -> Any:
        field = self._resolve_field(key)
        if field is None:
            return None
        return getattr(self._options, field)

    def update_options(self, **changes: Any) -> bool:
        """
        Apply a partial options update.

        The whole patch is validated before anything changes. Returns True
        when a changed field invalidates calculated data; the caller is
        responsible for recalculating. Cosmetic changes return False.
        """
        updates: dict[str, Any] = {}
        for key, value in changes.items():
            field = self._resolve_field(key)
            if field is None:
                logger.warning(f"{self.id}: unknown setting '{key}' ignored")
                continue
            if field in IMMUTABLE_FIELDS:
                logger.warning(f"{self.id}: setting '{key}' is read-only")
                continue
            updates[field] = value

        if not updates:
            return False

        candidate = self.options_model.model_validate({**self._options.model_dump(), **updates})
        changed = [f for f in updates if getattr(candidate, f) != getattr(self._options, f)]
        if not changed:
            return False

        needs_recalc = any(f in self.recalc_fields for f in changed)
        self._options = candidate
        if needs_recalc:
            self._options.name = self.build_name()

        self._data_changed.fire(self)
        return needs_recalc

    def set_setting_value(self, key: str, value: Any) -> bool:
        """Set one option; True when the change requires recalculation."""
        return self.update_options(**{key: value})

    def set_visible(self, visible: bool) -> None:
        self.update_options(visible=visible)

    def get_settings_config(self) -> dict[str, Any]:
        """Settings-modal description generated from the options model."""
        input_rows: list[dict[str, Any]] = []
        style_rows: list[dict[str, Any]] = []

        for key, value in self._options.model_dump(by_alias=True).items():
            if key in ("id", "name", "kind", "visible"):
                continue

            lower = key.lower()
            label = _format_label(key)
            if isinstance(value, PriceSource):
                input_rows.append({
                    "type": "select",
                    "key": key,
                    "label": label,
                    "options": [s.value for s in PriceSource],
                    "defaultValue": value.value,
                })
            elif isinstance(value, bool):
                input_rows.append({"type": "checkbox", "key": key, "label": label, "defaultValue": value})
            elif isinstance(value, (int, float)):
                if "period" in lower or "length" in lower:
                    input_rows.append({"type": "number", "key": key, "label": label, "min": 1, "max": 500, "step": 1})
                elif "width" in lower:
                    style_rows.append({"type": "number", "key": key, "label": label, "min": 1, "max": 5, "step": 1})
                elif "level" in lower:
                    input_rows.append({"type": "number", "key": key, "label": label, "min": 0, "max": 100, "step": 1})
                else:
                    input_rows.append({"type": "number", "key": key, "label": label})
            elif isinstance(value, str) and (value.startswith("#") or value.startswith("rgb")):
                style_rows.append({"type": "color", "key": key, "label": label, "defaultValue": value})

        return {
            "name": self.name,
            "tabs": [
                {"id": "inputs", "label": "Inputs", "sections": [{"rows": input_rows}]},
                {"id": "style", "label": "Style", "sections": [{"rows": style_rows}]},
                {
                    "id": "visibility",
                    "label": "Visibility",
                    "sections": [{"rows": [{"type": "checkbox", "key": "visible", "label": "Visible", "defaultValue": True}]}],
                },
            ],
        }

    # --- Persistence ---

    def to_record(self) -> SerializedIndicator:
        return SerializedIndicator(
            id=self.id,
            kind=self.kind,
            type_id=self.type_id.value,
            name=self.name,
            options=self._options.model_dump(mode="json", by_alias=True),
        )

    def restore_id(self, indicator_id: str) -> None:
        """Reassign the persisted id; only used while deserializing."""
        self._options.id = indicator_id

    # --- Cleanup ---

    def destroy(self) -> None:
        self._data = []
        self._source_data = []
        self._data_changed.destroy()
        self._destroyed = True

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, name={self.name!r})"


def _format_label(key: str) -> str:
    """'lineWidth' -> 'Line Width'."""
    spaced = re.sub(r"([A-Z])", r" \1", key).strip()
    return spaced[:1].upper() + spaced[1:]


class OverlayIndicator(Indicator):
    """Overlay indicator - drawn on top of main price chart."""

    kind: ClassVar[IndicatorKind] = IndicatorKind.OVERLAY


class PanelIndicator(Indicator):
    """Panel indicator - drawn in a separate pane below main chart."""

    kind: ClassVar[IndicatorKind] = IndicatorKind.PANEL
    default_pane_height: ClassVar[int] = 100

    def __init__(self, options: OptionsInput = None, **overrides: Any) -> None:
        super().__init__(options, **overrides)
        self._pane_height = self.default_pane_height

    @property
    def pane_height(self) -> int:
        return self._pane_height

    def set_pane_height(self, height: int) -> None:
        self._pane_height = height
