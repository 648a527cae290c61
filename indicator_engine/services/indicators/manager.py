"""
Indicator Manager

Central owner of the indicators attached to one chart session.
Handles adding/removing indicators, fanning out bar data, option changes
and (de)serialization of the whole set.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from indicator_engine.core.config import settings
from indicator_engine.schemas.bars import Bar
from indicator_engine.schemas.indicators import (
    IndicatorKind,
    IndicatorsPayload,
    SerializedIndicator,
)
from indicator_engine.services.indicators.base import (
    Indicator,
    OverlayIndicator,
    PanelIndicator,
)
from indicator_engine.services.indicators.events import Delegate, ReentrantMutationError
from indicator_engine.services.indicators.registry import create_indicator, resolve_type_id

logger = logging.getLogger(__name__)

RecordInput = Union[SerializedIndicator, Mapping[str, Any]]


class IndicatorManager:
    """
    Owns overlay and panel indicators in insertion order, plus the most
    recently supplied bar series.

    Listeners of the manager delegates, and data_changed listeners of its
    indicators while the manager recalculates them, must not mutate the
    manager; doing so raises ReentrantMutationError.
    """

    def __init__(self) -> None:
        self._overlay_indicators: list[OverlayIndicator] = []
        self._panel_indicators: list[PanelIndicator] = []
        self._source_data: list[Bar] = []
        self._notifying = False

        self.indicator_added: Delegate[Indicator] = Delegate("indicator_added")
        self.indicator_removed: Delegate[Indicator] = Delegate("indicator_removed")
        self.pane_added: Delegate[PanelIndicator] = Delegate("pane_added")
        self.pane_removed: Delegate[PanelIndicator] = Delegate("pane_removed")

    # --- Getters ---

    @property
    def overlay_indicators(self) -> tuple[OverlayIndicator, ...]:
        return tuple(self._overlay_indicators)

    @property
    def panel_indicators(self) -> tuple[PanelIndicator, ...]:
        return tuple(self._panel_indicators)

    @property
    def all_indicators(self) -> tuple[Indicator, ...]:
        return (*self._overlay_indicators, *self._panel_indicators)

    @property
    def source_data(self) -> list[Bar]:
        return self._source_data

    def get_indicator(self, indicator_id: str) -> Optional[Indicator]:
        for indicator in self.all_indicators:
            if indicator.id == indicator_id:
                return indicator
        return None

    def has_indicator(self, indicator_id: str) -> bool:
        return self.get_indicator(indicator_id) is not None

    def __len__(self) -> int:
        return len(self._overlay_indicators) + len(self._panel_indicators)

    # --- Notification guard ---

    def _check_mutable(self, operation: str) -> None:
        if self._notifying:
            raise ReentrantMutationError(
                f"IndicatorManager.{operation}() called from inside a manager notification"
            )

    @contextmanager
    def _notifying_listeners(self) -> Iterator[None]:
        previous = self._notifying
        self._notifying = True
        try:
            yield
        finally:
            self._notifying = previous

    # --- Add / remove ---

    def add_overlay_indicator(self, indicator: OverlayIndicator) -> None:
        self._check_mutable("add_overlay_indicator")
        if indicator.kind != IndicatorKind.OVERLAY:
            raise ValueError(f"{indicator!r} is not an overlay indicator")

        self._overlay_indicators.append(indicator)
        with self._notifying_listeners():
            if self._source_data:
                indicator.set_data(self._source_data)
            self.indicator_added.fire(indicator)

    def add_panel_indicator(self, indicator: PanelIndicator) -> None:
        self._check_mutable("add_panel_indicator")
        if indicator.kind != IndicatorKind.PANEL:
            raise ValueError(f"{indicator!r} is not a panel indicator")

        self._panel_indicators.append(indicator)
        with self._notifying_listeners():
            if self._source_data:
                indicator.set_data(self._source_data)
            self.indicator_added.fire(indicator)
            self.pane_added.fire(indicator)

    def add_indicator(self, indicator: Indicator) -> None:
        """Route to the overlay or panel collection by the indicator's kind."""
        if indicator.kind == IndicatorKind.PANEL:
            self.add_panel_indicator(indicator)
        else:
            self.add_overlay_indicator(indicator)

    def remove_indicator(self, indicator_id: str) -> bool:
        """Remove and destroy an indicator. Unknown ids are a no-op."""
        self._check_mutable("remove_indicator")

        for i, overlay in enumerate(self._overlay_indicators):
            if overlay.id == indicator_id:
                del self._overlay_indicators[i]
                overlay.destroy()
                with self._notifying_listeners():
                    self.indicator_removed.fire(overlay)
                return True

        for i, panel in enumerate(self._panel_indicators):
            if panel.id == indicator_id:
                del self._panel_indicators[i]
                panel.destroy()
                with self._notifying_listeners():
                    self.indicator_removed.fire(panel)
                    self.pane_removed.fire(panel)
                return True

        return False

    # --- Data ---

    def set_data(self, bars: Sequence[Bar]) -> None:
        """Replace the cached series and recalculate every indicator."""
        self._check_mutable("set_data")
        if len(bars) > settings.max_bars:
            logger.warning(f"Bar series of {len(bars)} exceeds max_bars={settings.max_bars}")

        self._source_data = list(bars)
        with self._notifying_listeners():
            for indicator in self.all_indicators:
                indicator.set_data(self._source_data)

        logger.debug(f"Recalculated {len(self)} indicators over {len(self._source_data)} bars")

    def recalculate_indicator(self, indicator_id: str) -> None:
        self._check_mutable("recalculate_indicator")
        indicator = self.get_indicator(indicator_id)
        if indicator is not None and self._source_data:
            with self._notifying_listeners():
                indicator.set_data(self._source_data)

    def set_indicator_setting(self, indicator_id: str, key: str, value: Any) -> bool:
        """Apply one setting; see update_indicator_options()."""
        return self.update_indicator_options(indicator_id, {key: value})

    def update_indicator_options(self, indicator_id: str, changes: Mapping[str, Any]) -> bool:
        """
        Apply a partial options patch to an indicator and recalculate it when
        the change invalidates its data.

        Returns:
            True when the indicator was recalculated

        Raises:
            KeyError: unknown indicator id
            pydantic.ValidationError: the value fails validation
        """
        self._check_mutable("update_indicator_options")
        indicator = self.get_indicator(indicator_id)
        if indicator is None:
            raise KeyError(indicator_id)

        with self._notifying_listeners():
            needs_recalc = indicator.update_options(**changes)
            if needs_recalc and self._source_data:
                indicator.set_data(self._source_data)
                return True
        return False

    # --- Persistence ---

    def serialize(self) -> list[SerializedIndicator]:
        return [indicator.to_record() for indicator in self.all_indicators]

    def to_payload(self) -> IndicatorsPayload:
        return IndicatorsPayload(indicators=self.serialize(), version=settings.state_version)

    def deserialize(self, records: Iterable[RecordInput]) -> None:
        """
        Replace the current set with indicators rebuilt from ``records``.

        Unknown type tags and records with invalid options are skipped
        with a warning.
        """
        self._check_mutable("deserialize")
        self.clear()

        for raw in records:
            try:
                record = SerializedIndicator.model_validate(raw)
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed indicator record: {e}")
                continue

            if resolve_type_id(record.type_id) is None:
                logger.warning(f"Unknown indicator type: {record.type_id}")
                continue

            try:
                indicator = create_indicator(record.type_id, record.options)
            except PydanticValidationError as e:
                logger.warning(f"Skipping {record.type_id} indicator {record.id}: invalid options ({e})")
                continue

            indicator.restore_id(record.id)
            self.add_indicator(indicator)

        logger.info(f"Restored {len(self)} indicators")

    # --- Cleanup ---

    def clear(self) -> None:
        """Destroy all indicators; the cached series is kept."""
        self._check_mutable("clear")

        for overlay in list(self._overlay_indicators):
            self.remove_indicator(overlay.id)
        for panel in list(self._panel_indicators):
            self.remove_indicator(panel.id)

    def destroy(self) -> None:
        self.clear()
        self._source_data = []
        self.indicator_added.destroy()
        self.indicator_removed.destroy()
        self.pane_added.destroy()
        self.pane_removed.destroy()
