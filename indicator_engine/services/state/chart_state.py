"""
Chart State Manager

Saves and loads the indicator set of a chart per symbol through a
StorageAdapter. Missing or unreadable state is treated as "no saved state".
"""

import json
import logging
import time
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from indicator_engine.core.config import settings
from indicator_engine.schemas.indicators import ChartState
from indicator_engine.services.indicators.manager import IndicatorManager
from indicator_engine.services.storage.adapters import StorageAdapter

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class ChartStateManager:
    """Per-symbol persistence of an IndicatorManager's indicators."""

    def __init__(self, indicator_manager: IndicatorManager, storage: StorageAdapter):
        self._indicator_manager = indicator_manager
        self._storage = storage
        self._current_symbol = ""

    @property
    def current_symbol(self) -> str:
        return self._current_symbol

    @property
    def storage(self) -> StorageAdapter:
        return self._storage

    def _target(self, symbol: Optional[str]) -> str:
        return symbol or self._current_symbol

    async def set_symbol(self, symbol: str) -> None:
        """Save the current symbol's state, then switch and load ``symbol``."""
        if self._current_symbol and self._current_symbol != symbol:
            await self.save_state()

        self._current_symbol = symbol
        await self.load_state()

    def build_state(self) -> ChartState:
        return ChartState(
            symbol=self._current_symbol,
            indicators=self._indicator_manager.serialize(),
            saved_at=_now_ms(),
            version=settings.state_version,
        )

    async def save_state(self) -> Optional[ChartState]:
        if not self._current_symbol:
            return None

        state = self.build_state()
        await self._storage.save(self._current_symbol, state.model_dump_json(by_alias=True))
        logger.info(f"Chart state saved for {self._current_symbol}: {len(state.indicators)} indicators")
        return state

    async def load_state(self) -> bool:
        """
        Restore the current symbol's indicators.

        Returns:
            True when saved state was found and applied. Otherwise the
            indicator set is cleared and False is returned.
        """
        if not self._current_symbol:
            return False

        raw = await self._storage.load(self._current_symbol)
        if not raw:
            logger.info(f"No saved state for {self._current_symbol}")
            self._indicator_manager.deserialize([])
            return False

        try:
            state = ChartState.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.error(f"Failed to parse saved chart state for {self._current_symbol}: {e}")
            self._indicator_manager.deserialize([])
            return False

        if state.version != settings.state_version:
            logger.warning(f"Migrating state from version {state.version} to {settings.state_version}")

        self._indicator_manager.deserialize(state.indicators)
        logger.info(f"Chart state loaded for {self._current_symbol}: {len(state.indicators)} indicators")
        return True

    async def delete_state(self, symbol: Optional[str] = None) -> None:
        target = self._target(symbol)
        if target:
            await self._storage.delete(target)
            logger.info(f"Chart state deleted for {target}")

    async def get_saved_symbols(self) -> list[str]:
        return await self._storage.keys()

    async def has_state(self, symbol: Optional[str] = None) -> bool:
        target = self._target(symbol)
        if not target:
            return False
        return await self._storage.load(target) is not None

    async def export_state(self, symbol: Optional[str] = None) -> Optional[str]:
        """Raw saved JSON for backup, or None."""
        target = self._target(symbol)
        if not target:
            return None
        return await self._storage.load(target)

    async def import_state(self, data: str, symbol: Optional[str] = None) -> bool:
        """
        Store a backup blob after checking its structure. Reloads when the
        target is the current symbol.
        """
        target = self._target(symbol)
        if not target:
            return False

        try:
            parsed = json.loads(data)
            if not isinstance(parsed, dict) or not isinstance(parsed.get("indicators"), list):
                raise ValueError("Invalid state format")
            ChartState.model_validate(parsed)
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Failed to import state: {e}")
            return False

        await self._storage.save(target, data)
        if target == self._current_symbol:
            await self.load_state()
        return True
