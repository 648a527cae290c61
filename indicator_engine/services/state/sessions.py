"""
In-process chart sessions, one per symbol.

A session pairs an IndicatorManager with a ChartStateManager bound to the
configured storage adapter. Creating a session restores the symbol's saved
indicators, if any.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from indicator_engine.services.indicators.manager import IndicatorManager
from indicator_engine.services.state.chart_state import ChartStateManager
from indicator_engine.services.storage import StorageAdapter, get_storage_adapter

logger = logging.getLogger(__name__)


@dataclass
class ChartSession:
    symbol: str
    indicators: IndicatorManager
    state: ChartStateManager


_sessions: dict[str, ChartSession] = {}
_session_locks: dict[str, asyncio.Lock] = {}


def normalize_symbol(symbol: str) -> str:
    return symbol.upper().strip()


async def get_chart_session(symbol: str, storage: Optional[StorageAdapter] = None) -> ChartSession:
    """Get or create the session for ``symbol``."""
    key = normalize_symbol(symbol)
    session = _sessions.get(key)
    if session is not None:
        return session

    lock = _session_locks.setdefault(key, asyncio.Lock())
    async with lock:
        # Another request may have opened it while we waited
        session = _sessions.get(key)
        if session is None:
            manager = IndicatorManager()
            state = ChartStateManager(manager, storage or get_storage_adapter())
            await state.set_symbol(key)
            session = ChartSession(symbol=key, indicators=manager, state=state)
            _sessions[key] = session
            logger.info(f"Chart session opened for {key}")
    return session


def close_chart_sessions() -> None:
    """Destroy every open session."""
    for session in _sessions.values():
        session.indicators.destroy()
    _sessions.clear()
    _session_locks.clear()
