from indicator_engine.services.state.chart_state import ChartStateManager
from indicator_engine.services.state.sessions import (
    ChartSession,
    close_chart_sessions,
    get_chart_session,
)

__all__ = [
    "ChartStateManager",
    "ChartSession",
    "close_chart_sessions",
    "get_chart_session",
]
