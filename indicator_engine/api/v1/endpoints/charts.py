"""
Chart API Endpoints

Per-symbol chart sessions: bar data, attached indicators, settings and
saved state.
"""

import logging

from fastapi import APIRouter, HTTPException, Response
from pydantic import ValidationError as PydanticValidationError

from indicator_engine.core.config import settings
from indicator_engine.schemas.bars import BarSeries
from indicator_engine.schemas.indicators import (
    AddIndicatorRequest,
    ChartState,
    IndicatorOutput,
    SettingsUpdate,
    SettingsUpdateResult,
)
from indicator_engine.services.base import UnknownIndicatorTypeError, ValidationError
from indicator_engine.services.indicators import get_indicator_service
from indicator_engine.services.indicators.service import build_output
from indicator_engine.services.state import ChartSession, get_chart_session

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_indicator(session: ChartSession, indicator_id: str):
    indicator = session.indicators.get_indicator(indicator_id)
    if indicator is None:
        raise HTTPException(
            status_code=404,
            detail=f"Indicator {indicator_id} not found on {session.symbol}",
        )
    return indicator


# ============ Bars ============


@router.get("/{symbol}/bars", response_model=BarSeries)
async def get_bars(symbol: str):
    session = await get_chart_session(symbol)
    return BarSeries(bars=session.indicators.source_data)


@router.put("/{symbol}/bars")
async def set_bars(symbol: str, series: BarSeries):
    """Replace the chart's bars and recalculate every attached indicator."""
    if len(series.bars) > settings.max_bars:
        raise HTTPException(
            status_code=422,
            detail=f"Too many bars: {len(series.bars)} > {settings.max_bars}",
        )

    session = await get_chart_session(symbol)
    session.indicators.set_data(series.bars)
    return {
        "symbol": session.symbol,
        "bars": len(series.bars),
        "indicators": len(session.indicators),
    }


# ============ Indicators ============


@router.get("/{symbol}/indicators", response_model=list[IndicatorOutput])
async def list_indicators(symbol: str):
    session = await get_chart_session(symbol)
    return [build_output(indicator) for indicator in session.indicators.all_indicators]


@router.post("/{symbol}/indicators", response_model=IndicatorOutput, status_code=201)
async def add_indicator(symbol: str, request: AddIndicatorRequest):
    """Attach a new indicator; it is calculated immediately when bars exist."""
    session = await get_chart_session(symbol)

    try:
        indicator = get_indicator_service().build_indicator(request.type_id, request.options)
    except UnknownIndicatorTypeError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"message": e.message, **e.details})

    session.indicators.add_indicator(indicator)
    logger.info(f"{session.symbol}: added {indicator.name} ({indicator.id})")
    return build_output(indicator)


@router.delete("/{symbol}/indicators/{indicator_id}", status_code=204)
async def remove_indicator(symbol: str, indicator_id: str):
    session = await get_chart_session(symbol)
    if not session.indicators.remove_indicator(indicator_id):
        raise HTTPException(
            status_code=404,
            detail=f"Indicator {indicator_id} not found on {session.symbol}",
        )
    return Response(status_code=204)


@router.get("/{symbol}/indicators/{indicator_id}/settings")
async def get_indicator_settings(symbol: str, indicator_id: str):
    """Tabbed settings description for the settings modal."""
    session = await get_chart_session(symbol)
    indicator = _require_indicator(session, indicator_id)
    return indicator.get_settings_config()


@router.patch("/{symbol}/indicators/{indicator_id}/settings", response_model=SettingsUpdateResult)
async def update_indicator_settings(symbol: str, indicator_id: str, update: SettingsUpdate):
    """Apply a partial options patch; recalculates when a parameter changed."""
    session = await get_chart_session(symbol)
    indicator = _require_indicator(session, indicator_id)

    try:
        recalculated = session.indicators.update_indicator_options(indicator_id, update.changes)
    except PydanticValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False),
        )

    return SettingsUpdateResult(
        id=indicator_id,
        recalculated=recalculated,
        indicator=build_output(indicator),
    )


# ============ Saved state ============


@router.post("/{symbol}/save", response_model=ChartState)
async def save_chart_state(symbol: str):
    session = await get_chart_session(symbol)
    return await session.state.save_state()


@router.post("/{symbol}/load")
async def load_chart_state(symbol: str):
    """Reload the saved indicator set; without saved state the set is cleared."""
    session = await get_chart_session(symbol)
    loaded = await session.state.load_state()
    return {
        "symbol": session.symbol,
        "loaded": loaded,
        "indicators": [build_output(i).model_dump(by_alias=True) for i in session.indicators.all_indicators],
    }
