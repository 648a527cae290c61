"""
Indicator API Endpoints

Stateless indicator calculation over caller-supplied bars.
"""

import logging

from fastapi import APIRouter, HTTPException

from indicator_engine.schemas.indicators import IndicatorOutput, IndicatorRequest
from indicator_engine.services.base import UnknownIndicatorTypeError, ValidationError
from indicator_engine.services.indicators import get_indicator_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/types")
async def list_indicator_types():
    """Available indicator types with their kind and default options."""
    service = get_indicator_service()
    return {"types": service.list_types()}


@router.post("/calculate", response_model=IndicatorOutput)
async def calculate_indicator(request: IndicatorRequest):
    """
    Calculate one indicator over the request bars.

    Returns one data point per bar; undefined values are null.
    """
    service = get_indicator_service()

    try:
        return await service.execute(request)
    except UnknownIndicatorTypeError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"message": e.message, **e.details})
