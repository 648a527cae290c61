"""
API v1 Router

All API endpoints for the chart frontend.
"""

from fastapi import APIRouter

from indicator_engine.api.v1.endpoints import charts, indicators

router = APIRouter()

# Include all endpoint routers
router.include_router(indicators.router, prefix="/indicators", tags=["Indicators"])
router.include_router(charts.router, prefix="/charts", tags=["Charts"])
