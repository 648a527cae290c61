"""
Chart Indicator Engine - FastAPI Application

Main entry point for the indicator API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from indicator_engine.core.config import settings
from indicator_engine.api.v1 import router as api_v1_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    from indicator_engine.services.storage import close_redis, init_redis
    if settings.storage_backend == "redis":
        redis_client = await init_redis()
        if redis_client:
            logger.info("Chart state stored in Redis")
        else:
            logger.info("Redis unavailable - chart state kept in memory")
    else:
        logger.info("Chart state kept in memory")

    yield

    # Shutdown
    logger.info("Shutting down...")
    from indicator_engine.services.state import close_chart_sessions
    close_chart_sessions()
    await close_redis()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Chart Indicator Engine API

    ## Architecture
    - **Indicator Engine**: SMA, EMA, HMA, RSI, Bollinger Bands, MACD,
      Stochastic, Stochastic RSI, Parabolic SAR and Volume (pure Python/NumPy)
    - **Chart Sessions**: per-symbol indicator sets recalculated on new bars
    - **Chart State**: indicator sets saved per symbol (memory or Redis)
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware - local frontend ports
cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.allowed_origins:
    cors_origins.extend([o for o in settings.allowed_origins if o not in cors_origins])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    from indicator_engine.services.indicators import get_indicator_service
    return {
        "status": "healthy" if await get_indicator_service().health_check() else "degraded",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "storage": settings.storage_backend,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Chart Indicator Engine API",
        "docs": "/docs",
        "health": "/health",
    }
