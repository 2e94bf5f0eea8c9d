"""Cycle Insights API — FastAPI application entry point.

Run locally:
    uvicorn src.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.config import get_settings
from src.insights.base import InvalidInputError
from src.insights.config_loader import get_insights_config
from src.routers import health, insights, tracking
from src.services.store import PersistenceError, close_pool, init_pool

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("cycleinsights")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting Cycle Insights API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    get_insights_config()  # fail fast on a bad insights_config.yaml
    await init_pool(settings)
    yield
    await close_pool()
    logger.info("Cycle Insights API shut down")


# ---------- Error mapping ----------

async def _invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    logger.warning("Rejected invalid input on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _persistence_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": f"{exc}. Your data was not saved; please try again."},
    )


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Cycle Insights API",
        description=(
            "Menstrual cycle insights: PCOS risk scoring, pattern anomalies and "
            "red-flag alerts, and period predictions from self-reported history."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidInputError, _invalid_input_handler)
    app.add_exception_handler(PersistenceError, _persistence_handler)

    # ---------- Health check (outside v1 prefix — always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    v1_prefix = "/api/v1"

    app.include_router(tracking.router, prefix=v1_prefix)
    app.include_router(insights.router, prefix=v1_prefix)

    return app


app = create_app()
