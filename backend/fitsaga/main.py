# backend/fitsaga/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import settings
from .errors import register_error_handlers
from .routes.v1 import (
    admin_credits as admin_credits_v1,
    bookings as bookings_v1,
    credits as credits_v1,
    health as health_v1,
    metrics as metrics_v1,
    sessions as sessions_v1,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

API_TITLE = "FitSaga API"
API_VERSION = "1.0.0"


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(f"Starting {API_TITLE} {API_VERSION} ({settings.environment})")
    yield
    logger.info(f"Shutting down {API_TITLE}")


def create_app() -> FastAPI:
    app = FastAPI(
        title=API_TITLE,
        version=API_VERSION,
        description="Gym membership credit ledger and class booking engine",
        lifespan=app_lifespan,
    )
    register_error_handlers(app)

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(bookings_v1.router, prefix="/bookings")
    api_v1.include_router(sessions_v1.router, prefix="/sessions")
    api_v1.include_router(credits_v1.router, prefix="/credits")
    api_v1.include_router(admin_credits_v1.router, prefix="/admin/credits")
    api_v1.include_router(health_v1.router, prefix="/health")
    api_v1.include_router(metrics_v1.router, prefix="/metrics")
    app.include_router(api_v1)
    return app


app = create_app()
