# backend/fitsaga/routes/v1/health.py
"""Liveness/readiness endpoint."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from ...api.dependencies.database import get_db
from ...core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health-v1"])


@router.get("")
def health_check(response: Response, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Report API status and whether the database answers."""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as exc:
        logger.error("Health check database query failed: %s", exc)
        database = "unavailable"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "environment": settings.environment,
        "database": database,
    }
