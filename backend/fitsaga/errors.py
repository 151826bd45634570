# backend/fitsaga/errors.py
"""
JSON error envelopes for the API.

Every failure leaves as ``{"success": false, "error": {code, message,
details}}`` so clients can branch on ``code`` regardless of where the error
was raised.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException, ServiceException

logger = logging.getLogger(__name__)


def _envelope(code: str, message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": jsonable_encoder(details or {})},
    }


def _parse_detail(detail: Any) -> tuple[Optional[str], Optional[str], Optional[Any]]:
    if isinstance(detail, dict):
        code = detail.get("code") if isinstance(detail.get("code"), str) else None
        message = detail.get("message") or detail.get("detail")
        detail_text = message if isinstance(message, str) else None
        return detail_text, code, detail.get("details")
    if isinstance(detail, str):
        return detail, None, None
    if detail is None:
        return None, None, None
    return str(detail), None, None


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        if isinstance(exc, ServiceException):
            logger.error(
                "Service failure on %s: %s",
                request.url.path,
                exc.message,
                extra={"code": exc.code, "path": request.url.path},
            )
        return JSONResponse(_envelope(exc.code, exc.message, exc.details), status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail_text, code, details = _parse_detail(exc.detail)
        return JSONResponse(
            _envelope(code or f"HTTP_{exc.status_code}", detail_text or "", details),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            _envelope("VALIDATION_ERROR", "Request validation failed", {"errors": exc.errors()}),
            status_code=422,
        )


__all__ = ["register_error_handlers"]
