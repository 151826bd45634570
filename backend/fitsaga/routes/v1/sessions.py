# backend/fitsaga/routes/v1/sessions.py
"""
Class session routes - API v1

Endpoints:
    GET / - Upcoming scheduled sessions
    GET /{session_id} - Session details
"""

import asyncio

from fastapi import APIRouter, Depends, Query

from ...api.dependencies.auth import get_current_user
from ...api.dependencies.services import get_session_registry
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.session import ClassSessionListResponse, ClassSessionResponse
from ...services.session_registry import SessionRegistryService
from ._common import handle_domain_exception

router = APIRouter(tags=["sessions-v1"])


@router.get("", response_model=ClassSessionListResponse)
async def list_sessions(
    include_full: bool = Query(default=True),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    registry: SessionRegistryService = Depends(get_session_registry),
) -> ClassSessionListResponse:
    sessions = await asyncio.to_thread(
        registry.list_upcoming, include_full=include_full, limit=limit, offset=offset
    )
    items = [ClassSessionResponse.model_validate(session) for session in sessions]
    return ClassSessionListResponse(items=items, total=len(items))


@router.get("/{session_id}", response_model=ClassSessionResponse)
async def get_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    registry: SessionRegistryService = Depends(get_session_registry),
) -> ClassSessionResponse:
    try:
        session = await asyncio.to_thread(registry.get_session, session_id)
    except DomainException as e:
        handle_domain_exception(e)
    return ClassSessionResponse.model_validate(session)
