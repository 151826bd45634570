# backend/fitsaga/routes/v1/bookings.py
"""
Member booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    GET / - The caller's bookings, newest first
    POST / - Book a class session
    GET /{booking_id} - One of the caller's bookings
    POST /{booking_id}/cancel - Cancel a booking
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...api.dependencies.auth import get_current_user
from ...api.dependencies.services import get_booking_service
from ...core.enums import BookingStatus, RoleName
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.booking import (
    BookingCreate,
    BookingCreatedResponse,
    BookingListResponse,
    BookingResponse,
    CancellationResponse,
)
from ...services.booking_service import BookingService
from ._common import balance_summary, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings-v1"])


def _require_client(current_user: User, action: str) -> None:
    if not current_user.has_role(RoleName.CLIENT):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only clients can {action} bookings",
        )


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    bookings = await asyncio.to_thread(
        booking_service.list_user_bookings,
        current_user.id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    items = [BookingResponse.model_validate(booking) for booking in bookings]
    return BookingListResponse(items=items, total=len(items))


@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCreatedResponse:
    """Book a session, paying its credit cost from the session's pool."""
    _require_client(current_user, "create")
    try:
        result = await booking_service.book(current_user.id, payload.session_id)
    except DomainException as e:
        handle_domain_exception(e)

    return BookingCreatedResponse(
        booking=BookingResponse.model_validate(result.booking),
        remaining_balance=balance_summary(result.balance),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking_for_user, current_user.id, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=CancellationResponse)
async def cancel_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> CancellationResponse:
    """Cancel a booking; a fee is withheld inside the cancellation window."""
    _require_client(current_user, "cancel")
    try:
        result = await booking_service.cancel(current_user.id, booking_id)
    except DomainException as e:
        handle_domain_exception(e)

    return CancellationResponse(
        booking=BookingResponse.model_validate(result.booking),
        refunded=result.refunded,
        fee=result.fee,
        refund_pool=result.quote.refund_pool,
        late=result.quote.late,
        remaining_balance=balance_summary(result.balance),
    )
