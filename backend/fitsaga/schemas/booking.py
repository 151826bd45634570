"""Booking request/response schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..core.enums import BookingStatus, CreditPool
from .base import StandardizedModel, StrictRequestModel
from .credits import BalanceSummary
from .session import ClassSessionResponse


class BookingCreate(StrictRequestModel):
    session_id: str = Field(..., min_length=1, max_length=26)


class BookingResponse(StandardizedModel):
    id: str
    booking_key: str
    user_id: str
    session_id: str
    credits_cost: int
    credit_pool: CreditPool
    gym_credits_used: int
    interval_credits_used: int
    status: BookingStatus
    booking_date: datetime
    cancellation_date: Optional[datetime] = None
    cancellation_fee: Optional[int] = None
    refund_amount: Optional[int] = None
    session: Optional[ClassSessionResponse] = None


class BookingCreatedResponse(StandardizedModel):
    success: bool = True
    booking: BookingResponse
    remaining_balance: BalanceSummary


class CancellationResponse(StandardizedModel):
    success: bool = True
    booking: BookingResponse
    refunded: int
    fee: int
    refund_pool: CreditPool
    late: bool
    remaining_balance: BalanceSummary


class BookingListResponse(StandardizedModel):
    items: List[BookingResponse]
    total: int
