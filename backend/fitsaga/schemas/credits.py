"""Credit balance, transaction and adjustment schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, StrictInt

from ..core.enums import CreditPool, TransactionCategory
from .base import StandardizedModel, StrictRequestModel


class CreditBalanceResponse(StandardizedModel):
    user_id: str
    gym_credits: int
    interval_credits: int
    total_credits: int
    last_refilled: Optional[datetime] = None
    next_refill_date: Optional[datetime] = None


class BalanceSummary(StandardizedModel):
    gym_credits: int
    interval_credits: int
    total_credits: int


class CreditTransactionResponse(StandardizedModel):
    id: str
    user_id: str
    sequence: int
    amount: int
    pool: CreditPool
    category: TransactionCategory
    gym_delta: int
    interval_delta: int
    fee: Optional[int] = None
    related_session_id: Optional[str] = None
    related_booking_id: Optional[str] = None
    description: str = ""
    gym_balance_after: int
    interval_balance_after: int
    adjusted_by: Optional[str] = None
    created_at: datetime


class TransactionPage(StandardizedModel):
    items: List[CreditTransactionResponse]
    # Pass back as before_sequence to fetch the next (older) page
    next_cursor: Optional[int] = None


class CreditAdjustmentRequest(StrictRequestModel):
    # StrictInt so JSON true/1.5/"3" are rejected rather than coerced
    amount: StrictInt = Field(..., description="Nonzero; positive adds, negative deducts")
    pool: CreditPool
    reason: Optional[str] = Field(default=None, max_length=500)


class CreditAdjustmentResponse(StandardizedModel):
    success: bool = True
    user_id: str
    amount: int
    pool: CreditPool
    balance: BalanceSummary
    transaction: CreditTransactionResponse


class RefillResponse(StandardizedModel):
    success: bool = True
    user_id: str
    balance: BalanceSummary
    next_refill_date: datetime
    transactions: List[CreditTransactionResponse]
