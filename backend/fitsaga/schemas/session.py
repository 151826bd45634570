"""Class session schemas."""

from datetime import datetime
from typing import List, Optional

from ..core.enums import CreditPool, SessionStatus
from .base import StandardizedModel


class ClassSessionResponse(StandardizedModel):
    id: str
    title: str
    description: Optional[str] = None
    instructor_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    capacity: int
    enrolled_count: int
    remaining_capacity: int
    credit_cost: int
    credit_pool: CreditPool
    status: SessionStatus


class ClassSessionListResponse(StandardizedModel):
    items: List[ClassSessionResponse]
    total: int
