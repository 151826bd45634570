# backend/fitsaga/models/class_session.py
"""
Class session model.

A scheduled gym session members spend credits on. ``enrolled_count`` is only
moved by the booking engine through conditional updates, so it can never
pass ``capacity``; the CHECK constraints back that up at the database level.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
import ulid

from ..core.enums import CreditPool, SessionStatus
from ..database import Base


class ClassSession(Base):
    __tablename__ = "class_sessions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    instructor_id: Mapped[Optional[str]] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    enrolled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credit_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    credit_pool: Mapped[str] = mapped_column(String(20), nullable=False, default=CreditPool.GYM.value)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SessionStatus.SCHEDULED.value, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_class_sessions_capacity_positive"),
        CheckConstraint("enrolled_count >= 0", name="ck_class_sessions_enrolled_non_negative"),
        CheckConstraint("enrolled_count <= capacity", name="ck_class_sessions_enrolled_within_capacity"),
        CheckConstraint("credit_cost > 0", name="ck_class_sessions_cost_positive"),
        CheckConstraint("credit_pool IN ('gym', 'interval')", name="ck_class_sessions_pool"),
        CheckConstraint(
            "status IN ('scheduled', 'cancelled', 'completed')", name="ck_class_sessions_status"
        ),
        CheckConstraint("start_time < end_time", name="ck_class_sessions_time_order"),
    )

    @property
    def pool(self) -> CreditPool:
        return CreditPool(self.credit_pool)

    @property
    def remaining_capacity(self) -> int:
        return max(int(self.capacity) - int(self.enrolled_count or 0), 0)

    @property
    def is_full(self) -> bool:
        return int(self.enrolled_count or 0) >= int(self.capacity)

    @property
    def is_scheduled(self) -> bool:
        return self.status == SessionStatus.SCHEDULED.value

    def __repr__(self) -> str:
        return (
            f"<ClassSession {self.id}: {self.title!r} {self.enrolled_count}/{self.capacity} "
            f"cost={self.credit_cost} {self.credit_pool}>"
        )
