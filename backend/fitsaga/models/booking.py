# backend/fitsaga/models/booking.py
"""
Booking model for the FitSaga platform.

A booking records that a member spent credits on a class session. Each
booking cycle gets a fresh ULID; re-booking after a cancellation creates a
new row. The partial unique index below allows at most one CONFIRMED booking
per (user, session) while cancelled rows stay around for history.
"""

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..core.enums import BookingStatus, CreditPool
from ..database import Base
from .class_session import ClassSession

logger = logging.getLogger(__name__)


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    session_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("class_sessions.id"), nullable=False, index=True
    )

    # Cost snapshot (preserved for history)
    credits_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    credit_pool: Mapped[str] = mapped_column(String(20), nullable=False)
    gym_credits_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    interval_credits_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    booking_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Cancellation tracking
    cancellation_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_fee: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    refund_amount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    session: Mapped[ClassSession] = relationship(ClassSession, lazy="joined")

    __table_args__ = (
        CheckConstraint("status IN ('confirmed', 'cancelled')", name="ck_bookings_status"),
        CheckConstraint("credits_cost > 0", name="ck_bookings_cost_positive"),
        CheckConstraint("credit_pool IN ('gym', 'interval')", name="ck_bookings_pool"),
        CheckConstraint(
            "gym_credits_used + interval_credits_used = credits_cost",
            name="ck_bookings_split_matches_cost",
        ),
        Index(
            "uq_bookings_active_user_session",
            "user_id",
            "session_id",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
    )

    @property
    def booking_key(self) -> str:
        """Stable (user, session) key shared by every booking cycle of the pair."""
        return f"{self.user_id}_{self.session_id}"

    @property
    def pool(self) -> CreditPool:
        return CreditPool(self.credit_pool)

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    def cancel(self, *, fee: int, refund_amount: int, cancelled_at: datetime) -> None:
        """Mark this booking cancelled. Credits are handled by the caller."""
        self.status = BookingStatus.CANCELLED.value
        self.cancellation_date = cancelled_at
        self.cancellation_fee = fee
        self.refund_amount = refund_amount
        logger.info(f"Booking {self.id} cancelled (fee={fee}, refund={refund_amount})")

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: user={self.user_id}, session={self.session_id}, "
            f"cost={self.credits_cost} {self.credit_pool}, status={self.status}>"
        )
