# backend/fitsaga/repositories/booking_repository.py
"""
Booking repository.

Bookings are never deleted; cancellation flips status on the row and the
history of every booking cycle for a (user, session) pair stays queryable.
"""

from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from ..core.enums import BookingStatus
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from .base_repository import BaseRepository


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self.db.get(Booking, booking_id, populate_existing=True)

    def get_active_for(self, user_id: str, session_id: str) -> Optional[Booking]:
        """The CONFIRMED booking for this pair, if any (at most one exists)."""
        try:
            return (
                self.db.query(Booking)
                .filter(
                    Booking.user_id == user_id,
                    Booking.session_id == session_id,
                    Booking.status == BookingStatus.CONFIRMED.value,
                )
                .populate_existing()
                .one_or_none()
            )
        except Exception as exc:
            self.logger.error("Failed to load active booking for %s/%s: %s", user_id, session_id, exc)
            raise RepositoryException(f"Failed to load active booking: {exc}") from exc

    def list_for_user(
        self,
        user_id: str,
        *,
        status: Optional[BookingStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Booking]:
        try:
            query = (
                self.db.query(Booking)
                .options(joinedload(Booking.session))
                .filter(Booking.user_id == user_id)
            )
            if status is not None:
                query = query.filter(Booking.status == status.value)
            return (
                query.order_by(Booking.booking_date.desc(), Booking.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except Exception as exc:
            self.logger.error("Failed to list bookings for %s: %s", user_id, exc)
            raise RepositoryException(f"Failed to list bookings: {exc}") from exc

    def history_for(self, user_id: str, session_id: str) -> List[Booking]:
        """Every booking cycle for the pair, oldest first."""
        return (
            self.db.query(Booking)
            .filter(Booking.user_id == user_id, Booking.session_id == session_id)
            .order_by(Booking.booking_date.asc(), Booking.id.asc())
            .all()
        )


__all__ = ["BookingRepository"]
