# backend/fitsaga/services/booking_service.py
"""
Booking Service for the FitSaga platform

Orchestrates booking and cancellation of class sessions. Each call:
- holds the user and session locks for its whole duration
- validates, then debits/credits the ledger, moves the seat counter,
  appends one transaction and writes the booking, all in one database
  transaction
- runs that transaction on a worker thread with its own session, so the
  event loop keeps serving other requests meanwhile

Any failure rolls everything back, so a caller never sees credits taken
without a seat or a seat held without payment.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import BookingStatus, TransactionCategory
from ..core.exceptions import (
    AlreadyBookedError,
    AlreadyCancelledError,
    BookingNotFoundError,
    SessionFullError,
    SessionNotFoundError,
    SessionStartedError,
    SessionUnavailableError,
)
from ..core.resource_lock import ResourceLockManager, get_lock_manager, session_key, user_key
from ..core.ulid_helper import generate_ulid
from ..domain.cancellation_policy import CancellationPolicy, CancellationQuote
from ..domain.ledger import BalanceSnapshot
from ..models.booking import Booking
from ..models.credit import CreditTransaction
from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import as_utc, utc_now
from .base import BaseService
from .credit_ledger_service import CreditLedgerService
from .session_registry import SessionRegistryService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingResult:
    booking: Booking
    balance: BalanceSnapshot
    transaction: CreditTransaction
    gym_used: int
    interval_used: int

    @property
    def borrowed(self) -> bool:
        return self.gym_used > 0 and self.interval_used > 0


@dataclass(frozen=True)
class CancellationResult:
    booking: Booking
    quote: CancellationQuote
    balance: BalanceSnapshot
    transaction: CreditTransaction

    @property
    def refunded(self) -> int:
        return self.quote.refund_amount

    @property
    def fee(self) -> int:
        return self.quote.fee


def default_cancellation_policy() -> CancellationPolicy:
    return CancellationPolicy(
        window_hours=settings.cancellation_window_hours,
        fee_ratio=settings.cancellation_fee_ratio,
    )


class BookingService(BaseService):
    """Books and cancels class sessions against the credit ledger."""

    def __init__(
        self,
        db: Session,
        *,
        lock_manager: Optional[ResourceLockManager] = None,
        policy: Optional[CancellationPolicy] = None,
        clock: Callable[[], datetime] = utc_now,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        super().__init__(db, session_factory)
        self.clock = clock
        self.locks = lock_manager or get_lock_manager()
        self.policy = policy or default_cancellation_policy()
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.session_repository = RepositoryFactory.create_session_repository(db)
        self.ledger = CreditLedgerService(db, clock=clock)
        self.sessions = SessionRegistryService(db)

    def _for_session(self, db: Session) -> "BookingService":
        """The same service bound to a worker thread's session."""
        return BookingService(
            db,
            lock_manager=self.locks,
            policy=self.policy,
            clock=self.clock,
            session_factory=self.session_factory,
        )

    @BaseService.measure_operation("book_session")
    async def book(self, user_id: str, session_id: str) -> BookingResult:
        """
        Book ``session_id`` for ``user_id``.

        Raises (checked in this order): SessionNotFoundError,
        SessionUnavailableError, SessionFullError, AlreadyBookedError,
        SessionStartedError, InsufficientCreditsError.
        """
        async with self.locks.hold(user_key(user_id), session_key(session_id)):
            result = await self.run_unit_of_work(lambda db: self._for_session(db)._book(user_id, session_id))

        self.log_operation(
            "book_session",
            user_id=user_id,
            session_id=session_id,
            booking_id=result.booking.id,
            gym_used=result.gym_used,
            interval_used=result.interval_used,
        )
        return result

    def _book(self, user_id: str, session_id: str) -> BookingResult:
        now = self.clock()
        with self.transaction():
            session = self.session_repository.refresh_session(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            if not session.is_scheduled:
                raise SessionUnavailableError(session_id, session.status)
            if session.is_full:
                raise SessionFullError(session_id, capacity=session.capacity)

            existing = self.booking_repository.get_active_for(user_id, session_id)
            if existing is not None:
                raise AlreadyBookedError(session_id, existing.id)

            start_time = as_utc(session.start_time)
            if start_time <= now:
                raise SessionStartedError(session_id, start_time.isoformat())

            booking_id = generate_ulid()
            entry = self.ledger.debit(
                user_id,
                session.credit_cost,
                session.pool,
                category=TransactionCategory.BOOKING,
                related_session_id=session_id,
                related_booking_id=booking_id,
                description=f"Booked {session.title}",
                now=now,
                use_transaction=False,
            )
            # Re-checks capacity in the same statement that takes the seat
            reserved = self.sessions.reserve_slot(session_id, use_transaction=False)

            booking = self.booking_repository.create(
                id=booking_id,
                user_id=user_id,
                session_id=session_id,
                session=reserved,
                credits_cost=session.credit_cost,
                credit_pool=session.credit_pool,
                gym_credits_used=entry.gym_used,
                interval_credits_used=entry.interval_used,
                status=BookingStatus.CONFIRMED.value,
                booking_date=now,
            )

        return BookingResult(
            booking=booking,
            balance=entry.balance,
            transaction=entry.transaction,
            gym_used=entry.gym_used,
            interval_used=entry.interval_used,
        )

    @BaseService.measure_operation("cancel_booking")
    async def cancel(self, user_id: str, booking_id: str) -> CancellationResult:
        """
        Cancel the caller's booking, refunding to the booking's pool.

        Raises BookingNotFoundError (missing or someone else's) and
        AlreadyCancelledError.
        """
        session_id = await self.run_unit_of_work(lambda db: self._for_session(db)._locate(user_id, booking_id))

        async with self.locks.hold(user_key(user_id), session_key(session_id)):
            result = await self.run_unit_of_work(lambda db: self._for_session(db)._cancel(user_id, booking_id))

        self.log_operation(
            "cancel_booking",
            user_id=user_id,
            booking_id=booking_id,
            fee=result.fee,
            refunded=result.refunded,
            late=result.quote.late,
        )
        return result

    def _locate(self, user_id: str, booking_id: str) -> str:
        """Session id of the caller's booking, used to pick the locks."""
        return self.get_booking_for_user(user_id, booking_id).session_id

    def _cancel(self, user_id: str, booking_id: str) -> CancellationResult:
        now = self.clock()
        with self.transaction():
            booking = self.booking_repository.get_booking(booking_id)
            if booking is None or booking.user_id != user_id:
                raise BookingNotFoundError(booking_id)
            if booking.is_cancelled:
                raise AlreadyCancelledError(booking_id)

            session = self.session_repository.refresh_session(booking.session_id)
            if session is None:
                raise SessionNotFoundError(booking.session_id)

            quote = self.policy.evaluate(
                credits_cost=booking.credits_cost,
                credit_pool=booking.pool,
                session_start=session.start_time,
                now=now,
            )
            entry = self.ledger.credit(
                user_id,
                quote.refund_amount,
                quote.refund_pool,
                category=TransactionCategory.CANCELLATION,
                fee=quote.fee,
                related_session_id=session.id,
                related_booking_id=booking.id,
                description=f"Cancelled {session.title}",
                now=now,
                use_transaction=False,
            )
            self.sessions.release_slot(session.id, use_transaction=False)
            booking.cancel(fee=quote.fee, refund_amount=quote.refund_amount, cancelled_at=now)
            self.booking_repository.flush()

        return CancellationResult(booking=booking, quote=quote, balance=entry.balance, transaction=entry.transaction)

    def quote_cancellation(self, user_id: str, booking_id: str) -> CancellationQuote:
        """What cancelling now would cost, without changing anything."""
        booking = self.booking_repository.get_booking(booking_id)
        if booking is None or booking.user_id != user_id:
            raise BookingNotFoundError(booking_id)
        if booking.is_cancelled:
            raise AlreadyCancelledError(booking_id)
        return self.policy.evaluate(
            credits_cost=booking.credits_cost,
            credit_pool=booking.pool,
            session_start=booking.session.start_time,
            now=self.clock(),
        )

    def list_user_bookings(
        self,
        user_id: str,
        *,
        status: Optional[BookingStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Booking]:
        return self.booking_repository.list_for_user(user_id, status=status, limit=limit, offset=offset)

    def get_booking_for_user(self, user_id: str, booking_id: str) -> Booking:
        booking = self.booking_repository.get_booking(booking_id)
        if booking is None or booking.user_id != user_id:
            raise BookingNotFoundError(booking_id)
        return booking


__all__ = [
    "BookingResult",
    "BookingService",
    "CancellationResult",
    "default_cancellation_policy",
]
