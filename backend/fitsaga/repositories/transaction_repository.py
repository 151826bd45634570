# backend/fitsaga/repositories/transaction_repository.py
"""
Append-only access to the credit transaction log.

There is deliberately no update or delete here. Entries are ordered per user
by ``sequence``; ``append`` assigns the next sequence and a timestamp that
never runs backwards, so newest-first by sequence is also newest-first by
time. Callers must hold the user's lock while appending.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Iterator, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ..core.enums import CreditPool, TransactionCategory
from ..core.exceptions import RepositoryException
from ..models.credit import CreditTransaction
from ..utils.time_utils import as_utc
from .base_repository import BaseRepository

if TYPE_CHECKING:
    from ..domain.ledger import BalanceSnapshot


@dataclass(frozen=True)
class TransactionFilters:
    category: Optional[TransactionCategory] = None
    pool: Optional[CreditPool] = None
    related_session_id: Optional[str] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    limit: Optional[int] = None
    # Keyset cursor: only entries with a lower sequence
    before_sequence: Optional[int] = None


class TransactionQuery:
    """
    Lazy newest-first view over one user's transactions.

    Nothing is fetched until iteration starts; rows are pulled one keyset page
    at a time. Each ``iter()`` starts again from the newest entry, so the
    object can be iterated any number of times.
    """

    def __init__(
        self,
        repository: "TransactionRepository",
        user_id: str,
        filters: Optional[TransactionFilters] = None,
        page_size: int = 100,
    ):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._repository = repository
        self.user_id = user_id
        self.filters = filters or TransactionFilters()
        self.page_size = page_size

    def __iter__(self) -> Iterator[CreditTransaction]:
        remaining = self.filters.limit
        cursor = self.filters.before_sequence
        while remaining is None or remaining > 0:
            size = self.page_size if remaining is None else min(self.page_size, remaining)
            page = self._repository.fetch_page(self.user_id, self.filters, before_sequence=cursor, limit=size)
            yield from page
            if len(page) < size:
                return
            if remaining is not None:
                remaining -= len(page)
            cursor = page[-1].sequence

    def first(self) -> Optional[CreditTransaction]:
        return next(iter(self), None)

    def all(self) -> List[CreditTransaction]:
        return list(self)


class TransactionRepository(BaseRepository[CreditTransaction]):
    def __init__(self, db: Session):
        super().__init__(db, CreditTransaction)

    def last_entry(self, user_id: str) -> Optional[CreditTransaction]:
        return (
            self.db.query(CreditTransaction)
            .filter(CreditTransaction.user_id == user_id)
            .order_by(CreditTransaction.sequence.desc())
            .first()
        )

    def append(
        self,
        *,
        user_id: str,
        amount: int,
        pool: CreditPool,
        category: TransactionCategory,
        gym_delta: int,
        interval_delta: int,
        balance_after: "BalanceSnapshot",
        now: datetime,
        fee: Optional[int] = None,
        related_session_id: Optional[str] = None,
        related_booking_id: Optional[str] = None,
        description: str = "",
        adjusted_by: Optional[str] = None,
    ) -> CreditTransaction:
        last = self.last_entry(user_id)
        sequence = 1 if last is None else last.sequence + 1
        created_at = as_utc(now)
        if last is not None and as_utc(last.created_at) > created_at:
            created_at = as_utc(last.created_at)

        return self.create(
            user_id=user_id,
            sequence=sequence,
            amount=amount,
            pool=pool.value,
            category=category.value,
            gym_delta=gym_delta,
            interval_delta=interval_delta,
            fee=fee,
            related_session_id=related_session_id,
            related_booking_id=related_booking_id,
            description=description,
            gym_balance_after=balance_after.gym_credits,
            interval_balance_after=balance_after.interval_credits,
            adjusted_by=adjusted_by,
            created_at=created_at,
        )

    def _filtered(self, user_id: str, filters: TransactionFilters) -> Query:
        query = self.db.query(CreditTransaction).filter(CreditTransaction.user_id == user_id)
        if filters.category is not None:
            query = query.filter(CreditTransaction.category == filters.category.value)
        if filters.pool is not None:
            query = query.filter(CreditTransaction.pool == filters.pool.value)
        if filters.related_session_id is not None:
            query = query.filter(CreditTransaction.related_session_id == filters.related_session_id)
        if filters.since is not None:
            query = query.filter(CreditTransaction.created_at >= as_utc(filters.since))
        if filters.until is not None:
            query = query.filter(CreditTransaction.created_at <= as_utc(filters.until))
        return query

    def fetch_page(
        self,
        user_id: str,
        filters: TransactionFilters,
        *,
        before_sequence: Optional[int],
        limit: int,
    ) -> List[CreditTransaction]:
        try:
            query = self._filtered(user_id, filters)
            if before_sequence is not None:
                query = query.filter(CreditTransaction.sequence < before_sequence)
            return query.order_by(CreditTransaction.sequence.desc()).limit(limit).all()
        except Exception as exc:
            self.logger.error("Failed to fetch transactions for %s: %s", user_id, exc)
            raise RepositoryException(f"Failed to fetch transactions: {exc}") from exc

    def get_at_sequence(self, user_id: str, sequence: int) -> Optional[CreditTransaction]:
        return (
            self.db.query(CreditTransaction)
            .filter(CreditTransaction.user_id == user_id, CreditTransaction.sequence == sequence)
            .one_or_none()
        )

    def entries_after(self, user_id: str, sequence: int = 0) -> List[CreditTransaction]:
        """Entries with a higher sequence, oldest first (replay order)."""
        try:
            return (
                self.db.query(CreditTransaction)
                .filter(CreditTransaction.user_id == user_id, CreditTransaction.sequence > sequence)
                .order_by(CreditTransaction.sequence.asc())
                .all()
            )
        except Exception as exc:
            self.logger.error("Failed to load replay entries for %s: %s", user_id, exc)
            raise RepositoryException(f"Failed to load replay entries: {exc}") from exc

    def count_for_user(self, user_id: str) -> int:
        return int(
            self.db.query(func.count(CreditTransaction.id))
            .filter(CreditTransaction.user_id == user_id)
            .scalar()
            or 0
        )

    def query(
        self, user_id: str, filters: Optional[TransactionFilters] = None, *, page_size: int = 100
    ) -> TransactionQuery:
        return TransactionQuery(self, user_id, filters, page_size=page_size)


__all__ = ["TransactionFilters", "TransactionQuery", "TransactionRepository"]
