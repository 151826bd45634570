# backend/fitsaga/services/credit_ledger_service.py
"""
Credit ledger service.

Applies ``domain.ledger`` arithmetic to the persisted balance row and writes
exactly one transaction per mutation. The balance row is read under a row
lock, the new snapshot is verified before it is written, and the entry's
``balance_after`` is taken from the same snapshot, so the log can never
disagree with the ledger it describes.

Methods accept ``use_transaction=False`` so the booking orchestrator can
compose them into its own unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..core.enums import CreditPool, TransactionCategory
from ..core.exceptions import LedgerConsistencyError
from ..domain import ledger
from ..domain.ledger import BalanceSnapshot, DeductionResult
from ..models.credit import CreditBalance, CreditTransaction
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import utc_now
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEntry:
    """A committed (or pending) mutation: the new balance and its log entry."""

    balance: BalanceSnapshot
    transaction: CreditTransaction
    gym_used: int = 0
    interval_used: int = 0

    @property
    def borrowed(self) -> bool:
        return self.gym_used > 0 and self.interval_used > 0


def snapshot_of(row: Optional[CreditBalance]) -> BalanceSnapshot:
    if row is None:
        return BalanceSnapshot()
    return BalanceSnapshot(gym_credits=int(row.gym_credits or 0), interval_credits=int(row.interval_credits or 0))


class CreditLedgerService(BaseService):
    """Holds both credit pools per member and logs every change."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        super().__init__(db)
        self.clock = clock
        self.balance_repository = RepositoryFactory.create_credit_balance_repository(db)
        self.transaction_repository = RepositoryFactory.create_transaction_repository(db)

    def get_balance(self, user_id: str) -> BalanceSnapshot:
        """Current balance; members without a row hold zero in both pools."""
        return snapshot_of(self.balance_repository.get_balance(user_id))

    def get_balance_record(self, user_id: str) -> Optional[CreditBalance]:
        return self.balance_repository.get_balance(user_id)

    def _verify(self, user_id: str, snapshot: BalanceSnapshot, operation: str) -> None:
        if snapshot.is_valid():
            return
        prometheus_metrics.record_consistency_violation("negative_balance")
        self.logger.error(
            "Negative balance after %s for user %s: %s",
            operation,
            user_id,
            snapshot.to_payload(),
            extra={"user_id": user_id, "operation": operation},
        )
        raise LedgerConsistencyError(
            "Ledger mutation produced a negative balance",
            details={"user_id": user_id, "operation": operation, **snapshot.to_payload()},
        )

    def _persist(
        self,
        *,
        row: CreditBalance,
        before: BalanceSnapshot,
        after: BalanceSnapshot,
        amount: int,
        pool: CreditPool,
        category: TransactionCategory,
        now: datetime,
        **entry_fields: object,
    ) -> CreditTransaction:
        self._verify(row.user_id, after, category.value)
        self.balance_repository.apply_snapshot(row, after)
        gym_delta = after.gym_credits - before.gym_credits
        interval_delta = after.interval_credits - before.interval_credits
        transaction = self.transaction_repository.append(
            user_id=row.user_id,
            amount=amount,
            pool=pool,
            category=category,
            gym_delta=gym_delta,
            interval_delta=interval_delta,
            balance_after=after,
            now=now,
            **entry_fields,  # type: ignore[arg-type]
        )
        prometheus_metrics.record_credit_movement(category.value, CreditPool.GYM.value, gym_delta)
        prometheus_metrics.record_credit_movement(category.value, CreditPool.INTERVAL.value, interval_delta)
        return transaction

    @BaseService.measure_operation("ledger_debit")
    def debit(
        self,
        user_id: str,
        amount: int,
        preferred_pool: CreditPool,
        *,
        category: TransactionCategory,
        allow_borrow: Optional[bool] = None,
        related_session_id: Optional[str] = None,
        related_booking_id: Optional[str] = None,
        description: str = "",
        adjusted_by: Optional[str] = None,
        now: Optional[datetime] = None,
        use_transaction: bool = True,
    ) -> LedgerEntry:
        """
        Deduct ``amount`` preferring ``preferred_pool``.

        Raises InsufficientCreditsError (balances untouched) when the
        permitted pools cannot cover it.
        """

        def _debit() -> LedgerEntry:
            row = self.balance_repository.get_or_create_for_update(user_id)
            before = snapshot_of(row)
            result: DeductionResult = ledger.deduct(before, amount, preferred_pool, allow_borrow=allow_borrow)
            transaction = self._persist(
                row=row,
                before=before,
                after=result.balance,
                amount=-amount,
                pool=preferred_pool,
                category=category,
                now=now or self.clock(),
                related_session_id=related_session_id,
                related_booking_id=related_booking_id,
                description=description,
                adjusted_by=adjusted_by,
            )
            return LedgerEntry(
                balance=result.balance,
                transaction=transaction,
                gym_used=result.gym_used,
                interval_used=result.interval_used,
            )

        if use_transaction:
            with self.transaction():
                return _debit()
        return _debit()

    @BaseService.measure_operation("ledger_credit")
    def credit(
        self,
        user_id: str,
        amount: int,
        pool: CreditPool,
        *,
        category: TransactionCategory,
        fee: Optional[int] = None,
        related_session_id: Optional[str] = None,
        related_booking_id: Optional[str] = None,
        description: str = "",
        adjusted_by: Optional[str] = None,
        now: Optional[datetime] = None,
        use_transaction: bool = True,
    ) -> LedgerEntry:
        """
        Add ``amount`` to ``pool`` and log it.

        A zero amount leaves the balance alone but is still logged, which is
        how a fully withheld cancellation refund stays visible in the history.
        """

        def _credit() -> LedgerEntry:
            row = self.balance_repository.get_or_create_for_update(user_id)
            before = snapshot_of(row)
            after = ledger.add(before, amount, pool)
            transaction = self._persist(
                row=row,
                before=before,
                after=after,
                amount=amount,
                pool=pool,
                category=category,
                now=now or self.clock(),
                fee=fee,
                related_session_id=related_session_id,
                related_booking_id=related_booking_id,
                description=description,
                adjusted_by=adjusted_by,
            )
            return LedgerEntry(
                balance=after,
                transaction=transaction,
                gym_used=amount if pool == CreditPool.GYM else 0,
                interval_used=amount if pool == CreditPool.INTERVAL else 0,
            )

        if use_transaction:
            with self.transaction():
                return _credit()
        return _credit()


__all__ = ["CreditLedgerService", "LedgerEntry", "snapshot_of"]
