# backend/fitsaga/services/monthly_refill_service.py
"""
Monthly credit refill.

Members receive a fixed allotment of gym and interval credits once per
calendar month. Each refill logs one ``monthly_reset`` transaction per pool
that actually received credits and pushes ``next_refill_date`` a month out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import CreditPool, TransactionCategory
from ..core.exceptions import DomainException, UserNotFoundError
from ..core.resource_lock import ResourceLockManager, get_lock_manager, user_key
from ..domain.ledger import BalanceSnapshot
from ..models.credit import CreditTransaction
from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import add_months, as_utc, utc_now
from .base import BaseService
from .credit_ledger_service import CreditLedgerService, snapshot_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefillResult:
    user_id: str
    balance: BalanceSnapshot
    transactions: List[CreditTransaction]
    next_refill_date: datetime


@dataclass
class RefillRunSummary:
    refilled: List[RefillResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "refilled": len(self.refilled),
            "skipped": len(self.skipped),
            "failed": list(self.failed),
        }


class MonthlyRefillService(BaseService):
    def __init__(
        self,
        db: Session,
        *,
        lock_manager: Optional[ResourceLockManager] = None,
        clock: Callable[[], datetime] = utc_now,
        gym_credits: Optional[int] = None,
        interval_credits: Optional[int] = None,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        super().__init__(db, session_factory)
        self.clock = clock
        self.locks = lock_manager or get_lock_manager()
        self.gym_credits = settings.monthly_gym_credits if gym_credits is None else gym_credits
        self.interval_credits = (
            settings.monthly_interval_credits if interval_credits is None else interval_credits
        )
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.balance_repository = RepositoryFactory.create_credit_balance_repository(db)
        self.ledger = CreditLedgerService(db, clock=clock)

    def _for_session(self, db: Session) -> "MonthlyRefillService":
        return MonthlyRefillService(
            db,
            lock_manager=self.locks,
            clock=self.clock,
            gym_credits=self.gym_credits,
            interval_credits=self.interval_credits,
            session_factory=self.session_factory,
        )

    def _is_due(self, user_id: str, now: datetime) -> bool:
        row = self.balance_repository.get_for_update(user_id)
        if row is None or row.next_refill_date is None:
            return settings.refill_never_refilled_users
        return as_utc(row.next_refill_date) <= now

    def _apply_refill(self, user_id: str, now: datetime) -> RefillResult:
        transactions: List[CreditTransaction] = []
        for pool, amount in ((CreditPool.GYM, self.gym_credits), (CreditPool.INTERVAL, self.interval_credits)):
            if amount <= 0:
                continue
            entry = self.ledger.credit(
                user_id,
                amount,
                pool,
                category=TransactionCategory.MONTHLY_RESET,
                description=f"Monthly {pool.value} credits",
                now=now,
                use_transaction=False,
            )
            transactions.append(entry.transaction)

        row = self.balance_repository.get_or_create_for_update(user_id)
        row.last_refilled = now
        row.next_refill_date = add_months(now, 1)
        self.balance_repository.flush()
        return RefillResult(
            user_id=user_id,
            balance=snapshot_of(row),
            transactions=transactions,
            next_refill_date=row.next_refill_date,
        )

    def _refill(self, user_id: str, now: datetime) -> RefillResult:
        if self.user_repository.get_by_id(user_id) is None:
            raise UserNotFoundError(user_id)
        with self.transaction():
            return self._apply_refill(user_id, now)

    def _refill_if_due(self, user_id: str, now: datetime) -> Optional[RefillResult]:
        with self.transaction():
            if not self._is_due(user_id, now):
                return None
            return self._apply_refill(user_id, now)

    def _due_user_ids(self, now: datetime) -> List[str]:
        return self.balance_repository.list_due_for_refill(
            now, include_never_refilled=settings.refill_never_refilled_users
        )

    @BaseService.measure_operation("refill_user")
    async def refill_user(self, user_id: str) -> RefillResult:
        """Refill one member now, whether or not the refill is due."""
        now = self.clock()
        async with self.locks.hold(user_key(user_id)):
            result = await self.run_unit_of_work(lambda db: self._for_session(db)._refill(user_id, now))
        self.log_operation("refill_user", user_id=user_id, next_refill_date=result.next_refill_date.isoformat())
        return result

    @BaseService.measure_operation("refill_due")
    async def refill_due(self, now: Optional[datetime] = None) -> RefillRunSummary:
        """
        Refill every member whose refill date has passed.

        Each member is refilled in its own transaction; one failure is logged
        and does not stop the run.
        """
        run_at = as_utc(now) if now is not None else self.clock()
        summary = RefillRunSummary()
        due = await self.run_unit_of_work(lambda db: self._for_session(db)._due_user_ids(run_at))
        for user_id in due:
            try:
                async with self.locks.hold(user_key(user_id)):
                    result = await self.run_unit_of_work(
                        lambda db: self._for_session(db)._refill_if_due(user_id, run_at)
                    )
            except DomainException as exc:
                self.logger.error(
                    "Monthly refill failed for user %s: %s",
                    user_id,
                    exc.message,
                    extra={"user_id": user_id, "code": exc.code},
                )
                summary.failed.append(user_id)
                continue
            if result is None:
                summary.skipped.append(user_id)
            else:
                summary.refilled.append(result)

        self.log_operation("refill_due", **summary.to_payload())
        return summary


__all__ = ["MonthlyRefillService", "RefillResult", "RefillRunSummary"]
