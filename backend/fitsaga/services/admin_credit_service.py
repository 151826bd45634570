# backend/fitsaga/services/admin_credit_service.py
"""
Admin credit adjustments outside the booking flow.

Positive amounts add to the named pool. Negative amounts deduct from that
pool only, with the usual insufficient-credits check. Every adjustment
writes one ``admin_adjustment`` transaction carrying the admin's id.
Zero amounts are rejected, so zero-amount adjustments never reach the log.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Callable, Optional, Union

from sqlalchemy.orm import Session

from ..core.enums import CreditPool, TransactionCategory
from ..core.exceptions import ForbiddenException, InvalidAdjustmentError, UserNotFoundError
from ..core.resource_lock import ResourceLockManager, get_lock_manager, user_key
from ..domain.ledger import BalanceSnapshot
from ..models.credit import CreditTransaction
from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import utc_now
from .base import BaseService
from .credit_ledger_service import CreditLedgerService, LedgerEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdjustmentResult:
    user_id: str
    amount: int
    pool: CreditPool
    balance: BalanceSnapshot
    transaction: CreditTransaction


def _coerce_amount(amount: Any) -> int:
    # bool is an int subclass; True must not become a 1-credit adjustment
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAdjustmentError(amount)
    if amount == 0:
        raise InvalidAdjustmentError(amount)
    return amount


def _coerce_pool(pool: Union[CreditPool, str]) -> CreditPool:
    try:
        return CreditPool(pool)
    except ValueError as exc:
        raise InvalidAdjustmentError(pool, reason=f"Unknown credit pool: {pool}") from exc


class AdminCreditService(BaseService):
    def __init__(
        self,
        db: Session,
        *,
        lock_manager: Optional[ResourceLockManager] = None,
        clock: Callable[[], datetime] = utc_now,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        super().__init__(db, session_factory)
        self.clock = clock
        self.locks = lock_manager or get_lock_manager()
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.ledger = CreditLedgerService(db, clock=clock)

    def _for_session(self, db: Session) -> "AdminCreditService":
        return AdminCreditService(
            db, lock_manager=self.locks, clock=self.clock, session_factory=self.session_factory
        )

    def _check_parties(self, target_user_id: str, adjusted_by: str) -> None:
        admin = self.user_repository.get_active(adjusted_by)
        if admin is None or not admin.is_admin:
            raise ForbiddenException(
                "Only admins can adjust credits",
                code="ADMIN_REQUIRED",
                details={"adjusted_by": adjusted_by},
            )
        if self.user_repository.get_by_id(target_user_id) is None:
            raise UserNotFoundError(target_user_id)

    def _apply(
        self,
        target_user_id: str,
        amount: int,
        pool: CreditPool,
        adjusted_by: str,
        description: str,
    ) -> LedgerEntry:
        with self.transaction():
            if amount > 0:
                return self.ledger.credit(
                    target_user_id,
                    amount,
                    pool,
                    category=TransactionCategory.ADMIN_ADJUSTMENT,
                    description=description,
                    adjusted_by=adjusted_by,
                    use_transaction=False,
                )
            return self.ledger.debit(
                target_user_id,
                -amount,
                pool,
                category=TransactionCategory.ADMIN_ADJUSTMENT,
                allow_borrow=False,
                description=description,
                adjusted_by=adjusted_by,
                use_transaction=False,
            )

    @BaseService.measure_operation("admin_adjust_credits")
    async def adjust(
        self,
        target_user_id: str,
        amount: int,
        pool: Union[CreditPool, str],
        adjusted_by: str,
        reason: Optional[str] = None,
    ) -> AdjustmentResult:
        """
        Add (positive) or remove (negative) credits for ``target_user_id``.

        Raises InvalidAdjustmentError, ForbiddenException, UserNotFoundError
        and InsufficientCreditsError.
        """
        amount = _coerce_amount(amount)
        credit_pool = _coerce_pool(pool)
        await self.run_unit_of_work(lambda db: self._for_session(db)._check_parties(target_user_id, adjusted_by))

        description = reason or f"Admin adjustment {amount:+d} {credit_pool.value}"
        async with self.locks.hold(user_key(target_user_id)):
            entry = await self.run_unit_of_work(
                lambda db: self._for_session(db)._apply(
                    target_user_id, amount, credit_pool, adjusted_by, description
                )
            )

        self.log_operation(
            "admin_adjust_credits",
            user_id=target_user_id,
            amount=amount,
            pool=credit_pool.value,
            adjusted_by=adjusted_by,
        )
        return AdjustmentResult(
            user_id=target_user_id,
            amount=amount,
            pool=credit_pool,
            balance=entry.balance,
            transaction=entry.transaction,
        )


__all__ = ["AdjustmentResult", "AdminCreditService"]
