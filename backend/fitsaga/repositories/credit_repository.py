# backend/fitsaga/repositories/credit_repository.py
"""
Credit balance repository.

Balance rows are the ledger's source of truth. Every mutation path reads the
row through ``get_for_update`` so a second writer on another connection
blocks on the row lock (PostgreSQL) instead of working from a stale copy.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..core.exceptions import RepositoryException
from ..domain.ledger import BalanceSnapshot
from ..models.credit import CreditBalance
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CreditBalanceRepository(BaseRepository[CreditBalance]):
    def __init__(self, db: Session):
        super().__init__(db, CreditBalance)

    def get_balance(self, user_id: str) -> Optional[CreditBalance]:
        try:
            return self.db.get(CreditBalance, user_id)
        except Exception as exc:
            self.logger.error("Failed to load credit balance for %s: %s", user_id, exc)
            raise RepositoryException(f"Failed to load credit balance: {exc}") from exc

    def get_for_update(self, user_id: str) -> Optional[CreditBalance]:
        """Load the balance row with a row lock, bypassing the identity map copy."""
        try:
            return (
                self.db.query(CreditBalance)
                .filter(CreditBalance.user_id == user_id)
                .with_for_update()
                .populate_existing()
                .one_or_none()
            )
        except Exception as exc:
            self.logger.error("Failed to lock credit balance for %s: %s", user_id, exc)
            raise RepositoryException(f"Failed to lock credit balance: {exc}") from exc

    def get_or_create_for_update(self, user_id: str) -> CreditBalance:
        balance = self.get_for_update(user_id)
        if balance is not None:
            return balance
        return self.create(user_id=user_id, gym_credits=0, interval_credits=0)

    def apply_snapshot(self, balance: CreditBalance, snapshot: BalanceSnapshot) -> CreditBalance:
        balance.gym_credits = snapshot.gym_credits
        balance.interval_credits = snapshot.interval_credits
        self.db.flush()
        return balance

    def list_due_for_refill(self, now: datetime, *, include_never_refilled: bool) -> List[str]:
        """
        User ids whose monthly refill is due at ``now``, oldest schedule first.

        With ``include_never_refilled`` active clients that have never been
        refilled are due too, including those without a balance row yet.
        """
        try:
            if not include_never_refilled:
                rows = (
                    self.db.query(CreditBalance.user_id)
                    .filter(CreditBalance.next_refill_date <= now)
                    .order_by(CreditBalance.next_refill_date.asc(), CreditBalance.user_id.asc())
                    .all()
                )
                return [row.user_id for row in rows]

            never_refilled_client = and_(
                CreditBalance.next_refill_date.is_(None),
                User.role == RoleName.CLIENT.value,
                User.is_active.is_(True),
            )
            rows = (
                self.db.query(User.id)
                .outerjoin(CreditBalance, CreditBalance.user_id == User.id)
                .filter(or_(CreditBalance.next_refill_date <= now, never_refilled_client))
                .order_by(CreditBalance.next_refill_date.asc(), User.id.asc())
                .all()
            )
            return [row.id for row in rows]
        except Exception as exc:
            self.logger.error("Failed to list balances due for refill: %s", exc)
            raise RepositoryException(f"Failed to list balances due for refill: {exc}") from exc


__all__ = ["CreditBalanceRepository"]
