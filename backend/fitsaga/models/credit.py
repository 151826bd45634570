"""
Credit ledger models.

``CreditBalance`` is the source of truth for a member's two pools.
``CreditTransaction`` is the append-only audit trail: one row per ledger
mutation, never updated or deleted.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..core.enums import CreditPool
from ..database import Base

if TYPE_CHECKING:
    from .user import User


class CreditBalance(Base):
    """Per-user balances. The total is always derived, never stored."""

    __tablename__ = "credit_balances"

    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    gym_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    interval_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_refilled: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    next_refill_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    user: Mapped["User"] = relationship("User", back_populates="credit_balance")

    __table_args__ = (
        CheckConstraint("gym_credits >= 0", name="ck_credit_balances_gym_non_negative"),
        CheckConstraint("interval_credits >= 0", name="ck_credit_balances_interval_non_negative"),
    )

    @property
    def total_credits(self) -> int:
        return int(self.gym_credits or 0) + int(self.interval_credits or 0)

    def pool_balance(self, pool: CreditPool) -> int:
        if pool == CreditPool.INTERVAL:
            return int(self.interval_credits or 0)
        return int(self.gym_credits or 0)

    def __repr__(self) -> str:
        return (
            f"<CreditBalance(user_id={self.user_id}, gym={self.gym_credits}, "
            f"interval={self.interval_credits})>"
        )


class CreditTransaction(Base):
    """
    Immutable ledger entry.

    ``amount`` is the signed headline figure in ``pool``; ``gym_delta`` and
    ``interval_delta`` record how each pool actually moved (a cross-pool
    booking touches both). ``sequence`` is the per-user insertion order.
    """

    __tablename__ = "credit_transactions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    amount: Mapped[int] = mapped_column(Integer, nullable=False, comment="Signed; negative = deduction")
    pool: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    gym_delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    interval_delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fee: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="Cancellation fee withheld")

    related_session_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True, index=True)
    related_booking_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    gym_balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    interval_balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    adjusted_by: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "sequence", name="uq_credit_transactions_user_sequence"),
        CheckConstraint("pool IN ('gym', 'interval')", name="ck_credit_transactions_pool"),
        CheckConstraint(
            "category IN ('booking', 'cancellation', 'admin_adjustment', 'monthly_reset')",
            name="ck_credit_transactions_category",
        ),
        CheckConstraint("gym_balance_after >= 0", name="ck_credit_transactions_gym_after"),
        CheckConstraint("interval_balance_after >= 0", name="ck_credit_transactions_interval_after"),
    )

    @property
    def total_balance_after(self) -> int:
        return int(self.gym_balance_after) + int(self.interval_balance_after)

    def __repr__(self) -> str:
        return (
            f"<CreditTransaction {self.id}: user={self.user_id} seq={self.sequence} "
            f"{self.category} {self.amount:+d} {self.pool}>"
        )
