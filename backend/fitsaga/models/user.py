# backend/fitsaga/models/user.py
"""
User model for the FitSaga platform.

Authentication lives with the identity collaborator; this table only keeps
what the ledger needs: who the member is and which role they act under.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
import ulid

from ..core.enums import RoleName
from ..database import Base

if TYPE_CHECKING:
    from .credit import CreditBalance


class User(Base):
    """A gym member, instructor or administrator."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=RoleName.CLIENT.value)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    credit_balance: Mapped[Optional["CreditBalance"]] = relationship(
        "CreditBalance", back_populates="user", uselist=False
    )

    __table_args__ = (
        CheckConstraint("role IN ('client', 'instructor', 'admin')", name="ck_users_role"),
    )

    def has_role(self, role: RoleName) -> bool:
        return self.role == role.value

    @property
    def is_admin(self) -> bool:
        return self.has_role(RoleName.ADMIN)

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email} ({self.role})>"
