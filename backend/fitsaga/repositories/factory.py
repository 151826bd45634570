# backend/fitsaga/repositories/factory.py
"""
Repository Factory for the FitSaga platform

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .credit_repository import CreditBalanceRepository
    from .session_repository import ClassSessionRepository
    from .transaction_repository import TransactionRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_credit_balance_repository(db: Session) -> "CreditBalanceRepository":
        """Create repository for the per-user credit pools."""
        from .credit_repository import CreditBalanceRepository

        return CreditBalanceRepository(db)

    @staticmethod
    def create_transaction_repository(db: Session) -> "TransactionRepository":
        """Create repository for the append-only transaction log."""
        from .transaction_repository import TransactionRepository

        return TransactionRepository(db)

    @staticmethod
    def create_session_repository(db: Session) -> "ClassSessionRepository":
        from .session_repository import ClassSessionRepository

        return ClassSessionRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)
