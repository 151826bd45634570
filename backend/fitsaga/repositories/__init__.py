# backend/fitsaga/repositories/__init__.py
"""
Repository layer for the FitSaga platform.

Repositories own data access only; transactions are committed by services.
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .credit_repository import CreditBalanceRepository
from .factory import RepositoryFactory
from .session_repository import ClassSessionRepository
from .transaction_repository import TransactionFilters, TransactionQuery, TransactionRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "ClassSessionRepository",
    "CreditBalanceRepository",
    "RepositoryFactory",
    "TransactionFilters",
    "TransactionQuery",
    "TransactionRepository",
    "UserRepository",
]
