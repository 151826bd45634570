"""
Database models for the FitSaga platform.

- Users (identity mirror with roles)
- Credit balances and the append-only credit transaction log
- Class sessions and bookings
"""

from .booking import Booking
from .class_session import ClassSession
from .credit import CreditBalance, CreditTransaction
from .user import User

__all__ = [
    "Booking",
    "ClassSession",
    "CreditBalance",
    "CreditTransaction",
    "User",
]
