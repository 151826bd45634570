# backend/fitsaga/core/enums.py
"""
Core enums for the FitSaga platform.

Closed vocabularies for roles, credit pools, ledger categories and
session/booking lifecycles. All are ``str`` enums so they persist as plain
strings and serialize cleanly in API responses.
"""

from enum import Enum


class RoleName(str, Enum):
    """Roles supplied by the identity collaborator."""

    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    CLIENT = "client"


class CreditPool(str, Enum):
    """
    The two credit pools a member holds.

    Gym credits are general purpose. Interval credits may only be spent on
    interval-type sessions.
    """

    GYM = "gym"
    INTERVAL = "interval"


class TransactionCategory(str, Enum):
    """Why a ledger entry was written."""

    BOOKING = "booking"
    CANCELLATION = "cancellation"
    ADMIN_ADJUSTMENT = "admin_adjustment"
    MONTHLY_RESET = "monthly_reset"


class SessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingStatus(str, Enum):
    """Booking lifecycle: NONE -> CONFIRMED -> CANCELLED (no way back)."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
