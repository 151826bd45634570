# backend/fitsaga/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.admin_credit_service import AdminCreditService
from ...services.booking_service import BookingService
from ...services.credit_ledger_service import CreditLedgerService
from ...services.monthly_refill_service import MonthlyRefillService
from ...services.session_registry import SessionRegistryService
from ...services.transaction_log_service import TransactionLogService
from .database import get_db


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db)


def get_session_registry(db: Session = Depends(get_db)) -> SessionRegistryService:
    return SessionRegistryService(db)


def get_credit_ledger_service(db: Session = Depends(get_db)) -> CreditLedgerService:
    return CreditLedgerService(db)


def get_transaction_log_service(db: Session = Depends(get_db)) -> TransactionLogService:
    return TransactionLogService(db)


def get_admin_credit_service(db: Session = Depends(get_db)) -> AdminCreditService:
    return AdminCreditService(db)


def get_monthly_refill_service(db: Session = Depends(get_db)) -> MonthlyRefillService:
    return MonthlyRefillService(db)
