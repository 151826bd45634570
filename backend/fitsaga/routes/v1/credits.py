# backend/fitsaga/routes/v1/credits.py
"""
Credit balance and history routes - API v1

Readable by the balance owner or an admin.

Endpoints:
    GET /{user_id} - Current balance in both pools
    GET /{user_id}/transactions - Ledger history, newest first
"""

import asyncio
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies.auth import ensure_owner_or_admin, get_current_user
from ...api.dependencies.services import get_credit_ledger_service, get_transaction_log_service
from ...core.enums import CreditPool, TransactionCategory
from ...models.user import User
from ...repositories.transaction_repository import TransactionFilters
from ...schemas.credits import CreditBalanceResponse, CreditTransactionResponse, TransactionPage
from ...services.credit_ledger_service import CreditLedgerService
from ...services.transaction_log_service import TransactionLogService

router = APIRouter(tags=["credits-v1"])


@router.get("/{user_id}", response_model=CreditBalanceResponse)
async def get_balance(
    user_id: str,
    current_user: User = Depends(get_current_user),
    ledger: CreditLedgerService = Depends(get_credit_ledger_service),
) -> CreditBalanceResponse:
    ensure_owner_or_admin(current_user, user_id)
    record = await asyncio.to_thread(ledger.get_balance_record, user_id)
    snapshot = await asyncio.to_thread(ledger.get_balance, user_id)
    return CreditBalanceResponse(
        user_id=user_id,
        last_refilled=record.last_refilled if record else None,
        next_refill_date=record.next_refill_date if record else None,
        **snapshot.to_payload(),
    )


@router.get("/{user_id}/transactions", response_model=TransactionPage)
async def list_transactions(
    user_id: str,
    category: Optional[TransactionCategory] = Query(default=None),
    pool: Optional[CreditPool] = Query(default=None),
    session_id: Optional[str] = Query(default=None),
    since: Optional[datetime] = Query(default=None),
    until: Optional[datetime] = Query(default=None),
    before_sequence: Optional[int] = Query(default=None, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    log_service: TransactionLogService = Depends(get_transaction_log_service),
) -> TransactionPage:
    ensure_owner_or_admin(current_user, user_id)
    filters = TransactionFilters(
        category=category,
        pool=pool,
        related_session_id=session_id,
        since=since,
        until=until,
        limit=limit,
        before_sequence=before_sequence,
    )
    entries = await asyncio.to_thread(lambda: log_service.query(user_id, filters).all())
    items: List[CreditTransactionResponse] = [
        CreditTransactionResponse.model_validate(entry) for entry in entries
    ]
    next_cursor = entries[-1].sequence if len(entries) == limit else None
    return TransactionPage(items=items, next_cursor=next_cursor)
