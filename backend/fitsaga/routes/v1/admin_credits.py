# backend/fitsaga/routes/v1/admin_credits.py
"""
Admin credit routes - API v1

Endpoints:
    POST /{user_id}/adjust - Add or remove credits outside the booking flow
    POST /{user_id}/refill - Apply the monthly refill immediately
    GET /{user_id}/audit - Replay the log against the ledger
"""

import asyncio
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...api.dependencies.auth import require_admin
from ...api.dependencies.services import (
    get_admin_credit_service,
    get_monthly_refill_service,
    get_transaction_log_service,
)
from ...core.exceptions import DomainException
from ...models.user import User
from ...schemas.credits import (
    CreditAdjustmentRequest,
    CreditAdjustmentResponse,
    CreditTransactionResponse,
    RefillResponse,
)
from ...services.admin_credit_service import AdminCreditService
from ...services.monthly_refill_service import MonthlyRefillService
from ...services.transaction_log_service import TransactionLogService
from ._common import balance_summary, handle_domain_exception

router = APIRouter(tags=["admin-credits-v1"])


@router.post("/{user_id}/adjust", response_model=CreditAdjustmentResponse)
async def adjust_credits(
    user_id: str,
    payload: CreditAdjustmentRequest,
    current_user: User = Depends(require_admin),
    service: AdminCreditService = Depends(get_admin_credit_service),
) -> CreditAdjustmentResponse:
    try:
        result = await service.adjust(
            user_id, payload.amount, payload.pool, adjusted_by=current_user.id, reason=payload.reason
        )
    except DomainException as e:
        handle_domain_exception(e)

    return CreditAdjustmentResponse(
        user_id=result.user_id,
        amount=result.amount,
        pool=result.pool,
        balance=balance_summary(result.balance),
        transaction=CreditTransactionResponse.model_validate(result.transaction),
    )


@router.post("/{user_id}/refill", response_model=RefillResponse)
async def refill_credits(
    user_id: str,
    current_user: User = Depends(require_admin),
    service: MonthlyRefillService = Depends(get_monthly_refill_service),
) -> RefillResponse:
    try:
        result = await service.refill_user(user_id)
    except DomainException as e:
        handle_domain_exception(e)

    return RefillResponse(
        user_id=result.user_id,
        balance=balance_summary(result.balance),
        next_refill_date=result.next_refill_date,
        transactions=[CreditTransactionResponse.model_validate(t) for t in result.transactions],
    )


@router.get("/{user_id}/audit")
async def audit_credits(
    user_id: str,
    current_user: User = Depends(require_admin),
    log_service: TransactionLogService = Depends(get_transaction_log_service),
) -> Dict[str, Any]:
    report = await asyncio.to_thread(log_service.audit_user, user_id)
    return report.to_payload()
