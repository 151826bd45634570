# backend/fitsaga/routes/v1/_common.py
"""Helpers shared by the v1 routers."""

from typing import NoReturn

from fastapi import HTTPException, status

from ...core.exceptions import DomainException
from ...domain.ledger import BalanceSnapshot
from ...schemas.credits import BalanceSummary


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def balance_summary(snapshot: BalanceSnapshot) -> BalanceSummary:
    return BalanceSummary(**snapshot.to_payload())
