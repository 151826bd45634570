# backend/fitsaga/tasks/credit_tasks.py
"""
Periodic credit tasks.

The worker has no running event loop, so the async refill service is driven
with ``asyncio.run`` inside a short-lived database session.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, TypeVar, cast

from celery import shared_task

from ..database import get_db_session
from ..services.monthly_refill_service import MonthlyRefillService

logger = logging.getLogger(__name__)

_TaskFunc = TypeVar("_TaskFunc", bound=Callable[..., Any])


def _typed_shared_task(*args: Any, **kwargs: Any) -> Callable[[_TaskFunc], _TaskFunc]:
    """Typed wrapper for Celery's shared_task decorator."""
    return cast(Callable[[_TaskFunc], _TaskFunc], shared_task(*args, **kwargs))


def run_refill_due() -> Dict[str, Any]:
    with get_db_session() as db:
        summary = asyncio.run(MonthlyRefillService(db).refill_due())
    payload = summary.to_payload()
    logger.info("[CREDITS] Monthly refill run finished: %s", payload)
    return payload


@_typed_shared_task(name="credits.refill_due_balances")
def refill_due_balances() -> Dict[str, Any]:
    """Apply the monthly refill to every balance whose refill date has passed."""
    return run_refill_due()
