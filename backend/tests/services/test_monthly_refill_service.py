# backend/tests/services/test_monthly_refill_service.py
from datetime import datetime, timedelta, timezone

import pytest

from fitsaga.core.config import settings
from fitsaga.core.enums import RoleName, TransactionCategory
from fitsaga.core.exceptions import LedgerConsistencyError, UserNotFoundError
from fitsaga.models import CreditBalance, CreditTransaction
from fitsaga.services.monthly_refill_service import MonthlyRefillService
from fitsaga.utils.time_utils import as_utc


@pytest.fixture
def refill_service(db, locks, clock):
    return MonthlyRefillService(db, lock_manager=locks, clock=clock)


def _row(db, user_id):
    return db.get(CreditBalance, user_id, populate_existing=True)


def _monthly_entries(db, user_id):
    return (
        db.query(CreditTransaction)
        .filter(
            CreditTransaction.user_id == user_id,
            CreditTransaction.category == TransactionCategory.MONTHLY_RESET.value,
        )
        .order_by(CreditTransaction.sequence)
        .all()
    )


@pytest.mark.asyncio
async def test_refill_user_adds_allotment_and_schedules_next(db, refill_service, make_user, clock):
    clock.now = datetime(2026, 1, 31, 9, 0, tzinfo=timezone.utc)
    member = make_user(gym=3, interval=1)

    result = await refill_service.refill_user(member.id)

    assert (result.balance.gym_credits, result.balance.interval_credits) == (23, 6)
    assert result.next_refill_date == datetime(2026, 2, 28, 9, 0, tzinfo=timezone.utc)
    row = _row(db, member.id)
    assert as_utc(row.last_refilled) == clock.now

    entries = _monthly_entries(db, member.id)
    assert [(e.pool, e.amount) for e in entries] == [("gym", 20), ("interval", 5)]
    assert (entries[-1].gym_balance_after, entries[-1].interval_balance_after) == (23, 6)


@pytest.mark.asyncio
async def test_zero_allotment_pool_is_not_logged(db, locks, clock, make_user):
    service = MonthlyRefillService(db, lock_manager=locks, clock=clock, gym_credits=8, interval_credits=0)
    member = make_user(gym=0, interval=0)

    await service.refill_user(member.id)

    assert [(e.pool, e.amount) for e in _monthly_entries(db, member.id)] == [("gym", 8)]


@pytest.mark.asyncio
async def test_refill_user_unknown_member(refill_service):
    with pytest.raises(UserNotFoundError):
        await refill_service.refill_user("01HZZZZZZZZZZZZZZZZZZZZZZZ")


@pytest.mark.asyncio
async def test_refill_due_only_touches_due_balances(db, refill_service, make_user, clock):
    due, not_yet, fresh = make_user(gym=1), make_user(gym=1), make_user(gym=1)
    _row(db, due.id).next_refill_date = clock.now - timedelta(days=1)
    _row(db, not_yet.id).next_refill_date = clock.now + timedelta(days=3)
    db.commit()

    summary = await refill_service.refill_due()

    refilled = {r.user_id for r in summary.refilled}
    assert refilled == {due.id, fresh.id}
    assert summary.failed == []
    assert _row(db, due.id).gym_credits == 21
    assert _row(db, not_yet.id).gym_credits == 1
    assert summary.to_payload() == {"refilled": 2, "skipped": 0, "failed": []}


@pytest.mark.asyncio
async def test_refill_due_is_idempotent_within_a_month(db, refill_service, make_user, clock):
    member = make_user(gym=0)

    await refill_service.refill_due()
    clock.advance(days=10)
    summary = await refill_service.refill_due()

    assert summary.refilled == []
    assert _row(db, member.id).gym_credits == 20
    assert len(_monthly_entries(db, member.id)) == 2


@pytest.mark.asyncio
async def test_refill_due_continues_after_a_failure(db, refill_service, make_user, monkeypatch, caplog):
    broken, healthy = make_user(gym=0), make_user(gym=0)
    original = MonthlyRefillService._refill_if_due

    def _flaky_refill(self, user_id, now):
        if user_id == broken.id:
            raise LedgerConsistencyError("boom", details={"user_id": user_id})
        return original(self, user_id, now)

    monkeypatch.setattr(MonthlyRefillService, "_refill_if_due", _flaky_refill)

    with caplog.at_level("ERROR"):
        summary = await refill_service.refill_due()

    assert summary.failed == [broken.id]
    assert [r.user_id for r in summary.refilled] == [healthy.id]
    assert "Monthly refill failed" in caplog.text


@pytest.mark.asyncio
async def test_refill_due_covers_clients_without_a_balance_row(db, refill_service, make_user):
    newcomer = make_user(RoleName.CLIENT)
    assert db.get(CreditBalance, newcomer.id) is None

    summary = await refill_service.refill_due()

    assert [r.user_id for r in summary.refilled] == [newcomer.id]
    row = _row(db, newcomer.id)
    assert (row.gym_credits, row.interval_credits) == (20, 5)
    assert row.next_refill_date is not None
    assert len(_monthly_entries(db, newcomer.id)) == 2


@pytest.mark.asyncio
async def test_refill_due_skips_staff_and_inactive_members_without_rows(db, refill_service, make_user):
    make_user(RoleName.ADMIN)
    make_user(RoleName.INSTRUCTOR)
    inactive = make_user(RoleName.CLIENT)
    inactive.is_active = False
    db.commit()

    summary = await refill_service.refill_due()

    assert summary.refilled == []
    assert db.query(CreditBalance).count() == 0


@pytest.mark.asyncio
async def test_never_refilled_members_wait_when_disabled(db, refill_service, make_user, monkeypatch):
    newcomer = make_user(RoleName.CLIENT, gym=0)
    monkeypatch.setattr(settings, "refill_never_refilled_users", False)

    summary = await refill_service.refill_due()

    assert summary.refilled == []
    assert _row(db, newcomer.id).gym_credits == 0
