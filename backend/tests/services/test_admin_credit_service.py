# backend/tests/services/test_admin_credit_service.py
import pytest

from fitsaga.core.enums import CreditPool, RoleName, TransactionCategory
from fitsaga.core.exceptions import (
    ForbiddenException,
    InsufficientCreditsError,
    InvalidAdjustmentError,
    UserNotFoundError,
)
from fitsaga.models import CreditBalance, CreditTransaction
from fitsaga.services.admin_credit_service import AdminCreditService


@pytest.fixture
def admin_service(db, locks, clock):
    return AdminCreditService(db, lock_manager=locks, clock=clock)


@pytest.fixture
def admin(make_user):
    return make_user(RoleName.ADMIN)


def _entries(db, user_id):
    return (
        db.query(CreditTransaction)
        .filter(CreditTransaction.user_id == user_id)
        .order_by(CreditTransaction.sequence)
        .all()
    )


class TestAdjust:
    @pytest.mark.asyncio
    async def test_positive_adjustment_adds_to_pool(self, db, admin_service, admin, make_user):
        member = make_user(gym=2, interval=1)

        result = await admin_service.adjust(member.id, 4, CreditPool.INTERVAL, admin.id, reason="Promo")

        assert (result.balance.gym_credits, result.balance.interval_credits) == (2, 5)
        entry = result.transaction
        assert entry.category == TransactionCategory.ADMIN_ADJUSTMENT.value
        assert entry.amount == 4
        assert entry.adjusted_by == admin.id
        assert entry.description == "Promo"
        assert len(_entries(db, member.id)) == 1

    @pytest.mark.asyncio
    async def test_member_without_balance_row_starts_from_zero(self, db, admin_service, admin, make_user):
        member = make_user()

        await admin_service.adjust(member.id, 3, "gym", admin.id)

        row = db.get(CreditBalance, member.id, populate_existing=True)
        assert (row.gym_credits, row.interval_credits) == (3, 0)

    @pytest.mark.asyncio
    async def test_negative_adjustment_deducts_named_pool_only(self, db, admin_service, admin, make_user):
        member = make_user(gym=10, interval=1)

        with pytest.raises(InsufficientCreditsError):
            await admin_service.adjust(member.id, -3, CreditPool.INTERVAL, admin.id)

        row = db.get(CreditBalance, member.id, populate_existing=True)
        assert (row.gym_credits, row.interval_credits) == (10, 1)
        assert _entries(db, member.id) == []

    @pytest.mark.asyncio
    async def test_negative_adjustment_records_signed_amount(self, db, admin_service, admin, make_user):
        member = make_user(gym=10)

        result = await admin_service.adjust(member.id, -4, CreditPool.GYM, admin.id)

        assert result.balance.gym_credits == 6
        assert result.transaction.amount == -4
        assert result.transaction.gym_delta == -4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, True, 1.5, "3"])
    async def test_invalid_amounts_are_rejected(self, db, admin_service, admin, make_user, amount):
        member = make_user(gym=1)

        with pytest.raises(InvalidAdjustmentError):
            await admin_service.adjust(member.id, amount, CreditPool.GYM, admin.id)

        assert _entries(db, member.id) == []

    @pytest.mark.asyncio
    async def test_unknown_pool_is_rejected(self, admin_service, admin, make_user):
        member = make_user(gym=1)

        with pytest.raises(InvalidAdjustmentError):
            await admin_service.adjust(member.id, 1, "sauna", admin.id)

    @pytest.mark.asyncio
    async def test_non_admin_cannot_adjust(self, db, admin_service, make_user):
        instructor = make_user(RoleName.INSTRUCTOR)
        member = make_user(gym=1)

        with pytest.raises(ForbiddenException) as exc_info:
            await admin_service.adjust(member.id, 5, CreditPool.GYM, instructor.id)

        assert exc_info.value.code == "ADMIN_REQUIRED"
        assert db.get(CreditBalance, member.id, populate_existing=True).gym_credits == 1

    @pytest.mark.asyncio
    async def test_unknown_member(self, admin_service, admin):
        with pytest.raises(UserNotFoundError):
            await admin_service.adjust("01HZZZZZZZZZZZZZZZZZZZZZZZ", 5, CreditPool.GYM, admin.id)
