# backend/tests/repositories/test_transaction_repository.py
"""Append-only log ordering and the lazy newest-first query."""

from datetime import timedelta

import pytest

from fitsaga.core.enums import CreditPool, TransactionCategory
from fitsaga.domain.ledger import BalanceSnapshot
from fitsaga.repositories.transaction_repository import TransactionFilters, TransactionRepository
from fitsaga.utils.time_utils import as_utc


@pytest.fixture
def member(make_user):
    return make_user()


def _append(repo, user_id, now, *, amount=1, category=TransactionCategory.ADMIN_ADJUSTMENT, pool=CreditPool.GYM, session_id=None):
    return repo.append(
        user_id=user_id,
        amount=amount,
        pool=pool,
        category=category,
        gym_delta=amount if pool == CreditPool.GYM else 0,
        interval_delta=amount if pool == CreditPool.INTERVAL else 0,
        balance_after=BalanceSnapshot(gym_credits=10, interval_credits=0),
        now=now,
        related_session_id=session_id,
    )


def test_sequence_increments_per_user(db, make_user, clock):
    repo = TransactionRepository(db)
    alice, bob = make_user(), make_user()

    first = _append(repo, alice.id, clock.now)
    second = _append(repo, alice.id, clock.now)
    other = _append(repo, bob.id, clock.now)

    assert (first.sequence, second.sequence, other.sequence) == (1, 2, 1)


def test_timestamps_never_run_backwards(db, member, clock):
    repo = TransactionRepository(db)

    first = _append(repo, member.id, clock.now)
    second = _append(repo, member.id, clock.now - timedelta(minutes=5))

    assert as_utc(second.created_at) == as_utc(first.created_at)
    assert second.sequence > first.sequence


def test_query_is_newest_first_and_pages_lazily(db, member, clock):
    repo = TransactionRepository(db)
    for i in range(5):
        _append(repo, member.id, clock.now + timedelta(seconds=i), amount=i + 1)
    db.commit()

    query = repo.query(member.id, page_size=2)

    assert [t.sequence for t in query] == [5, 4, 3, 2, 1]
    # Restartable: a second pass starts from the newest entry again
    assert [t.sequence for t in query] == [5, 4, 3, 2, 1]
    assert query.first().sequence == 5


def test_query_does_not_fetch_until_iterated(db, member, clock, monkeypatch):
    repo = TransactionRepository(db)
    _append(repo, member.id, clock.now)
    calls = []
    original = repo.fetch_page

    def counting_fetch(*args, **kwargs):
        calls.append(kwargs)
        return original(*args, **kwargs)

    monkeypatch.setattr(repo, "fetch_page", counting_fetch)
    query = repo.query(member.id)

    assert calls == []
    assert len(query.all()) == 1
    assert len(calls) == 1


def test_query_filters(db, member, clock):
    repo = TransactionRepository(db)
    _append(repo, member.id, clock.now, category=TransactionCategory.MONTHLY_RESET)
    _append(repo, member.id, clock.now, category=TransactionCategory.BOOKING, amount=-2, session_id="S1")
    _append(repo, member.id, clock.now, pool=CreditPool.INTERVAL)
    _append(repo, member.id, clock.now + timedelta(days=2))

    by_category = repo.query(member.id, TransactionFilters(category=TransactionCategory.BOOKING)).all()
    by_pool = repo.query(member.id, TransactionFilters(pool=CreditPool.INTERVAL)).all()
    by_session = repo.query(member.id, TransactionFilters(related_session_id="S1")).all()
    limited = repo.query(member.id, TransactionFilters(limit=2), page_size=1).all()
    cursor = repo.query(member.id, TransactionFilters(before_sequence=3)).all()
    recent = repo.query(member.id, TransactionFilters(since=clock.now + timedelta(days=1))).all()
    early = repo.query(member.id, TransactionFilters(until=clock.now + timedelta(hours=1))).all()

    assert [t.sequence for t in by_category] == [2]
    assert [t.sequence for t in by_pool] == [3]
    assert [t.sequence for t in by_session] == [2]
    assert [t.sequence for t in limited] == [4, 3]
    assert [t.sequence for t in cursor] == [2, 1]
    assert [t.sequence for t in recent] == [4]
    assert [t.sequence for t in early] == [3, 2, 1]


def test_entries_after_returns_replay_order(db, member, clock):
    repo = TransactionRepository(db)
    for _ in range(3):
        _append(repo, member.id, clock.now)

    assert [t.sequence for t in repo.entries_after(member.id, 1)] == [2, 3]
    assert repo.count_for_user(member.id) == 3
