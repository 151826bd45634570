# backend/tests/repositories/test_session_repository.py
"""Seat counter behaviour of ClassSessionRepository."""

from datetime import timedelta

import pytest

from fitsaga.core.enums import SessionStatus
from fitsaga.core.exceptions import SessionFullError, SessionNotFoundError, SessionUnavailableError
from fitsaga.monitoring.prometheus_metrics import REGISTRY
from fitsaga.repositories.session_repository import ClassSessionRepository


def _underflow_count() -> float:
    return (
        REGISTRY.get_sample_value("fitsaga_consistency_violations_total", {"kind": "enrollment_underflow"})
        or 0.0
    )


class TestReserveSlot:
    def test_increments_enrollment(self, db, make_session):
        session = make_session(capacity=2)
        repo = ClassSessionRepository(db)

        updated = repo.reserve_slot(session.id)
        db.commit()

        assert updated.enrolled_count == 1
        assert updated.remaining_capacity == 1

    def test_never_exceeds_capacity(self, db, make_session):
        session = make_session(capacity=2, enrolled=1)
        repo = ClassSessionRepository(db)

        repo.reserve_slot(session.id)
        with pytest.raises(SessionFullError):
            repo.reserve_slot(session.id)

        assert repo.refresh_session(session.id).enrolled_count == 2

    def test_missing_session(self, db):
        with pytest.raises(SessionNotFoundError):
            ClassSessionRepository(db).reserve_slot("01HZZZZZZZZZZZZZZZZZZZZZZZ")

    def test_cancelled_session_is_unavailable(self, db, make_session):
        session = make_session(status=SessionStatus.CANCELLED)

        with pytest.raises(SessionUnavailableError):
            ClassSessionRepository(db).reserve_slot(session.id)


class TestReleaseSlot:
    def test_decrements_enrollment(self, db, make_session):
        session = make_session(capacity=3, enrolled=2)

        updated = ClassSessionRepository(db).release_slot(session.id)

        assert updated.enrolled_count == 1

    def test_underflow_floors_at_zero_and_is_reported(self, db, make_session, caplog):
        session = make_session(enrolled=0)
        before = _underflow_count()

        with caplog.at_level("ERROR"):
            updated = ClassSessionRepository(db).release_slot(session.id)

        assert updated.enrolled_count == 0
        assert _underflow_count() == before + 1
        assert "Enrollment underflow" in caplog.text

    def test_missing_session(self, db):
        with pytest.raises(SessionNotFoundError):
            ClassSessionRepository(db).release_slot("01HZZZZZZZZZZZZZZZZZZZZZZZ")


def test_list_upcoming_skips_past_and_cancelled(db, make_session, clock):
    soon = make_session(start_in_hours=2, title="Soon")
    later = make_session(start_in_hours=30, title="Later")
    make_session(start_in_hours=-3, title="Past")
    make_session(start_in_hours=5, status=SessionStatus.CANCELLED, title="Cancelled")
    full = make_session(start_in_hours=10, capacity=1, enrolled=1, title="Full")
    repo = ClassSessionRepository(db)

    assert [s.id for s in repo.list_upcoming(clock.now)] == [soon.id, full.id, later.id]
    assert [s.id for s in repo.list_upcoming(clock.now, include_full=False)] == [soon.id, later.id]
    assert [s.id for s in repo.list_upcoming(clock.now + timedelta(hours=3))] == [full.id, later.id]
