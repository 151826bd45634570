# backend/fitsaga/repositories/session_repository.py
"""
Class session repository.

Enrollment is only ever changed through single conditional UPDATE
statements, so capacity holds even if two transactions race past the
application-level locks.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..core.enums import SessionStatus
from ..core.exceptions import (
    RepositoryException,
    SessionFullError,
    SessionNotFoundError,
    SessionUnavailableError,
)
from ..models.class_session import ClassSession
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..utils.time_utils import as_utc
from .base_repository import BaseRepository


class ClassSessionRepository(BaseRepository[ClassSession]):
    def __init__(self, db: Session):
        super().__init__(db, ClassSession)

    def get_session(self, session_id: str) -> Optional[ClassSession]:
        return self.get_by_id(session_id)

    def refresh_session(self, session_id: str) -> Optional[ClassSession]:
        """Re-read the row so counters changed by UPDATE statements are current."""
        return self.db.get(ClassSession, session_id, populate_existing=True)

    def list_upcoming(
        self,
        now: datetime,
        *,
        include_full: bool = True,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ClassSession]:
        try:
            query = self.db.query(ClassSession).filter(
                ClassSession.status == SessionStatus.SCHEDULED.value,
                ClassSession.start_time > as_utc(now),
            )
            if not include_full:
                query = query.filter(ClassSession.enrolled_count < ClassSession.capacity)
            return (
                query.order_by(ClassSession.start_time.asc(), ClassSession.id.asc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except Exception as exc:
            self.logger.error("Failed to list upcoming sessions: %s", exc)
            raise RepositoryException(f"Failed to list upcoming sessions: {exc}") from exc

    def reserve_slot(self, session_id: str) -> ClassSession:
        """
        Take one seat: compare-and-increment in a single statement.

        Raises SessionNotFoundError, SessionUnavailableError or SessionFullError
        when the update matches no row.
        """
        result = self.db.execute(
            update(ClassSession)
            .where(
                ClassSession.id == session_id,
                ClassSession.status == SessionStatus.SCHEDULED.value,
                ClassSession.enrolled_count < ClassSession.capacity,
            )
            .values(enrolled_count=ClassSession.enrolled_count + 1)
            .execution_options(synchronize_session=False)
        )
        session = self.refresh_session(session_id)
        if result.rowcount == 1 and session is not None:
            return session

        if session is None:
            raise SessionNotFoundError(session_id)
        if not session.is_scheduled:
            raise SessionUnavailableError(session_id, session.status)
        raise SessionFullError(session_id, capacity=session.capacity)

    def release_slot(self, session_id: str) -> ClassSession:
        """
        Give one seat back, never going below zero.

        Releasing an empty session means reserve/release got out of step
        somewhere; that is logged and counted rather than raised so the
        cancellation itself still completes.
        """
        result = self.db.execute(
            update(ClassSession)
            .where(ClassSession.id == session_id, ClassSession.enrolled_count > 0)
            .values(enrolled_count=ClassSession.enrolled_count - 1)
            .execution_options(synchronize_session=False)
        )
        session = self.refresh_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if result.rowcount == 0:
            prometheus_metrics.record_consistency_violation("enrollment_underflow")
            self.logger.error(
                "Enrollment underflow: release on session %s with enrolled_count=%s",
                session_id,
                session.enrolled_count,
                extra={"session_id": session_id, "enrolled_count": session.enrolled_count},
            )
        return session


__all__ = ["ClassSessionRepository"]
