# backend/fitsaga/services/session_registry.py
"""Session registry: lookups plus the capacity-guarded seat counter."""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import SessionNotFoundError
from ..models.class_session import ClassSession
from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import utc_now
from .base import BaseService

logger = logging.getLogger(__name__)


class SessionRegistryService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.session_repository = RepositoryFactory.create_session_repository(db)

    def get_session(self, session_id: str) -> ClassSession:
        session = self.session_repository.refresh_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def list_upcoming(
        self,
        now: Optional[datetime] = None,
        *,
        include_full: bool = True,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ClassSession]:
        return self.session_repository.list_upcoming(
            now or utc_now(), include_full=include_full, limit=limit, offset=offset
        )

    @BaseService.measure_operation("reserve_slot")
    def reserve_slot(self, session_id: str, *, use_transaction: bool = True) -> ClassSession:
        """Raises SessionNotFoundError, SessionUnavailableError or SessionFullError."""
        if use_transaction:
            with self.transaction():
                return self.session_repository.reserve_slot(session_id)
        return self.session_repository.reserve_slot(session_id)

    @BaseService.measure_operation("release_slot")
    def release_slot(self, session_id: str, *, use_transaction: bool = True) -> ClassSession:
        if use_transaction:
            with self.transaction():
                return self.session_repository.release_slot(session_id)
        return self.session_repository.release_slot(session_id)


__all__ = ["SessionRegistryService"]
