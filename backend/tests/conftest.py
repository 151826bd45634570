# backend/tests/conftest.py
"""
Pytest configuration for the FitSaga backend.

Every test gets a fresh SQLite schema in a temporary file. Services run
their units of work on worker threads with their own sessions, so the
database has to be shareable across connections, which rules out an
in-memory one. The environment is set before any fitsaga import so the
engine binds to SQLite, never to a real database.
"""

import os
from pathlib import Path
import tempfile

TEST_DB_PATH = Path(tempfile.gettempdir()) / f"fitsaga-test-{os.getpid()}.sqlite3"

# Set testing mode BEFORE any fitsaga imports
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["is_testing"] = "true"
os.environ["DISTRIBUTED_LOCKS_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-jwt-signing-0123456789"
os.environ["CI"] = "true"

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Generator, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from fitsaga.api.dependencies.database import get_db
from fitsaga.auth import create_access_token
from fitsaga.core.enums import CreditPool, RoleName, SessionStatus
from fitsaga.core.resource_lock import ResourceLockManager
from fitsaga.database import Base, SessionLocal, engine
from fitsaga.main import app
from fitsaga.models import ClassSession, CreditBalance, User


@pytest.fixture(scope="session", autouse=True)
def _test_database_file() -> Generator[None, None, None]:
    TEST_DB_PATH.unlink(missing_ok=True)
    yield
    engine.dispose()
    TEST_DB_PATH.unlink(missing_ok=True)


class FrozenClock:
    """Callable clock the services read instead of the wall clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def db() -> Generator[Session, None, None]:
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FrozenClock:
    # Real "now" so API tests (which use the wall clock) see the same future sessions
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def locks() -> ResourceLockManager:
    return ResourceLockManager()


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    counter = {"n": 0}

    def _make_user(
        role: RoleName = RoleName.CLIENT,
        *,
        gym: Optional[int] = None,
        interval: Optional[int] = None,
        email: Optional[str] = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"member{counter['n']}@fitsaga.test",
            full_name=f"Member {counter['n']}",
            role=role.value,
        )
        db.add(user)
        db.flush()
        if gym is not None or interval is not None:
            db.add(CreditBalance(user_id=user.id, gym_credits=gym or 0, interval_credits=interval or 0))
        db.commit()
        return user

    return _make_user


@pytest.fixture
def make_session(db: Session, clock: FrozenClock) -> Callable[..., ClassSession]:
    def _make_session(
        *,
        start_in_hours: float = 48,
        capacity: int = 10,
        enrolled: int = 0,
        cost: int = 2,
        pool: CreditPool = CreditPool.GYM,
        status: SessionStatus = SessionStatus.SCHEDULED,
        title: str = "Morning HIIT",
    ) -> ClassSession:
        start = clock.now + timedelta(hours=start_in_hours)
        session = ClassSession(
            title=title,
            start_time=start,
            end_time=start + timedelta(hours=1),
            capacity=capacity,
            enrolled_count=enrolled,
            credit_cost=cost,
            credit_pool=pool.value,
            status=status.value,
        )
        db.add(session)
        db.commit()
        return session

    return _make_session


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token({"sub": user.id})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
