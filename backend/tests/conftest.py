import os
import tempfile
from pathlib import Path

# The app module builds its engine at import time; point it at a throwaway file before that happens.
os.environ.setdefault("DATABASE_URL", f"sqlite+pysqlite:///{Path(tempfile.mkdtemp()) / 'confsched-test.db'}")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from confsched.api.deps import get_db, get_email_transport
from confsched.core.security import create_access_token
from confsched.db.base import Base
from confsched.main import app
from confsched.models.scheduling_parameters import SchedulingParametersRecord
from confsched.models.submission import Submission
from confsched.models.user import User, UserRole
from confsched.services.locks import schedule_locks
from confsched.services.schedule_store import memory_schedule_store


class RecordingTransport:
    """Email transport double: records deliveries, raises for addresses listed in ``failing``."""

    def __init__(self):
        self.sent: list[dict] = []
        self.failing: dict[str, Exception] = {}

    def send(self, *, to, subject, body):
        if to in self.failing:
            raise self.failing[to]
        self.sent.append({"to": to, "subject": subject, "body": body})


@pytest.fixture(autouse=True)
def _reset_schedule_state():
    memory_schedule_store.clear()
    schedule_locks.clear()
    yield
    memory_schedule_store.clear()
    schedule_locks.clear()


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def client(session_factory, transport):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_transport] = lambda: transport

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session):
    def _make_user(role: UserRole, *, email: str, name: str | None = None, user_id: str | None = None) -> User:
        user = User(name=name or email.split("@")[0], email=email, role=role, is_active=True)
        if user_id:
            user.id = user_id
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_submission(db_session):
    def _make_submission(
        submission_id: str,
        *,
        conference_id: str = "C1",
        status: str = "accepted",
        author_ids: list[str] | None = None,
    ) -> Submission:
        submission = Submission(
            id=submission_id,
            conference_id=conference_id,
            title=f"Paper {submission_id}",
            status=status,
            author_ids=list(author_ids or []),
        )
        db_session.add(submission)
        db_session.commit()
        return submission

    return _make_submission


@pytest.fixture()
def store_parameters(db_session):
    def _store_parameters(
        conference_id: str = "C1",
        *,
        dates: list[str] | None = None,
        session_length: int | None = 60,
        start: str | None = "09:00",
        end: str | None = "11:00",
        rooms: list[str] | None = None,
    ) -> SchedulingParametersRecord:
        record = SchedulingParametersRecord(
            conference_id=conference_id,
            conference_dates=list(dates if dates is not None else ["2026-05-10"]),
            session_length_minutes=session_length,
            daily_start_time=start,
            daily_end_time=end,
            available_room_ids=list(rooms if rooms is not None else ["R1", "R2"]),
        )
        db_session.add(record)
        db_session.commit()
        return record

    return _store_parameters


@pytest.fixture()
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        token = create_access_token(user.id, role=user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
