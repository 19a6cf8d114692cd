"""Pytest configuration and fixtures."""

import os
import tempfile
from datetime import datetime, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TOKEN_SWEEP_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="account-service-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, enable_sqlite_foreign_keys, get_db, utcnow
from app.exceptions import EmailDispatchFailure
from app.models.token import Token  # noqa: F401
from app.models.user import User
from app.security import hash_password
from app.services.mailer import EmailDispatcher, get_email_dispatcher
from app.services.tokens import get_token_service


class RecordingMailer(EmailDispatcher):
    """Collects sent messages; set ``fail`` to simulate a rejected dispatch."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail = False

    def send(self, to_address: str, subject: str, body: str) -> None:
        if self.fail:
            raise EmailDispatchFailure()
        self.sent.append({"to": to_address, "subject": subject, "body": body})

    @property
    def last(self) -> dict | None:
        return self.sent[-1] if self.sent else None


class Clock:
    """Mutable clock for moving token time forward."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or utcnow()

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="mailer")
def mailer_fixture() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture(name="clock")
def clock_fixture():
    """Install a controllable clock on the shared token service."""
    service = get_token_service()
    original = service.clock
    clock = Clock()
    service.clock = clock
    yield clock
    service.clock = original


@pytest.fixture(name="client")
def client_fixture(db_session: Session, mailer: RecordingMailer):
    """Create a test client with overridden DB and mail dependencies and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_dispatcher] = lambda: mailer
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


def create_user(
    db: Session,
    username: str = "user1",
    email: str = "user1@mail.com",
    password: str = "P4ssword",
    inactive: bool = False,
) -> User:
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        inactive=inactive,
        activation_token="a1b2c3d4e5f6a7b8" if inactive else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(name="make_user")
def make_user_fixture(db_session: Session):
    """Factory for extra users: make_user(username=..., email=..., inactive=...)."""

    def _make(**kwargs) -> User:
        return create_user(db_session, **kwargs)

    return _make


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Create an active user and return its data with a session token."""
    user = create_user(db_session)
    token = get_token_service().issue(db_session, user.id)
    return {
        "user_id": user.id,
        "username": user.username,
        "email": user.email,
        "password": "P4ssword",
        "token": token,
    }
