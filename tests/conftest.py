import os
from datetime import datetime, timezone

# Configure the app before importing it: in-memory database, cheap bcrypt, no rate limit in practice.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT", "10000 per minute")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app import models  # noqa: E402
from app.auth import PasswordHasher  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402

# In-memory SQLite database shared across connections via StaticPool.
engine_test = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine_test,
)


class FakeClock:
    """Settable replacement for ``sessions.utcnow``."""

    def __init__(self, now=None):
        self.now = now or datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


class InMemoryCredentialStore:
    def __init__(self):
        self.users = {}
        self.lookups = 0

    def get_by_email(self, email):
        self.lookups += 1
        return self.users.get(email)

    def add(self, name, email, password_hash):
        user = models.User(
            id=len(self.users) + 1, name=name, email=email, password=password_hash
        )
        self.users[email] = user
        return user


class InMemoryMeasurementStore:
    def __init__(self):
        self.records = []

    def add(self, **fields):
        self.records.append(fields)
        return models.HealthData(**fields)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture()
def credential_store():
    return InMemoryCredentialStore()


@pytest.fixture()
def measurement_store():
    return InMemoryMeasurementStore()


@pytest.fixture()
def session_factory():
    return TestingSessionLocal


@pytest.fixture()
def db_session():
    """Provide a fresh test database session for each test.

    The schema is dropped and recreated for every test function,
    ensuring complete isolation between tests.
    """
    Base.metadata.drop_all(bind=engine_test)
    Base.metadata.create_all(bind=engine_test)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db_session):
    """TestClient wired to the in-memory database and a clean session store."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.session_manager.backend.clear()

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
    app.state.session_manager.backend.clear()


@pytest.fixture()
def user_factory(db_session, hasher):
    """Create users directly in the test database, bypassing the HTTP layer."""

    def _create_user(email: str, name: str, password: str = "rahasia123") -> models.User:
        user = models.User(name=name, email=email, password=hasher.hash(password))
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user
