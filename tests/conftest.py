"""
Pytest configuration and shared fixtures.

- Sets the environment before the application is imported (secrets, test rate limits)
- Runs every test against a fresh in-memory SQLite database
- Provides user/team factories, bearer headers and a TestClient wired to the test database
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ACCESS_TOKEN_SECRET"] = "test-access-secret"
os.environ["REFRESH_TOKEN_SECRET"] = "test-refresh-secret"

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.database import Base, get_db
from app.core.security import get_password_hash, generate_access_token, CurrentUser
from app.core.rate_limit import reset_rate_limiters
from app.models.user import User, UserRole, RecordingType
from app.models.team import Team, TeamMember
from app.models.time_recording import TimeRecording
from main import app

DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(scope="session")
def password_hash() -> str:
    return get_password_hash(DEFAULT_PASSWORD)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    reset_rate_limiters()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db, password_hash):
    counter = {"n": 0}

    def _make_user(role: UserRole = UserRole.employee, email: str | None = None, **kwargs) -> User:
        counter["n"] += 1
        user = User(
            name=kwargs.pop("name", f"User{counter['n']}"),
            surname=kwargs.pop("surname", "Test"),
            email=email or f"user{counter['n']}@example.com",
            mobile_number=kwargs.pop("mobile_number", "0600000000"),
            password_hash=password_hash,
            role=role,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_team(db):
    def _make_team(manager: User, members=(), name: str = "Team") -> Team:
        team = Team(name=name, id_manager=manager.id)
        db.add(team)
        db.flush()
        for member in members:
            db.add(TeamMember(id_team=team.id, id_user=member.id))
        db.commit()
        db.refresh(team)
        return team

    return _make_team


@pytest.fixture
def add_recording(db):
    def _add_recording(user: User, timestamp: datetime, recording_type: RecordingType) -> TimeRecording:
        recording = TimeRecording(timestamp=timestamp, type=recording_type, id_user=user.id)
        db.add(recording)
        db.commit()
        db.refresh(recording)
        return recording

    return _add_recording


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {generate_access_token(user)}"}


def as_current(user: User) -> CurrentUser:
    return CurrentUser(id=user.id, email=user.email, role=user.role)


def post_refresh(client: TestClient, token: str):
    """POST /auth/refresh with exactly ``token`` as the refresh cookie."""
    client.cookies.clear()
    return client.post("/auth/refresh", headers={"Cookie": f"refreshToken={token}"})


def login(client: TestClient, email: str, password: str = DEFAULT_PASSWORD):
    response = client.post("/auth/login", json={"email": email, "password": password})
    client.cookies.clear()
    return response
