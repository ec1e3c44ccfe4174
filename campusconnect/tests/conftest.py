from datetime import datetime

import fakeredis
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from campusconnect.core.config import Settings
from campusconnect.core.security import create_access_token, hash_password
from campusconnect.main import create_app
from campusconnect.models.events import Event
from campusconnect.models.users import User, UserRole

TEST_PASSWORD = "secret123"


@pytest.fixture
def settings(tmp_path) -> Settings:
    # A file-backed SQLite database so concurrent requests get their own connections
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        redis_url="redis://localhost:6379/15",
        jwt_secret="test-secret",
        lock_blocking_timeout_seconds=10,
        log_level="WARNING",
    )


@pytest.fixture
def fake_redis() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def redis_client(fake_redis):
    """Alias used by tests that only need a lock backend."""
    return fake_redis


@pytest.fixture
def app(settings, fake_redis) -> FastAPI:
    return create_app(settings, redis_client=fake_redis)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session_factory(app):
    return app.state.session_factory


@pytest.fixture
def db_session(session_factory):
    db: Session = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(db_session):
    created = []

    def _make_user(name: str = "Student", role: str = UserRole.USER.value, roll_number: str | None = None) -> User:
        user = User(
            email=f"user{len(created) + 1}-{role.lower()}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            name=name,
            role=role,
            roll_number=roll_number,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        created.append(user)
        return user

    return _make_user


@pytest.fixture
def make_event(db_session):
    def _make_event(title: str = "Tech Talk", capacity: int = 10, **overrides) -> Event:
        fields = {
            "title": title,
            "description": "An evening talk",
            "venue": "Main Auditorium",
            "date": datetime(2099, 1, 1),
            "time": "10:00 AM",
            "capacity": capacity,
            "organizer": "CS Department",
        }
        fields.update(overrides)
        event = Event(**fields)
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def auth_headers(settings):
    def _auth_headers(user: User) -> dict[str, str]:
        token = create_access_token(user.id, user.role, settings)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def student(make_user) -> User:
    return make_user("Student One", roll_number="CS001")


@pytest.fixture
def admin(make_user) -> User:
    return make_user("Admin User", role=UserRole.ADMIN.value)


@pytest.fixture
def student_headers(student, auth_headers) -> dict[str, str]:
    return auth_headers(student)


@pytest.fixture
def admin_headers(admin, auth_headers) -> dict[str, str]:
    return auth_headers(admin)
