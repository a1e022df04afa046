from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.db import InMemoryDB, db
from app.main import app
from app.routes.auth import get_auth_service
from app.services.auth_service import AuthService
from app.services.sessions import InMemorySessionStore
from app.services.users import UserService


class FakeClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def reset_state(monkeypatch):
    monkeypatch.setattr(settings, "AUDIT_LOG_FILE", "")
    monkeypatch.setattr(settings, "QR_RENDER_INLINE", False)
    db.clear()
    yield
    app.dependency_overrides.clear()
    db.clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def database():
    return InMemoryDB()


@pytest.fixture
def store(database):
    return InMemorySessionStore(database)


@pytest.fixture
def service(store, clock, database):
    return AuthService(store=store, clock=clock, users=UserService(database))


@pytest.fixture
def client(service):
    app.dependency_overrides[get_auth_service] = lambda: service
    with TestClient(app) as c:
        yield c
