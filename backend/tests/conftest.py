from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from taskboard.config import Settings
from taskboard.db import get_engine
from taskboard.main import create_app
from taskboard.models import Base, User


TEST_SECRET = "test-suite-signing-key-0123456789abcdef"


class TickingClock:
    """Returns a later time on every call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0), step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        self.now += self.step
        return self.now


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        redis_url="redis://127.0.0.1:1/0",
        log_level="WARNING",
    )


@pytest.fixture
def db():
    engine = get_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    with Session(engine) as s:
        yield s
    engine.dispose()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def make_user(db):
    def _make(email: str = "owner@x.com", name: str = "Owner") -> User:
        u = User(name=name, email=email, password_hash="x")
        db.add(u)
        db.commit()
        db.refresh(u)
        return u

    return _make


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


def register(client: TestClient, email: str = "a@x.com", password: str = "secret1", name: str = "Alice"):
    return client.post("/auth/register", json={"name": name, "email": email, "password": password})


def bearer_for(client: TestClient, email: str, password: str = "secret1") -> dict[str, str]:
    """Register a user and return auth headers, leaving the cookie jar empty."""
    r = register(client, email=email, password=password)
    assert r.status_code == 201
    token = r.cookies["session"]
    client.cookies.clear()
    return {"Authorization": f"Bearer {token}"}
