from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from tasktrack import config, timeutil
from tasktrack.database import build_engine, create_tables, get_db
from tasktrack.main import app


class FakeClock:
    """Stands in for timeutil.utcnow; only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture()
def clock(monkeypatch):
    fake = FakeClock(datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc))
    monkeypatch.setattr(timeutil, "utcnow", fake)
    return fake


@pytest.fixture()
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'tasks.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def time_tracking(monkeypatch):
    monkeypatch.setattr(config, "ENABLE_TIME_TRACKING", True)


@pytest.fixture()
def make_task(client):
    def _make(title="Ship release"):
        response = client.post("/api/tasks", json={"title": title})
        assert response.status_code == 201
        return response.json()

    return _make
