# tests/conftest.py
# PURPOSE: create a TestClient and override DB dependency to use a temp SQLite file.

# Ensure project root is on sys.path so `import taskmaster` works when running pytest.
import sys, os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Settings are read at import time: no schema creation on the default DB,
# a known cron secret, and reminder matching in UTC.
os.environ["DB_CREATE_ALL"] = "false"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["REMINDER_TIMEZONE"] = "UTC"

import tempfile
import pytest
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from taskmaster.db import Base, make_engine  # DB metadata
from taskmaster.main import app  # FastAPI app
from taskmaster.push import get_dispatcher
from taskmaster.rate_limit import limiter
from taskmaster.store_db import get_db  # original dependency to override

from fakes import FakeDispatcher


@pytest.fixture()
def session_factory():
    # Temporary SQLite file per test, with foreign keys enforced like production
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    engine = make_engine(f"sqlite:///{tmp.name}")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    yield TestingSessionLocal

    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    os.unlink(tmp.name)


@pytest.fixture()
def db(session_factory):
    """A bare session for store-level tests."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def dispatcher():
    return FakeDispatcher()


@pytest.fixture()
def client(session_factory, dispatcher):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    limiter.reset()

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def signed_in(client):
    """Register a device and return headers identifying it."""
    r = client.post("/api/auth", json={"deviceId": "device-alice"})
    assert r.status_code == 200
    return {"X-Device-ID": "device-alice"}
