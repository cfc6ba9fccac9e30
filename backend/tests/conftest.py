"""Pytest fixtures — file-backed SQLite database per test for isolated runs."""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_USER_IDS"] = "test-admin"

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from evalgate.database import Base, get_db
from evalgate.main import app

ADMIN_ID = "test-admin"
ADMIN_HEADERS = {"X-User-Id": ADMIN_ID}

# Import all models so they register with Base.metadata
from evalgate.models.user import User                                # noqa: F401
from evalgate.models.guide import GuideProfile, GuideStatus          # noqa: F401
from evalgate.models.evaluation_request import EvaluationRequest     # noqa: F401
from evalgate.models.request_transition import RequestTransition     # noqa: F401
from evalgate.models.notification import Notification               # noqa: F401


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory for tests that need more than one concurrent session."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: build users and guides directly in the database
# ---------------------------------------------------------------------------
def make_user(db, username: str, display_name: str = None, **fields) -> User:
    """Insert a user and return it."""
    user = User(username=username, display_name=display_name or username.title(), **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_guide(db, username: str, status: GuideStatus = GuideStatus.approved,
               latitude: float = None, longitude: float = None, **fields) -> User:
    """Insert a user holding a guide credential and return the user."""
    user = make_user(db, username, **fields)
    db.add(GuideProfile(user_id=user.user_id, status=status, latitude=latitude, longitude=longitude))
    db.commit()
    return user


def as_caller(user) -> dict:
    """Identity header the auth gateway would attach for ``user``."""
    return {"X-User-Id": user.user_id}


# ---------------------------------------------------------------------------
# Helpers: the same records through the HTTP API
# ---------------------------------------------------------------------------
def create_test_user(client, username: str = "test_user", name: str = "Test User", **fields) -> dict:
    """Create a user via the API and return the JSON response."""
    resp = client.post("/api/users/", json={"username": username, "display_name": name, **fields})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_approved_guide(client, username: str = "test_guide", name: str = "Test Guide",
                          latitude: float = None, longitude: float = None, **fields) -> dict:
    """Create a user, register a guide credential and approve it; returns the user JSON."""
    user = create_test_user(client, username=username, name=name)
    resp = client.post("/api/guides/", json={
        "user_id": user["user_id"], "latitude": latitude, "longitude": longitude, **fields,
    }, headers=caller(user))
    assert resp.status_code == 201, resp.text
    resp = client.patch(
        f"/api/guides/{user['user_id']}/status", json={"status": "approved"}, headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200, resp.text
    return user


def caller(user: dict) -> dict:
    """Identity header for a user returned by the API helpers."""
    return {"X-User-Id": user["user_id"]}
