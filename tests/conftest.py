"""
Shared test fixtures — throwaway SQLite database, test client, auth helpers.
"""

import os
import pytest
from fastapi.testclient import TestClient

# Configure before importing app modules
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["RUN_MIGRATIONS"] = "false"

from archicalc import models
from archicalc.auth import hash_password
from archicalc.config import settings
from archicalc.database import Base, SessionLocal, engine
from archicalc.main import app
from archicalc.notifications import Notifier
from archicalc.preferences import SettingsSync, ThemeApplier
from archicalc.prices import PriceSync
from archicalc.store import DataStore


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def history_file(tmp_path, monkeypatch):
    """Keep the local history file out of the working tree."""
    path = tmp_path / "history.json"
    monkeypatch.setattr(settings, "HISTORY_PATH", str(path))
    return path


@pytest.fixture
def client():
    """FastAPI test client — startup builds a fresh service container per test."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store():
    return DataStore(SessionLocal)


@pytest.fixture
def make_user(db):
    """Create a user row directly; returns its id."""
    def _make(email="builder@obra.com"):
        user = models.User(email=email, password_hash="not-a-real-hash")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user.id
    return _make


@pytest.fixture
def user_id(make_user):
    return make_user()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def price_sync(store, notifier):
    return PriceSync(store, notifier)


@pytest.fixture
def theme():
    return ThemeApplier(lambda: "dark")


@pytest.fixture
def settings_sync(store, notifier, theme):
    return SettingsSync(store, notifier, theme)


@pytest.fixture
def auth_headers(client):
    """Register a test user and return auth headers."""
    response = client.post("/api/auth/register", json={
        "email": "test@arquiteto.com",
        "password": "strongpassword123",
    })
    assert response.status_code == 200
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_headers(client):
    """A second registered user."""
    response = client.post("/api/auth/register", json={
        "email": "other@engenharia.com",
        "password": "anotherpassword456",
    })
    assert response.status_code == 200
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def password_user(db):
    """A user with a real password hash, for login tests."""
    user = models.User(email="login@obra.com", password_hash=hash_password("mypassword"))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
