# This project was developed with assistance from AI tools.
"""Shared fixtures: in-memory store and authenticated test clients."""

import pytest
from db import MemoryDocumentStore, get_store
from db.enums import UserRole
from fastapi.testclient import TestClient

from src.core.config import settings
from src.main import app
from src.middleware.auth import get_current_user
from src.schemas.auth import UserContext


@pytest.fixture()
def store():
    """Fresh in-memory document store per test."""
    return MemoryDocumentStore()


@pytest.fixture()
def client(store, monkeypatch):
    """TestClient acting as the dev admin against the test store."""
    monkeypatch.setattr(settings, "AUTH_DISABLED", True)
    monkeypatch.setattr(settings, "AUTO_QUEUE_INTERVAL_SECONDS", 0)
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def sub_admin_client(store, monkeypatch):
    """TestClient acting as a sub admin."""
    monkeypatch.setattr(settings, "AUTO_QUEUE_INTERVAL_SECONDS", 0)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_current_user] = lambda: UserContext(
        user_id="sub-admin-1",
        role=UserRole.SUB_ADMIN,
        email="sub@subx-admin.local",
        name="Sub Admin",
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
