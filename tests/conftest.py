import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from serenity.api import deps
from serenity.config import get_settings
from serenity.core.rate_limit import InMemoryLoginLimiter
from serenity.db.storage import SQLiteStorage
from serenity.services.seed import create_schema

ADMIN = {"id": 1, "email": "admin@example.com", "role": "admin"}


@pytest.fixture()
def storage():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    storage = SQLiteStorage(engine)
    create_schema(storage)
    try:
        yield storage
    finally:
        storage.dispose()


@pytest.fixture()
def settings(monkeypatch):
    monkeypatch.setenv("ADMIN_REGISTRATION_KEY", "registration-key-123")
    monkeypatch.setenv("ADMIN_INIT_KEY", "init-key-1234567")
    monkeypatch.setenv("DEFAULT_ADMIN_EMAIL", "owner@example.com")
    monkeypatch.setenv("DEFAULT_ADMIN_PASSWORD", "seed-password")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture()
def limiter():
    return InMemoryLoginLimiter()


@pytest.fixture()
def make_client(storage, limiter):
    """Build a ``TestClient`` around the given routers, sharing the test storage."""
    apps = []

    def factory(*mounts, as_admin: bool = True) -> TestClient:
        test_app = FastAPI()
        for router, prefix in mounts:
            test_app.include_router(router, prefix=prefix)
        test_app.dependency_overrides[deps.get_storage] = lambda: storage
        test_app.dependency_overrides[deps.get_login_limiter] = lambda: limiter
        if as_admin:
            test_app.dependency_overrides[deps.get_current_admin] = lambda: dict(ADMIN)
        apps.append(test_app)
        return TestClient(test_app)

    yield factory
    for test_app in apps:
        test_app.dependency_overrides.clear()
