"""
tests/conftest.py -- Shared test fixtures for APIREST tests.

This module provides:
  - make_test_store(): isolated in-memory user store
  - _patch_lifespan(): wires a test store into app.state, bypassing real startup
  - api_client: TestClient plus one registered account for integration tests
  - store / service: in-memory store and service for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the TestClient fixtures because sync route handlers run in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

DEBUG and RATE_LIMIT_ENABLED must be set before any app import so
get_settings() auto-generates SECRET_KEY and the limiter is built disabled.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before any core/auth/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite:///file:apirest_default?mode=memory&cache=shared&uri=true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from core.config import get_settings
from users.models import Phone
from users.service import UserService
from users.store import UserStore

PASSWORD = "hunter22"


@dataclass
class Account:
    """A user registered by a fixture, with the plaintext password kept for login tests."""

    id: str
    email: str
    password: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    return UserStore(db_url=f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true")


def make_service(store: UserStore) -> UserService:
    return UserService(store, password_pattern=get_settings().password_pattern)


def _patch_lifespan(store: UserStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = store
        app.state.user_service = make_service(store)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def service(store: UserStore) -> UserService:
    return make_service(store)


# ---------------------------------------------------------------------------
# Integration fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, Account], None, None]:
    """Yield (client, account) for API integration tests.

    The account is registered through the service before the client starts,
    so its token is the one persisted on the user.
    """
    store = make_test_store(request.module.__name__.replace(".", "_"))
    user = make_service(store).register(
        name="Juan Rodriguez",
        email="juan@rodriguez.org",
        password=PASSWORD,
        phones=[Phone(number="1234567", citycode="1", country_code="57")],
    )
    account = Account(id=str(user.id), email=user.email, password=PASSWORD, token=user.token)

    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, account

    store.close()
