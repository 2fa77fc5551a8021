"""
tests/conftest.py -- Shared fixtures for the user administration tests.

This module provides:
  - _patch_lifespan(): wires test doubles into app.state, bypassing real startup
  - auth_manager: MagicMock(spec=AuthManager), fresh per test
  - client_as: factory returning a TestClient whose requests carry a given
    Principal (or none), with the AuthManager replaced by auth_manager
  - live_client: TestClient over a real UserStore + StoreAuthManager in a
    temporary SQLite file, with real HTTP Basic principal resolution and the
    superuser seeded as neo4j/neo4j

RATE_LIMIT_ENABLED must be set before any api import: the limiter reads
it once at module load.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import ExitStack, asynccontextmanager
from unittest.mock import MagicMock

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.dependencies import get_principal
from auth.manager import AuthManager, StoreAuthManager
from auth.models import SUPERUSER, Principal
from auth.store import UserStore


def _patch_lifespan(user_store, auth_manager):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.auth_manager = auth_manager
        yield

    return test_lifespan


@pytest.fixture
def auth_manager() -> MagicMock:
    return MagicMock(spec=AuthManager)


@pytest.fixture
def client_as(auth_manager: MagicMock) -> Generator[Callable[[Principal | None], TestClient], None, None]:
    """Yield a factory: client_as(principal) -> TestClient authenticated as principal.

    get_principal is overridden, so no credentials need to be sent and the
    user store is never consulted.
    """
    stack = ExitStack()

    def _client(principal: Principal | None) -> TestClient:
        app.dependency_overrides[get_principal] = lambda: principal
        app.router.lifespan_context = _patch_lifespan(MagicMock(), auth_manager)
        return stack.enter_context(TestClient(app, raise_server_exceptions=True))

    with stack:
        yield _client
    app.dependency_overrides.clear()


@pytest.fixture
def live_store(tmp_path) -> Generator[UserStore, None, None]:
    store = UserStore(f"sqlite:///{tmp_path / 'auth.db'}")
    yield store
    store.close()


@pytest.fixture
def live_client(live_store: UserStore) -> Generator[TestClient, None, None]:
    """TestClient over the real auth stack. Log in with auth=("neo4j", "neo4j")."""
    manager = StoreAuthManager(live_store)
    manager.ensure_user(SUPERUSER, "neo4j")
    app.dependency_overrides.clear()
    app.router.lifespan_context = _patch_lifespan(live_store, manager)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
