"""
tests/conftest.py -- Shared test fixtures for Taskboard integration tests.

This module provides:
  - _make_test_stores(): creates an isolated in-memory DB for users + tasks
  - _patch_lifespan(): wires test stores and a SessionAuthority into app.state,
    bypassing real startup
  - api_client: TestClient plus a logged-in user's session id
  - short_ttl_client: TestClient whose sessions expire after one millisecond

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Each fixture names its database after the requesting test module so modules
never see each other's rows.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import NamedTuple

# Set before any core import so get_settings() never picks up a developer's
# DATABASE_URL or LOG_LEVEL.
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///file:test_taskboard_unused?mode=memory&cache=shared&uri=true"
os.environ["LOG_LEVEL"] = "debug"

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.passwords import hash_password
from auth.sessions import SessionAuthority
from auth.store import UserStore
from tasks.store import TaskStore

TEST_PASSWORD = "testpass123"


class ApiClient(NamedTuple):
    client: TestClient
    token: str
    user_id: int


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, TaskStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules don't
                   share state (e.g. the module name).
    """
    db_url = f"sqlite:///file:test_taskboard_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=db_url), TaskStore(db_url=db_url)


def _patch_lifespan(sessions: SessionAuthority, user_store: UserStore, task_store: TaskStore):
    """Return an async context manager that replaces the real lifespan.

    The sweep_task is a long-sleeping coroutine that keeps asyncio happy
    (a real asyncio.Task is required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.sessions = sessions
        app.state.user_store = user_store
        app.state.task_store = task_store
        app.state.sweep_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await app.state.sweep_task

    return test_lifespan


def _suffix(request: pytest.FixtureRequest, label: str) -> str:
    return f"{request.module.__name__.rsplit('.', 1)[-1]}_{label}"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiClient, None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use isolated in-memory stores.
    The test user is created directly in the store and given a session
    before the client starts.
    """
    user_store, task_store = _make_test_stores(_suffix(request, "api"))
    sessions = SessionAuthority(ttl=timedelta(hours=1))

    uid = user_store.create_user(
        User(
            username="testuser",
            email="testuser@example.com",
            hashed_password=hash_password(TEST_PASSWORD),
        )
    )
    token = sessions.issue(uid)

    app.router.lifespan_context = _patch_lifespan(sessions, user_store, task_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiClient(client, token, uid)

    task_store.close()
    user_store.close()


@pytest.fixture
def short_ttl_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient whose SessionAuthority issues 1ms sessions."""
    user_store, task_store = _make_test_stores(_suffix(request, f"short_{uuid.uuid4().hex[:8]}"))
    sessions = SessionAuthority(ttl=timedelta(milliseconds=1))

    app.router.lifespan_context = _patch_lifespan(sessions, user_store, task_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    task_store.close()
    user_store.close()
