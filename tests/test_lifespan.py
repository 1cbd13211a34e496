"""
tests/test_lifespan.py -- The real application lifespan, end to end.

Covers:
  - startup builds the session authority and stores from settings
  - the background sweep evicts expired sessions without any request touching them
  - shutdown cancels the sweep task and waits for it to finish

Runs the production lifespan instead of the patched one from conftest, with
settings pointed at a private shared-memory database, a 1ms session TTL and
a 20ms sweep interval.
"""

from __future__ import annotations

import time
import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

import api.main
from api.main import app, lifespan
from core.config import Settings


@pytest.fixture
def fast_sweep_settings(monkeypatch) -> Settings:
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite:///file:test_taskboard_lifespan_{uuid.uuid4().hex[:8]}?mode=memory&cache=shared&uri=true",
        session_ttl=timedelta(milliseconds=1),
        session_sweep_interval=timedelta(milliseconds=20),
    )
    monkeypatch.setattr(api.main, "settings", settings)
    monkeypatch.setattr(app.router, "lifespan_context", lifespan)
    return settings


def _wait_for_empty(sessions, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while len(sessions) and time.monotonic() < deadline:
        time.sleep(0.02)


def test_sweep_task_evicts_expired_sessions(fast_sweep_settings):
    with TestClient(app, raise_server_exceptions=True) as client:
        resp = client.post(
            "/api/v1/auth/register",
            json={"username": "sweepme", "email": "sweepme@example.com", "password": "pa55word"},
        )
        assert resp.status_code == 201

        sessions = client.app.state.sessions
        assert sessions.ttl == timedelta(milliseconds=1)
        _wait_for_empty(sessions)
        assert len(sessions) == 0

        sweep_task = client.app.state.sweep_task
        assert not sweep_task.done()

    assert sweep_task.done()
    assert sweep_task.cancelled()


def test_shutdown_stops_sweep_task_with_no_traffic(fast_sweep_settings):
    with TestClient(app, raise_server_exceptions=True) as client:
        sweep_task = client.app.state.sweep_task
        time.sleep(0.05)  # let a few sweep iterations run
        assert not sweep_task.done()

    assert sweep_task.done()
