"""
tests/test_session_expiry.py -- End-to-end session expiry through the HTTP gate.

Kept in its own module: short_ttl_client rewires app.state, so it must not
share a module with the module-scoped api_client.
"""

from __future__ import annotations

import time


def test_token_expires_after_ttl(short_ttl_client):
    client = short_ttl_client
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": "ephemeral", "email": "ephemeral@example.com", "password": "pa55word"},
    )
    assert resp.status_code == 201
    token = resp.json()["token"]

    time.sleep(0.005)

    resp = client.get("/api/v1/auth/me", headers={"Authorization": token})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "invalid_session"
    assert len(client.app.state.sessions) == 0


def test_expired_token_cannot_reach_tasks(short_ttl_client):
    client = short_ttl_client
    token = client.post(
        "/api/v1/auth/register",
        json={"username": "fleeting", "email": "fleeting@example.com", "password": "pa55word"},
    ).json()["token"]

    time.sleep(0.005)

    resp = client.get("/api/v1/tasks", headers={"Authorization": token})
    assert resp.status_code == 401
