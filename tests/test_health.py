"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok'; 503 'degraded' when the DB is down
  - No authentication required
  - X-Request-ID is echoed or generated
"""

from __future__ import annotations


def test_health_returns_200_with_components(api_client):
    """Health endpoint returns 200 with status, version, and components."""
    client, _, _ = api_client
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert "version" in data
    assert data["components"]["database"] == "ok"
    assert set(data["components"]) == {"database"}


def test_health_no_auth_required(api_client):
    """Health endpoint is accessible without any authentication headers."""
    client, _, _ = api_client
    resp = client.get("/api/v1/health", headers={})
    assert resp.status_code == 200


def test_health_reports_degraded_database(api_client, monkeypatch):
    client, _, _ = api_client
    monkeypatch.setattr(client.app.state.user_store, "ping", lambda: False)
    resp = client.get("/api/v1/health")
    assert resp.status_code == 503
    assert resp.json()["status"] == "degraded"
    assert resp.json()["components"]["database"] == "unavailable"


def test_request_id_is_echoed(api_client):
    client, _, _ = api_client
    resp = client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["x-request-id"] == "abc-123"


def test_request_id_is_generated(api_client):
    client, _, _ = api_client
    resp = client.get("/api/v1/health")
    assert len(resp.headers["x-request-id"]) == 32
