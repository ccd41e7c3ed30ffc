"""
tests/test_health.py -- Integration tests for GET /api/health.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok' when the store answers, 'error' when not
  - No authentication required
"""

from __future__ import annotations

from sqlalchemy.exc import OperationalError


def test_health_returns_200_with_components(client):
    """Health endpoint returns 200 with status, version, and components."""
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_reports_database_error(client, monkeypatch):
    """A failing database ping is reported, not raised."""

    def broken_ping():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(client.app.state.user_store, "ping", broken_ping)
    data = client.get("/api/health").json()
    assert data["components"]["database"] == "error"


def test_health_no_auth_required(client):
    """Health endpoint is accessible without a session cookie."""
    client.cookies.clear()
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
