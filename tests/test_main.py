from __future__ import annotations

from fastapi.testclient import TestClient

from portal.main import app

client = TestClient(app)


def test_health_returns_ok() -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_docs_disabled_outside_dev() -> None:
    assert client.get("/docs").status_code == 404


def test_every_resource_router_is_mounted() -> None:
    paths = set(app.openapi()["paths"])
    for expected in (
        "/auth/login",
        "/auth/admin-setup",
        "/organizations",
        "/organizations/{organization_id}/quota",
        "/projects",
        "/invitations/validate",
        "/invitations/complete",
        "/contracts",
        "/admin/stats",
        "/ready",
    ):
        assert expected in paths


def test_metrics_route_is_mounted_but_hidden_from_schema() -> None:
    assert "/metrics" not in app.openapi()["paths"]
    assert client.get("/metrics").status_code == 200


def test_cors_allows_portal_frontend() -> None:
    resp = client.options(
        "/auth/login",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"
