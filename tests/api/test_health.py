from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_reports_checks(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["checks"] == {
        "database": "not_configured",
        "redis": "not_configured",
        "ledger": "in_memory",
    }


def test_ready_without_backends(client: TestClient) -> None:
    assert client.get("/ready").status_code == 200


def test_unknown_route_is_404(client: TestClient) -> None:
    assert client.get("/nope").status_code == 404
