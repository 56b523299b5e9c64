from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.conftest import ISSUER_ID, auth
from vcanchor.services.ledger_client import ledger_client


@pytest.fixture
def held_credential(
    client: TestClient, candidate_token: str, issuer_token: str, team, issuer
) -> tuple[int, str]:
    """A credential whose mint was sent but never confirmed."""
    cid = client.post(
        "/v1/credentials",
        json={
            "title": "Hackathon Winner",
            "category": "award",
            "type": "prize",
            "file_url": "https://example.com/prize.png",
            "issuer_id": ISSUER_ID,
        },
        headers=auth(candidate_token),
    ).json()["id"]
    ledger_client.hold_next_mint()
    resp = client.post(
        f"/v1/issuer/credentials/{cid}/approve", headers=auth(issuer_token)
    )
    assert resp.status_code == 504
    return cid, resp.json()["tx_hash"]


def test_admin_endpoints_require_admin(client: TestClient, issuer_token: str) -> None:
    resp = client.get(
        "/v1/admin/credentials/pending-anchors", headers=auth(issuer_token)
    )
    assert resp.status_code == 403


def test_pending_anchor_listed(
    client: TestClient, admin_token: str, held_credential: tuple[int, str]
) -> None:
    cid, _ = held_credential
    resp = client.get("/v1/admin/credentials/pending-anchors", headers=auth(admin_token))
    assert resp.status_code == 200
    assert [c["id"] for c in resp.json()] == [cid]
    assert resp.json()[0]["pending_anchor"] is True


def test_reconcile_pending_then_anchored(
    client: TestClient, admin_token: str, held_credential: tuple[int, str]
) -> None:
    cid, tx_hash = held_credential

    resp = client.post(
        f"/v1/admin/credentials/{cid}/reconcile", headers=auth(admin_token)
    )
    assert resp.status_code == 200
    assert resp.json()["outcome"] == "pending"

    ledger_client.include(tx_hash)
    resp = client.post(
        f"/v1/admin/credentials/{cid}/reconcile", headers=auth(admin_token)
    )
    body = resp.json()
    assert body["outcome"] == "anchored"
    assert body["tx_hash"] == tx_hash
    assert body["credential"]["status"] == "verified"
    assert body["credential"]["pending_anchor"] is False

    listed = client.get(
        "/v1/admin/credentials/pending-anchors", headers=auth(admin_token)
    ).json()
    assert listed == []


def test_reconcile_reverted(
    client: TestClient, admin_token: str, held_credential: tuple[int, str]
) -> None:
    cid, tx_hash = held_credential
    ledger_client.revert(tx_hash)

    resp = client.post(
        f"/v1/admin/credentials/{cid}/reconcile",
        json={"force_clear": False},
        headers=auth(admin_token),
    )

    assert resp.json()["outcome"] == "cleared"
    assert resp.json()["credential"]["status"] == "pending"


def test_reconcile_nothing_pending(
    client: TestClient, admin_token: str, candidate_token: str
) -> None:
    cid = client.post(
        "/v1/credentials",
        json={
            "title": "Side project",
            "category": "project",
            "type": "app",
            "file_url": "https://example.com",
        },
        headers=auth(candidate_token),
    ).json()["id"]
    resp = client.post(
        f"/v1/admin/credentials/{cid}/reconcile", headers=auth(admin_token)
    )
    assert resp.status_code == 409
    assert resp.json() == {"detail": "Credential has no pending anchor."}
