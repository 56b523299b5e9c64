from __future__ import annotations

import json

from fastapi.testclient import TestClient

from tests.conftest import ISSUER_ID, TEAM_DID, auth, mint_token
from vcanchor.services.ledger_client import ledger_client

BODY = {
    "title": "BSc Computer Science",
    "category": "education",
    "type": "degree",
    "file_url": "https://example.com/diploma.pdf",
    "issuer_id": ISSUER_ID,
}


def _submit(client: TestClient, token: str, **overrides):
    return client.post("/v1/credentials", json={**BODY, **overrides}, headers=auth(token))


def test_submit_requires_auth(client: TestClient) -> None:
    resp = client.post("/v1/credentials", json=BODY)
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authenticated"


def test_submit_requires_candidate_role(client: TestClient, issuer_token: str) -> None:
    resp = _submit(client, issuer_token)
    assert resp.status_code == 403


def test_submit_pending(client: TestClient, candidate_token: str, team, issuer) -> None:
    resp = _submit(client, candidate_token)
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["issuer_id"] == ISSUER_ID
    assert body["vc_json"] is None
    assert body["pending_anchor"] is False
    assert body["proof_type"] == "none"


def test_submit_without_team_did(client: TestClient, candidate_token: str, issuer) -> None:
    resp = _submit(client, candidate_token)
    assert resp.status_code == 409
    assert resp.json() == {
        "detail": "Create your team DID before submitting credentials to an issuer."
    }


def test_submit_invalid_url(client: TestClient, candidate_token: str) -> None:
    resp = _submit(client, candidate_token, file_url="javascript:alert(1)", issuer_id=None)
    assert resp.status_code == 422
    assert resp.json() == {"detail": "Invalid URL"}


def test_submit_missing_fields_is_request_validation(
    client: TestClient, candidate_token: str
) -> None:
    resp = client.post(
        "/v1/credentials", json={"title": "x"}, headers=auth(candidate_token)
    )
    assert resp.status_code == 422


def test_get_credential_visibility(
    client: TestClient, candidate_token: str, issuer_token: str, team, issuer
) -> None:
    cid = _submit(client, candidate_token).json()["id"]

    assert client.get(f"/v1/credentials/{cid}", headers=auth(candidate_token)).status_code == 200
    assert client.get(f"/v1/credentials/{cid}", headers=auth(issuer_token)).status_code == 200

    stranger = mint_token("someone", ["candidate"])
    resp = client.get(f"/v1/credentials/{cid}", headers=auth(stranger))
    assert resp.status_code == 403


def test_get_missing_credential(client: TestClient, admin_token: str) -> None:
    resp = client.get("/v1/credentials/999", headers=auth(admin_token))
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Credential not found."}


def test_public_verify_after_approval(
    client: TestClient, candidate_token: str, issuer_token: str, team, issuer
) -> None:
    ledger_client.set_next_token_id(42)
    cid = _submit(client, candidate_token).json()["id"]
    client.post(f"/v1/issuer/credentials/{cid}/approve", headers=auth(issuer_token))

    resp = client.get(f"/v1/credentials/{cid}/verify")

    assert resp.status_code == 200
    body = resp.json()
    assert body["token_id"] == "42"
    assert body["valid"] is True
    assert body["expected_hash"] == body["onchain_hash"]


def test_public_verify_unanchored(
    client: TestClient, candidate_token: str, team, issuer
) -> None:
    cid = _submit(client, candidate_token).json()["id"]
    resp = client.get(f"/v1/credentials/{cid}/verify")
    assert resp.status_code == 409
    assert resp.json() == {"detail": "Credential has not been anchored."}


def test_end_to_end_issuer_seven_token_forty_two(
    client: TestClient, candidate_token: str, issuer_token: str, team, issuer
) -> None:
    ledger_client.set_next_token_id(42)
    cid = _submit(client, candidate_token).json()["id"]

    resp = client.post(
        f"/v1/issuer/credentials/{cid}/approve", headers=auth(issuer_token)
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Credential verified and anchored on-chain."
    assert body["token_id"] == "42"
    assert body["credential"]["status"] == "verified"
    wrapper = json.loads(body["credential"]["vc_json"])
    assert wrapper["tokenId"] == "42"
    assert wrapper["vc"]["credentialSubject"]["id"] == TEAM_DID
    assert wrapper["vc"]["credentialSubject"]["candidateName"] == "Ada Lovelace"
