"""Bearer token handling shared by every protected endpoint."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token
from vcanchor.models.principal import Principal
from vcanchor.services import token_service

PROTECTED = "/v1/admin/credentials/pending-anchors"


def test_missing_token(client: TestClient) -> None:
    resp = client.get(PROTECTED)
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


def test_garbage_token(client: TestClient) -> None:
    resp = client.get(PROTECTED, headers=auth("total-garbage"))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_expired_token(client: TestClient) -> None:
    past = datetime.now(UTC) - timedelta(hours=1)
    token = jwt.encode(
        {
            "sub": "ops-1",
            "iss": token_service.ISSUER,
            "aud": token_service.AUDIENCE,
            "exp": past,
            "iat": past - timedelta(minutes=15),
            "jti": "x",
            "roles": ["admin"],
        },
        token_service._private_key,
        algorithm=token_service.ALGORITHM,
    )
    resp = client.get(PROTECTED, headers=auth(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"


def test_wrong_audience_rejected() -> None:
    token = jwt.encode(
        {
            "sub": "u",
            "iss": token_service.ISSUER,
            "aud": "someone-else",
            "exp": datetime.now(UTC) + timedelta(minutes=5),
            "iat": datetime.now(UTC),
            "jti": "x",
        },
        token_service._private_key,
        algorithm=token_service.ALGORITHM,
    )
    with pytest.raises(jwt.InvalidAudienceError):
        token_service.decode_access_token(token)


def test_token_claims_round_trip() -> None:
    claims = token_service.decode_access_token(
        mint_token("cand-9", ["candidate", "issuer"], name="Grace")
    )
    assert claims["sub"] == "cand-9"
    assert claims["roles"] == ["candidate", "issuer"]
    assert claims["name"] == "Grace"


def test_default_role_is_candidate() -> None:
    claims = token_service.decode_access_token(
        token_service.create_access_token(sub="u")
    )
    assert claims["roles"] == ["candidate"]


def test_principal_from_claims() -> None:
    principal = Principal.from_claims({"sub": "u-1", "roles": ["issuer"], "name": "Ida"})
    assert principal.holds("candidate", "issuer")
    assert not principal.holds("admin")
    assert not principal.is_admin
    assert principal.name == "Ida"


def test_principal_without_roles_claim() -> None:
    principal = Principal.from_claims({"sub": "u-2"})
    assert principal.roles == frozenset()
    assert principal.name == ""
