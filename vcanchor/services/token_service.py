"""JWT access token validation (ES256).

This service never authenticates users itself; tokens are issued upstream
and only verified here.  create_access_token exists for tests and local
tooling (scripts/demo_anchor_flow.py).

Key management: without JWT_PUBLIC_KEY_PEM an ephemeral EC key pair is
generated on import, which is enough for dev and tests.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from vcanchor.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "vcanchor"
AUDIENCE = "vcanchor"
ACCESS_TOKEN_TTL_MIN = 15

_private_key: ec.EllipticCurvePrivateKey | None
if SETTINGS.jwt_public_key_pem:
    _private_key = None
    _public_key = serialization.load_pem_public_key(SETTINGS.jwt_public_key_pem.encode())
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    name: str = "",
) -> str:
    """Sign a short-lived token carrying sub, roles and display name.

    Roles default to candidate.
    """
    if _private_key is None:
        raise RuntimeError("token signing is disabled when JWT_PUBLIC_KEY_PEM is set")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["candidate"],
        "name": name,
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Claims of a valid token.

    Only ES256 is accepted.  exp, iss and aud are checked by PyJWT; a bad
    token raises jwt.InvalidTokenError (ExpiredSignatureError when stale).
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
