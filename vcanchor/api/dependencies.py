"""Bearer-token authentication and role guards for the /v1 routers."""

from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vcanchor.models.principal import Principal
from vcanchor.services import token_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Principal:
    """Resolve the bearer JWT into a Principal, or 401."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        claims = token_service.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    principal = Principal.from_claims(claims)
    logger.debug("Authenticated user=%s roles=%s", principal.user_id, sorted(principal.roles))
    return principal


def require_role(*roles: str):
    """Dependency factory: the caller must hold one of ``roles``.

        IssuerPrincipal = Annotated[Principal, Depends(require_role("issuer"))]
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if principal.holds(*roles):
            return principal
        logger.warning(
            "Access denied: user=%s roles=%s required=%s",
            principal.user_id,
            sorted(principal.roles),
            roles,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )

    return _guard
