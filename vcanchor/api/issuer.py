"""Issuer actions on credentials routed to them.

- POST /v1/issuer/credentials/{id}/approve    anchors on first approval
- POST /v1/issuer/credentials/{id}/reject
- POST /v1/issuer/credentials/{id}/unverify
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from vcanchor.api.dependencies import require_role
from vcanchor.api.schemas import ActionOut, CredentialOut
from vcanchor.models.principal import Principal
from vcanchor.repos.stores import Stores, get_stores
from vcanchor.services import credential_service

router = APIRouter(prefix="/v1/issuer/credentials", tags=["issuer"])

IssuerPrincipal = Annotated[Principal, Depends(require_role("issuer"))]


@router.post("/{credential_id}/approve", response_model=ActionOut)
async def approve_credential(
    credential_id: int,
    principal: IssuerPrincipal,
    stores: Annotated[Stores, Depends(get_stores)],
) -> ActionOut:
    result = await credential_service.approve(stores, principal.user_id, credential_id)
    return ActionOut(
        message=result.message,
        credential=CredentialOut.from_domain(result.credential),
        tx_hash=result.tx_hash,
        token_id=str(result.token_id),
    )


@router.post("/{credential_id}/reject", response_model=ActionOut)
async def reject_credential(
    credential_id: int,
    principal: IssuerPrincipal,
    stores: Annotated[Stores, Depends(get_stores)],
) -> ActionOut:
    credential = await credential_service.reject(
        stores, principal.user_id, credential_id
    )
    return ActionOut(
        message="Credential rejected.",
        credential=CredentialOut.from_domain(credential),
    )


@router.post("/{credential_id}/unverify", response_model=ActionOut)
async def unverify_credential(
    credential_id: int,
    principal: IssuerPrincipal,
    stores: Annotated[Stores, Depends(get_stores)],
) -> ActionOut:
    credential = await credential_service.unverify(
        stores, principal.user_id, credential_id
    )
    return ActionOut(
        message="Credential marked unverified.",
        credential=CredentialOut.from_domain(credential),
    )
