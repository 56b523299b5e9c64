"""Candidate-facing credential endpoints.

- POST /v1/credentials               submit a claim (candidate)
- GET  /v1/credentials/{id}          owner candidate, linked issuer or admin
- GET  /v1/credentials/{id}/verify   public on-chain read-back
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from vcanchor.api.dependencies import require_role, require_user
from vcanchor.api.schemas import CredentialOut
from vcanchor.models.principal import Principal
from vcanchor.repos.stores import Stores, get_stores
from vcanchor.services import credential_service
from vcanchor.services.credential_service import CredentialDraft

router = APIRouter(prefix="/v1/credentials", tags=["credentials"])


class CredentialSubmitIn(BaseModel):
    title: str
    category: str
    type: str
    file_url: str
    proof_type: str = "none"
    proof_data: str | None = None
    issuer_id: int | None = Field(default=None, gt=0)


class OnchainVerifyOut(BaseModel):
    credential_id: int
    token_id: str
    tx_hash: str
    expected_hash: str
    onchain_hash: str
    valid: bool


@router.post("", response_model=CredentialOut, status_code=status.HTTP_201_CREATED)
async def submit_credential(
    body: CredentialSubmitIn,
    principal: Annotated[Principal, Depends(require_role("candidate"))],
    stores: Annotated[Stores, Depends(get_stores)],
) -> CredentialOut:
    credential = await credential_service.submit(
        stores,
        principal.user_id,
        CredentialDraft(
            title=body.title,
            category=body.category,
            sub_type=body.type,
            file_url=body.file_url,
            proof_type=body.proof_type,
            proof_data=body.proof_data,
            issuer_id=body.issuer_id,
        ),
        display_name=principal.name,
    )
    return CredentialOut.from_domain(credential)


@router.get("/{credential_id}", response_model=CredentialOut)
async def get_credential(
    credential_id: int,
    principal: Annotated[Principal, Depends(require_user)],
    stores: Annotated[Stores, Depends(get_stores)],
) -> CredentialOut:
    credential = await credential_service.get_for_principal(
        stores,
        principal.user_id,
        credential_id,
        is_admin=principal.is_admin,
    )
    return CredentialOut.from_domain(credential)


@router.get("/{credential_id}/verify", response_model=OnchainVerifyOut)
async def verify_credential(
    credential_id: int,
    stores: Annotated[Stores, Depends(get_stores)],
) -> OnchainVerifyOut:
    result = await credential_service.verify_onchain(stores, credential_id)
    return OnchainVerifyOut(
        credential_id=result.credential_id,
        token_id=str(result.token_id),
        tx_hash=result.tx_hash,
        expected_hash=result.expected_hash,
        onchain_hash=result.onchain_hash,
        valid=result.matches,
    )
