from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from vcanchor.api.dependencies import require_role
from vcanchor.api.schemas import CredentialOut
from vcanchor.models.principal import Principal
from vcanchor.repos.stores import Stores, get_stores
from vcanchor.services import credential_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])

AdminPrincipal = Annotated[Principal, Depends(require_role("admin"))]


class ReconcileIn(BaseModel):
    force_clear: bool = False


class ReconcileOut(BaseModel):
    outcome: str
    tx_hash: str | None
    credential: CredentialOut


@router.get("/credentials/pending-anchors", response_model=list[CredentialOut])
async def list_pending_anchors(
    principal: AdminPrincipal,
    stores: Annotated[Stores, Depends(get_stores)],
) -> list[CredentialOut]:
    logger.info("Pending anchor list requested by user=%s", principal.user_id)
    pending = await stores.credentials.list_pending_anchors()
    return [CredentialOut.from_domain(c) for c in pending]


@router.post("/credentials/{credential_id}/reconcile", response_model=ReconcileOut)
async def reconcile_credential(
    credential_id: int,
    principal: AdminPrincipal,
    stores: Annotated[Stores, Depends(get_stores)],
    body: ReconcileIn | None = None,
) -> ReconcileOut:
    logger.info(
        "Reconcile requested by user=%s",
        principal.user_id,
        extra={"credential_id": credential_id},
    )
    result = await credential_service.reconcile(
        stores, credential_id, force_clear=body.force_clear if body else False
    )
    return ReconcileOut(
        outcome=result.outcome,
        tx_hash=result.tx_hash,
        credential=CredentialOut.from_domain(result.credential),
    )
