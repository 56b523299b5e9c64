"""Response bodies shared by several routers."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from vcanchor.models.credential import Credential


class CredentialOut(BaseModel):
    id: int
    candidate_id: str
    title: str
    category: str
    type: str
    file_url: str
    proof_type: str
    issuer_id: int | None
    status: str
    verified: bool
    verified_at: datetime | None
    vc_json: str | None
    pending_anchor: bool

    @classmethod
    def from_domain(cls, c: Credential) -> CredentialOut:
        return cls(
            id=c.id,
            candidate_id=str(c.candidate_id),
            title=c.title,
            category=str(c.category),
            type=c.sub_type,
            file_url=c.file_url,
            proof_type=str(c.proof.type),
            issuer_id=c.issuer_id,
            status=str(c.status),
            verified=c.verified,
            verified_at=c.verified_at,
            vc_json=c.vc_json,
            pending_anchor=c.pending_anchor is not None,
        )


class ActionOut(BaseModel):
    """One success message per action, optionally with a ledger reference."""

    message: str
    credential: CredentialOut
    tx_hash: str | None = None
    token_id: str | None = None
