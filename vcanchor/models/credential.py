from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from vcanchor.models.proof import NoneProof, Proof


class CredentialStatus(StrEnum):
    UNVERIFIED = "unverified"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class CredentialCategory(StrEnum):
    EDUCATION = "education"
    EXPERIENCE = "experience"
    PROJECT = "project"
    AWARD = "award"
    CERTIFICATION = "certification"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class Credential:
    """A candidate's claim, optionally routed to an issuer for attestation.

    ``vc_json`` is the anchored wrapper ``{"vc", "tokenId", "txHash"}`` and is
    written at most once.  ``pending_anchor`` holds a mint whose outcome is
    unknown; while it is set no further mint may be attempted.
    """

    id: int
    candidate_id: UUID
    title: str
    category: CredentialCategory
    sub_type: str
    file_url: str
    proof: Proof = NoneProof()
    issuer_id: int | None = None
    status: CredentialStatus = CredentialStatus.UNVERIFIED
    verified: bool = False
    verified_at: datetime | None = None
    vc_json: str | None = None
    pending_anchor: dict[str, Any] | None = None

    @property
    def is_anchored(self) -> bool:
        return self.vc_json is not None
