"""PostgreSQL implementation of CredentialRepo."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vcanchor.db.tables import CandidateCredentialRow
from vcanchor.models.credential import Credential, CredentialCategory, CredentialStatus
from vcanchor.models.proof import parse_proof


class PgCredentialRepo:
    """Satisfies the CredentialRepo Protocol using PostgreSQL via SQLAlchemy.

    ``locked`` takes a row lock with SELECT ... FOR UPDATE; the lock is
    released when the request-scoped session commits or rolls back.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, credential_id: int) -> Credential | None:
        row = await self._session.get(CandidateCredentialRow, credential_id)
        return _row_to_credential(row) if row is not None else None

    async def add(self, credential: Credential) -> Credential:
        row = CandidateCredentialRow(
            candidate_id=credential.candidate_id,
            title=credential.title,
            category=str(credential.category),
            type=credential.sub_type,
            file_url=credential.file_url,
            proof_type=str(credential.proof.type),
            proof_data=credential.proof.serialize(),
            issuer_id=credential.issuer_id,
            status=str(credential.status),
            verified=credential.verified,
            verified_at=credential.verified_at,
            vc_json=credential.vc_json,
            pending_anchor_json=_dump(credential.pending_anchor),
        )
        self._session.add(row)
        await self._session.flush()
        return _row_to_credential(row)

    async def save(self, credential: Credential) -> None:
        row = await self._session.get(CandidateCredentialRow, credential.id)
        if row is None:
            raise KeyError("credential not found")
        row.status = str(credential.status)
        row.verified = credential.verified
        row.verified_at = credential.verified_at
        row.vc_json = credential.vc_json
        row.pending_anchor_json = _dump(credential.pending_anchor)
        await self._session.flush()

    async def list_pending_anchors(self) -> list[Credential]:
        stmt = select(CandidateCredentialRow).where(
            CandidateCredentialRow.pending_anchor_json.is_not(None)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_credential(r) for r in rows]

    @asynccontextmanager
    async def locked(self, credential_id: int) -> AsyncIterator[Credential | None]:
        stmt = (
            select(CandidateCredentialRow)
            .where(CandidateCredentialRow.id == credential_id)
            .with_for_update()
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        yield _row_to_credential(row) if row is not None else None


def _dump(value: dict | None) -> str | None:
    return json.dumps(value, sort_keys=True) if value is not None else None


def _row_to_credential(row: CandidateCredentialRow) -> Credential:
    return Credential(
        id=row.id,
        candidate_id=row.candidate_id,
        title=row.title,
        category=CredentialCategory(row.category),
        sub_type=row.type,
        file_url=row.file_url,
        proof=parse_proof(row.proof_type, row.proof_data),
        issuer_id=row.issuer_id,
        status=CredentialStatus(row.status),
        verified=row.verified,
        verified_at=row.verified_at,
        vc_json=row.vc_json,
        pending_anchor=(
            json.loads(row.pending_anchor_json) if row.pending_anchor_json else None
        ),
    )
