"""PostgreSQL implementation of IdentityRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from vcanchor.db.tables import CandidateRow, IssuerRow, TeamMemberRow, TeamRow
from vcanchor.models.identity import Candidate, Issuer, IssuerStatus, Team


class PgIdentityRepo:
    """Satisfies the IdentityRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_team(self, team_id: UUID) -> Team | None:
        row = await self._session.get(TeamRow, team_id)
        return _row_to_team(row) if row is not None else None

    async def get_team_for_user(self, user_id: str) -> Team | None:
        stmt = (
            select(TeamRow)
            .join(TeamMemberRow, TeamMemberRow.team_id == TeamRow.id)
            .where(TeamMemberRow.user_id == user_id)
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_team(row) if row is not None else None

    async def add_team(self, team: Team) -> None:
        self._session.add(TeamRow(id=team.id, name=team.name, did=team.did))
        await self._session.flush()

    async def add_team_member(self, team_id: UUID, user_id: str) -> None:
        stmt = (
            insert(TeamMemberRow)
            .values(user_id=user_id, team_id=team_id)
            .on_conflict_do_update(
                index_elements=[TeamMemberRow.user_id], set_={"team_id": team_id}
            )
        )
        await self._session.execute(stmt)

    async def get_candidate(self, candidate_id: UUID) -> Candidate | None:
        row = await self._session.get(CandidateRow, candidate_id)
        return _row_to_candidate(row) if row is not None else None

    async def get_candidate_by_user(self, user_id: str) -> Candidate | None:
        stmt = select(CandidateRow).where(CandidateRow.user_id == user_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_candidate(row) if row is not None else None

    async def add_candidate(self, candidate: Candidate) -> None:
        self._session.add(
            CandidateRow(
                id=candidate.id,
                user_id=candidate.user_id,
                team_id=candidate.team_id,
                display_name=candidate.display_name,
            )
        )
        await self._session.flush()

    async def get_issuer(self, issuer_id: int) -> Issuer | None:
        row = await self._session.get(IssuerRow, issuer_id)
        return _row_to_issuer(row) if row is not None else None

    async def get_issuer_by_owner(self, user_id: str) -> Issuer | None:
        stmt = select(IssuerRow).where(IssuerRow.owner_user_id == user_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_issuer(row) if row is not None else None

    async def add_issuer(self, issuer: Issuer) -> Issuer:
        row = IssuerRow(
            owner_user_id=issuer.owner_user_id,
            name=issuer.name,
            status=str(issuer.status),
            did=issuer.did,
        )
        if issuer.id > 0:
            row.id = issuer.id
        self._session.add(row)
        await self._session.flush()
        return _row_to_issuer(row)


def _row_to_team(row: TeamRow) -> Team:
    return Team(id=row.id, name=row.name, did=row.did)


def _row_to_candidate(row: CandidateRow) -> Candidate:
    return Candidate(
        id=row.id,
        user_id=row.user_id,
        team_id=row.team_id,
        display_name=row.display_name or "",
    )


def _row_to_issuer(row: IssuerRow) -> Issuer:
    return Issuer(
        id=row.id,
        owner_user_id=row.owner_user_id,
        name=row.name,
        status=IssuerStatus(row.status),
        did=row.did,
    )
