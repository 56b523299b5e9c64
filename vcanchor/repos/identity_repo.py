from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from vcanchor.models.identity import Candidate, Issuer, Team


class IdentityRepo(Protocol):
    async def get_team(self, team_id: UUID) -> Team | None: ...
    async def get_team_for_user(self, user_id: str) -> Team | None: ...
    async def add_team(self, team: Team) -> None: ...
    async def add_team_member(self, team_id: UUID, user_id: str) -> None: ...
    async def get_candidate(self, candidate_id: UUID) -> Candidate | None: ...
    async def get_candidate_by_user(self, user_id: str) -> Candidate | None: ...
    async def add_candidate(self, candidate: Candidate) -> None: ...
    async def get_issuer(self, issuer_id: int) -> Issuer | None: ...
    async def get_issuer_by_owner(self, user_id: str) -> Issuer | None: ...
    async def add_issuer(self, issuer: Issuer) -> Issuer: ...


class InMemoryIdentityRepo:
    def __init__(self) -> None:
        self._teams: dict[UUID, Team] = {}
        self._team_by_user: dict[str, UUID] = {}
        self._candidates: dict[UUID, Candidate] = {}
        self._candidate_by_user: dict[str, UUID] = {}
        self._issuers: dict[int, Issuer] = {}
        self._next_issuer_id = 1

    def clear(self) -> None:
        self.__init__()  # type: ignore[misc]

    async def get_team(self, team_id: UUID) -> Team | None:
        return self._teams.get(team_id)

    async def get_team_for_user(self, user_id: str) -> Team | None:
        team_id = self._team_by_user.get(user_id)
        return self._teams.get(team_id) if team_id is not None else None

    async def add_team(self, team: Team) -> None:
        self._teams[team.id] = team

    async def add_team_member(self, team_id: UUID, user_id: str) -> None:
        if team_id not in self._teams:
            raise KeyError("team not found")
        self._team_by_user[user_id] = team_id

    async def get_candidate(self, candidate_id: UUID) -> Candidate | None:
        return self._candidates.get(candidate_id)

    async def get_candidate_by_user(self, user_id: str) -> Candidate | None:
        candidate_id = self._candidate_by_user.get(user_id)
        return self._candidates.get(candidate_id) if candidate_id else None

    async def add_candidate(self, candidate: Candidate) -> None:
        if candidate.user_id in self._candidate_by_user:
            raise ValueError("candidate profile already exists")
        self._candidates[candidate.id] = candidate
        self._candidate_by_user[candidate.user_id] = candidate.id

    async def get_issuer(self, issuer_id: int) -> Issuer | None:
        return self._issuers.get(issuer_id)

    async def get_issuer_by_owner(self, user_id: str) -> Issuer | None:
        for issuer in self._issuers.values():
            if issuer.owner_user_id == user_id:
                return issuer
        return None

    async def add_issuer(self, issuer: Issuer) -> Issuer:
        # Explicit ids are honoured so fixtures can pin them.
        if issuer.id <= 0:
            issuer = replace(issuer, id=self._next_issuer_id)
        self._next_issuer_id = max(self._next_issuer_id, issuer.id + 1)
        self._issuers[issuer.id] = issuer
        return issuer
