from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4

from eth_utils import to_checksum_address

_DID_RE = re.compile(r"^did:([a-z0-9]+):(0x[0-9a-fA-F]{40})$")


class DidError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class Did:
    """``did:<namespace>:<20-byte hex address>`` bound to a ledger address."""

    namespace: str
    address: str  # EIP-55 checksummed

    @staticmethod
    def parse(value: str) -> Did:
        m = _DID_RE.match(value.strip())
        if m is None:
            raise DidError(f"malformed DID {value!r}")
        return Did(namespace=m.group(1), address=to_checksum_address(m.group(2)))

    def __str__(self) -> str:
        return f"did:{self.namespace}:{self.address.lower()}"


class IssuerStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class Team:
    """Candidate-side DID holder."""

    id: UUID
    name: str
    did: str | None = None

    @staticmethod
    def new(*, name: str, did: str | None = None) -> Team:
        return Team(id=uuid4(), name=name, did=did)


@dataclass(frozen=True, slots=True)
class Candidate:
    id: UUID
    user_id: str
    team_id: UUID | None
    display_name: str = ""

    @staticmethod
    def new(
        *, user_id: str, team_id: UUID | None, display_name: str = ""
    ) -> Candidate:
        return Candidate(
            id=uuid4(), user_id=user_id, team_id=team_id, display_name=display_name
        )


@dataclass(frozen=True, slots=True)
class Issuer:
    id: int
    owner_user_id: str
    name: str
    status: IssuerStatus = IssuerStatus.PENDING
    did: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is IssuerStatus.ACTIVE
