"""Resolve the DIDs that must exist before anything is anchored.

Lookups go to the relational store only.  A DID that is present but does
not parse as ``did:<namespace>:<address>`` is treated as missing, since
no ledger address could be derived from it.
"""

from __future__ import annotations

import logging
from uuid import UUID

from vcanchor.models.identity import Candidate, Did, DidError
from vcanchor.repos.identity_repo import IdentityRepo
from vcanchor.services.errors import IssuerDidMissing, SubjectDidMissing

logger = logging.getLogger(__name__)


def _parse(raw: str | None) -> Did | None:
    if not raw:
        return None
    try:
        return Did.parse(raw)
    except DidError:
        logger.warning("Ignoring malformed DID on record: %r", raw)
        return None


async def require_subject_did(identities: IdentityRepo, candidate_id: UUID) -> Did:
    """DID of the team the candidate belongs to now.

    Membership is looked up by user id at call time; the team recorded on the
    candidate profile is only a snapshot from when the profile was created.
    """
    candidate = await identities.get_candidate(candidate_id)
    team = None
    if candidate is not None:
        team = await identities.get_team_for_user(candidate.user_id)
    did = _parse(team.did if team else None)
    if did is None:
        raise SubjectDidMissing()
    return did


async def require_user_subject_did(identities: IdentityRepo, user_id: str) -> Did:
    team = await identities.get_team_for_user(user_id)
    did = _parse(team.did if team else None)
    if did is None:
        raise SubjectDidMissing("Please create your team DID before taking a quiz.")
    return did


async def require_issuer_did(identities: IdentityRepo, issuer_id: int) -> Did:
    issuer = await identities.get_issuer(issuer_id)
    did = _parse(issuer.did if issuer else None)
    if did is None:
        raise IssuerDidMissing()
    return did


async def ensure_candidate(
    identities: IdentityRepo, user_id: str, display_name: str = ""
) -> Candidate:
    """Candidate profile for ``user_id``, created on first use."""
    candidate = await identities.get_candidate_by_user(user_id)
    if candidate is not None:
        return candidate
    team = await identities.get_team_for_user(user_id)
    candidate = Candidate.new(
        user_id=user_id, team_id=team.id if team else None, display_name=display_name
    )
    await identities.add_candidate(candidate)
    logger.info("Created candidate profile user=%s", user_id)
    return candidate
