"""Credential lifecycle: submit, approve, reject, unverify, reconcile.

    UNVERIFIED --(submit with issuer)--> PENDING --approve--> VERIFIED
    PENDING --reject--> REJECTED
    VERIFIED --unverify--> UNVERIFIED

Approve is the only transition that touches the ledger, and it mints at
most once per credential lifetime: the first successful mint persists the
anchored wrapper in ``vc_json`` and every later approval reuses it
verbatim.  approve/reject/unverify/reconcile all run inside
``credentials.locked(id)`` so two concurrent approvals cannot both see an
empty ``vc_json``.

Failure handling around the mint:

  AnchoringFailed         nothing is written; status stays where it was
  AnchoringIndeterminate  status stays, ``pending_anchor`` records the VC and
                          tx hash; approve refuses to mint again until an
                          operator runs reconcile
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any, Literal
from urllib.parse import urlparse

from vcanchor.core.metrics import CREDENTIAL_TRANSITIONS
from vcanchor.models.credential import Credential, CredentialCategory, CredentialStatus
from vcanchor.models.identity import Issuer
from vcanchor.models.proof import JsonProof, Proof, ProofError, parse_proof
from vcanchor.repos.stores import Stores
from vcanchor.services import identity_gate, vc_builder
from vcanchor.services.errors import (
    AlreadyInState,
    AlreadyVerified,
    AnchoringFailed,
    AnchoringIndeterminate,
    NotFound,
    NotOwner,
    NotVerified,
    PreconditionFailed,
    ValidationFailed,
)
from vcanchor.services.ledger_client import (
    LedgerClient,
    MintReceipt,
    Signer,
    ledger_client,
    platform_signer,
)

logger = logging.getLogger(__name__)

TITLE_MIN, TITLE_MAX = 2, 200
SUB_TYPE_MIN, SUB_TYPE_MAX = 1, 50


@dataclass(frozen=True, slots=True)
class CredentialDraft:
    title: str
    category: str
    sub_type: str
    file_url: str
    proof_type: str = "none"
    proof_data: str | None = None
    issuer_id: int | None = None


@dataclass(frozen=True, slots=True)
class AnchorResult:
    kind: Literal["minted", "reused"]
    credential: Credential
    token_id: int
    tx_hash: str

    @property
    def message(self) -> str:
        if self.kind == "minted":
            return "Credential verified and anchored on-chain."
        return "Credential verified; existing on-chain anchor reused."


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    outcome: Literal["anchored", "cleared", "pending"]
    credential: Credential
    tx_hash: str | None = None


@dataclass(frozen=True, slots=True)
class OnchainVerification:
    credential_id: int
    token_id: int
    tx_hash: str
    expected_hash: str
    onchain_hash: str

    @property
    def matches(self) -> bool:
        return self.expected_hash == self.onchain_hash


def _now() -> datetime:
    return datetime.now(UTC)


def _is_github_repo(sub_type: str) -> bool:
    return "github" in sub_type.lower()


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------


def _validate_draft(
    draft: CredentialDraft,
) -> tuple[str, str, CredentialCategory, str, Proof]:
    title = draft.title.strip()
    if not TITLE_MIN <= len(title) <= TITLE_MAX:
        raise ValidationFailed(
            f"Title must be {TITLE_MIN}-{TITLE_MAX} characters."
        )
    sub_type = draft.sub_type.strip()
    if not SUB_TYPE_MIN <= len(sub_type) <= SUB_TYPE_MAX:
        raise ValidationFailed(
            f"Type must be {SUB_TYPE_MIN}-{SUB_TYPE_MAX} characters."
        )
    try:
        category = CredentialCategory(draft.category.lower())
    except ValueError:
        raise ValidationFailed(f"Unknown category {draft.category!r}.") from None

    url = urlparse(draft.file_url.strip())
    if url.scheme not in ("http", "https") or not url.netloc:
        raise ValidationFailed("Invalid URL")

    try:
        proof = parse_proof(draft.proof_type.lower(), draft.proof_data)
    except ProofError as exc:
        raise ValidationFailed(str(exc)) from None

    return title, sub_type, category, draft.file_url.strip(), proof


async def submit(
    stores: Stores,
    user_id: str,
    draft: CredentialDraft,
    *,
    display_name: str = "",
) -> Credential:
    """Record a candidate's claim.  Never anchors.

    With ``issuer_id`` the issuer must exist and be active, and the
    candidate's team must already hold a DID; the credential starts PENDING.
    """
    title, sub_type, category, file_url, proof = _validate_draft(draft)

    status = CredentialStatus.UNVERIFIED
    if draft.issuer_id is not None:
        issuer = await stores.identities.get_issuer(draft.issuer_id)
        if issuer is None or not issuer.is_active:
            raise PreconditionFailed("Issuer not found or not verified.")
        team = await stores.identities.get_team_for_user(user_id)
        if team is None or not team.did:
            raise PreconditionFailed(
                "Create your team DID before submitting credentials to an issuer."
            )
        status = CredentialStatus.PENDING

    candidate = await identity_gate.ensure_candidate(
        stores.identities, user_id, display_name
    )
    credential = await stores.credentials.add(
        Credential(
            id=0,
            candidate_id=candidate.id,
            title=title,
            category=category,
            sub_type=sub_type,
            file_url=file_url,
            proof=proof,
            issuer_id=draft.issuer_id,
            status=status,
        )
    )
    CREDENTIAL_TRANSITIONS.labels(transition="submit").inc()
    logger.info(
        "Credential submitted status=%s issuer=%s",
        credential.status,
        credential.issuer_id,
        extra={"credential_id": credential.id},
    )
    return credential


# ---------------------------------------------------------------------------
# Issuer actions
# ---------------------------------------------------------------------------


async def _owned(
    stores: Stores, issuer_user_id: str, credential: Credential | None
) -> tuple[Credential, Issuer]:
    if credential is None:
        raise NotFound("Credential not found.")
    issuer = await stores.identities.get_issuer_by_owner(issuer_user_id)
    if issuer is None or credential.issuer_id != issuer.id:
        raise NotOwner("Credential not found for this issuer.")
    return credential, issuer


def _build_document(
    credential: Credential,
    issuer_did: str,
    subject_did: str,
    candidate_name: str,
    issued_at: datetime,
) -> tuple[dict[str, Any], bytes]:
    extra: dict[str, Any] = {}
    if isinstance(credential.proof, JsonProof) and _is_github_repo(credential.sub_type):
        url = credential.proof.request_url
        if url:
            extra["githubRepo"] = url
    return vc_builder.build(
        issuer_did,
        subject_did,
        credential.title,
        credential.sub_type,
        candidate_name,
        issued_at=issued_at,
        extra_claims=extra or None,
    )


def _refuse_while_pending(credential: Credential, action: str) -> None:
    if credential.pending_anchor is not None:
        raise AnchoringIndeterminate(
            f"a previous mint is unresolved; reconcile before {action}",
            tx_hash=credential.pending_anchor.get("txHash"),
        )


async def _candidate_name(stores: Stores, credential: Credential) -> str:
    candidate = await stores.identities.get_candidate(credential.candidate_id)
    if candidate is None:
        return "Unknown"
    return candidate.display_name or candidate.user_id or "Unknown"


async def approve(
    stores: Stores,
    issuer_user_id: str,
    credential_id: int,
    *,
    ledger: LedgerClient | None = None,
    signer: Signer | None = None,
) -> AnchorResult:
    ledger = ledger or ledger_client
    signer = signer or platform_signer

    async with stores.credentials.locked(credential_id) as locked:
        credential, issuer = await _owned(stores, issuer_user_id, locked)

        if credential.status is CredentialStatus.VERIFIED:
            raise AlreadyVerified()
        _refuse_while_pending(credential, "approving again")

        issuer_did = await identity_gate.require_issuer_did(stores.identities, issuer.id)
        subject_did = await identity_gate.require_subject_did(
            stores.identities, credential.candidate_id
        )

        now = _now()
        if credential.vc_json is not None:
            wrapper = json.loads(credential.vc_json)
            kind: Literal["minted", "reused"] = "reused"
            token_id, tx_hash = int(wrapper["tokenId"]), wrapper["txHash"]
            vc_json = credential.vc_json
        else:
            if signer is None:
                raise AnchoringFailed("platform signer is not configured")
            doc, digest = _build_document(
                credential,
                str(issuer_did),
                str(subject_did),
                await _candidate_name(stores, credential),
                now,
            )
            minted = await _mint(
                stores, credential, ledger, signer, subject_did.address, digest, doc
            )
            kind = "minted"
            token_id, tx_hash = minted.token_id, minted.tx_hash
            vc_json = vc_builder.anchored_wrapper(
                doc,
                token_id=token_id,
                tx_hash=tx_hash,
                proof_tx=credential.proof.proof_tx,
            )

        updated = replace(
            credential,
            status=CredentialStatus.VERIFIED,
            verified=True,
            verified_at=now,
            vc_json=vc_json,
        )
        await stores.credentials.save(updated)

    CREDENTIAL_TRANSITIONS.labels(transition=f"approve_{kind}").inc()
    logger.info(
        "Credential approved anchor=%s token_id=%d",
        kind,
        token_id,
        extra={"credential_id": credential_id, "tx_hash": tx_hash},
    )
    return AnchorResult(kind=kind, credential=updated, token_id=token_id, tx_hash=tx_hash)


async def _mint(
    stores: Stores,
    credential: Credential,
    ledger: LedgerClient,
    signer: Signer,
    to_address: str,
    digest: bytes,
    doc: dict[str, Any],
) -> MintReceipt:
    try:
        return await asyncio.to_thread(
            ledger.mint_credential, to_address, digest, "", signer
        )
    except AnchoringIndeterminate as exc:
        pending = {
            "vc": doc,
            "txHash": exc.tx_hash,
            "recordedAt": vc_builder.format_issuance_date(_now()),
        }
        await stores.credentials.save(replace(credential, pending_anchor=pending))
        logger.error(
            "Anchoring outcome unknown, credential held for reconciliation: %s",
            exc.reason,
            extra={"credential_id": credential.id, "tx_hash": exc.tx_hash},
        )
        raise
    except AnchoringFailed as exc:
        logger.warning(
            "Anchoring failed stage=%s: %s",
            exc.stage,
            exc.reason,
            extra={"credential_id": credential.id},
        )
        raise


async def reject(stores: Stores, issuer_user_id: str, credential_id: int) -> Credential:
    """Refused while a mint is unresolved: reconcile could still anchor it."""
    async with stores.credentials.locked(credential_id) as locked:
        credential, _ = await _owned(stores, issuer_user_id, locked)
        _refuse_while_pending(credential, "rejecting")
        updated = replace(
            credential,
            status=CredentialStatus.REJECTED,
            verified=False,
            verified_at=_now(),
        )
        await stores.credentials.save(updated)

    CREDENTIAL_TRANSITIONS.labels(transition="reject").inc()
    logger.info("Credential rejected", extra={"credential_id": credential_id})
    return updated


async def unverify(stores: Stores, issuer_user_id: str, credential_id: int) -> Credential:
    """VERIFIED -> UNVERIFIED.  The anchored ``vc_json`` is kept for reuse."""
    async with stores.credentials.locked(credential_id) as locked:
        credential, _ = await _owned(stores, issuer_user_id, locked)
        if credential.status is not CredentialStatus.VERIFIED:
            raise NotVerified()
        updated = replace(
            credential,
            status=CredentialStatus.UNVERIFIED,
            verified=False,
            verified_at=None,
        )
        await stores.credentials.save(updated)

    CREDENTIAL_TRANSITIONS.labels(transition="unverify").inc()
    logger.info("Credential unverified", extra={"credential_id": credential_id})
    return updated


async def get_for_principal(
    stores: Stores, user_id: str, credential_id: int, *, is_admin: bool = False
) -> Credential:
    """Visible to the owning candidate, the linked issuer and admins."""
    credential = await stores.credentials.get(credential_id)
    if credential is None:
        raise NotFound("Credential not found.")
    if is_admin:
        return credential
    candidate = await stores.identities.get_candidate_by_user(user_id)
    if candidate is not None and candidate.id == credential.candidate_id:
        return credential
    issuer = await stores.identities.get_issuer_by_owner(user_id)
    if issuer is not None and credential.issuer_id == issuer.id:
        return credential
    raise NotOwner("Not allowed to view this credential.")


# ---------------------------------------------------------------------------
# Operator / public read-back
# ---------------------------------------------------------------------------


async def reconcile(
    stores: Stores,
    credential_id: int,
    *,
    force_clear: bool = False,
    ledger: LedgerClient | None = None,
) -> ReconcileResult:
    """Resolve an indeterminate mint by reading the transaction back.

    Never submits a transaction.  Clearing a pending anchor that carries no
    transaction hash is only done on explicit ``force_clear``.
    """
    ledger = ledger or ledger_client

    async with stores.credentials.locked(credential_id) as credential:
        if credential is None:
            raise NotFound("Credential not found.")
        pending = credential.pending_anchor
        if pending is None:
            raise AlreadyInState("Credential has no pending anchor.")

        tx_hash = pending.get("txHash")
        if tx_hash is None:
            if not force_clear:
                raise PreconditionFailed(
                    "Pending anchor has no transaction hash; "
                    "confirm on the ledger and retry with force_clear."
                )
            outcome: Literal["anchored", "cleared", "pending"] = "cleared"
            updated = replace(credential, pending_anchor=None)
        else:
            try:
                minted = await asyncio.to_thread(ledger.fetch_mint, tx_hash)
            except AnchoringFailed as exc:
                if exc.stage != "revert":
                    raise
                outcome = "cleared"
                updated = replace(credential, pending_anchor=None)
            else:
                if minted is None:
                    outcome = "pending"
                    updated = credential
                else:
                    outcome = "anchored"
                    updated = replace(
                        credential,
                        status=CredentialStatus.VERIFIED,
                        verified=True,
                        verified_at=_now(),
                        vc_json=vc_builder.anchored_wrapper(
                            pending["vc"],
                            token_id=minted.token_id,
                            tx_hash=minted.tx_hash,
                            proof_tx=credential.proof.proof_tx,
                        ),
                        pending_anchor=None,
                    )

        if updated is not credential:
            await stores.credentials.save(updated)

    CREDENTIAL_TRANSITIONS.labels(transition="reconcile").inc()
    logger.info(
        "Reconciled pending anchor outcome=%s",
        outcome,
        extra={"credential_id": credential_id, "tx_hash": tx_hash},
    )
    return ReconcileResult(outcome=outcome, credential=updated, tx_hash=tx_hash)


async def verify_onchain(
    stores: Stores, credential_id: int, *, ledger: LedgerClient | None = None
) -> OnchainVerification:
    """Recompute the stored VC's hash and compare it with the ledger's copy."""
    ledger = ledger or ledger_client

    credential = await stores.credentials.get(credential_id)
    if credential is None:
        raise NotFound("Credential not found.")
    if credential.vc_json is None:
        raise PreconditionFailed("Credential has not been anchored.")

    wrapper = json.loads(credential.vc_json)
    token_id = int(wrapper["tokenId"])
    expected = vc_builder.content_hash(wrapper["vc"])
    onchain = await asyncio.to_thread(ledger.read_credential_hash, token_id)

    return OnchainVerification(
        credential_id=credential_id,
        token_id=token_id,
        tx_hash=wrapper["txHash"],
        expected_hash="0x" + expected.hex(),
        onchain_hash="0x" + bytes(onchain).hex(),
    )
