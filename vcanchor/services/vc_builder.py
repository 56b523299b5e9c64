"""Canonical verifiable-credential documents and their content hashes.

Pure functions: no network, no storage, no clock.  The issuance timestamp is
supplied by the caller so that identical logical inputs always produce
byte-identical serializations and therefore identical hashes.

The hash that gets anchored is Keccak-256 over the canonical serialization:

    json.dumps(doc, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    encoded as UTF-8

Anyone holding the stored ``vc`` object can recompute it and compare against
``getVcHash(tokenId)`` on the ledger.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from eth_utils import keccak

VC_CONTEXT = ("https://www.w3.org/2018/credentials/v1",)
CREDENTIAL_VC_TYPE = "FlareCredCredential"
SKILL_PASS_VC_TYPE = "SkillPassVC"

# Keys a caller may not shadow through extra_claims.
_RESERVED_SUBJECT_KEYS = frozenset({"id", "title", "type", "candidateName"})


def canonicalize(doc: Mapping[str, Any]) -> bytes:
    return json.dumps(
        doc,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def content_hash(doc: Mapping[str, Any]) -> bytes:
    """32-byte Keccak-256 digest of the canonical serialization."""
    return keccak(canonicalize(doc))


def format_issuance_date(issued_at: datetime) -> str:
    if issued_at.tzinfo is None:
        raise ValueError("issued_at must be timezone-aware")
    utc = issued_at.astimezone(UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _envelope(
    issuer_did: str,
    issued_at: datetime,
    vc_type: str,
    subject: dict[str, Any],
) -> dict[str, Any]:
    return {
        "@context": list(VC_CONTEXT),
        "type": ["VerifiableCredential", vc_type],
        "issuer": issuer_did,
        "issuanceDate": format_issuance_date(issued_at),
        "credentialSubject": subject,
    }


def build(
    issuer_did: str,
    subject_did: str,
    title: str,
    sub_type: str,
    candidate_name: str,
    *,
    issued_at: datetime,
    vc_type: str = CREDENTIAL_VC_TYPE,
    extra_claims: Mapping[str, Any] | None = None,
) -> tuple[dict[str, Any], bytes]:
    """Build the VC document for an issuer-attested credential.

    Returns ``(document, content_hash)``.
    """
    subject: dict[str, Any] = {
        "id": subject_did,
        "title": title,
        "type": sub_type,
        "candidateName": candidate_name,
    }
    if extra_claims:
        clash = _RESERVED_SUBJECT_KEYS.intersection(extra_claims)
        if clash:
            raise ValueError(f"extra_claims may not override {sorted(clash)}")
        subject.update(extra_claims)

    doc = _envelope(issuer_did, issued_at, vc_type, subject)
    return doc, content_hash(doc)


def build_skill_pass(
    issuer_did: str,
    subject_did: str,
    quiz_title: str,
    score: int,
    candidate_name: str,
    *,
    issued_at: datetime,
) -> tuple[dict[str, Any], bytes]:
    subject = {
        "id": subject_did,
        "skillQuiz": quiz_title,
        "score": score,
        "candidateName": candidate_name,
    }
    doc = _envelope(issuer_did, issued_at, SKILL_PASS_VC_TYPE, subject)
    return doc, content_hash(doc)


def anchored_wrapper(
    vc: Mapping[str, Any],
    *,
    token_id: int,
    tx_hash: str,
    proof_tx: str | None = None,
) -> str:
    """Serialize the persisted ``vc_json`` wrapper for an anchored document."""
    wrapper: dict[str, Any] = {
        "vc": dict(vc),
        "tokenId": str(token_id),
        "txHash": tx_hash,
    }
    if proof_tx:
        wrapper["proofTx"] = proof_tx
    return json.dumps(wrapper, sort_keys=True, separators=(",", ":"))
