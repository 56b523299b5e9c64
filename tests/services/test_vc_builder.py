from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta, timezone

import pytest
from eth_utils import keccak

from vcanchor.services import vc_builder

ISSUED = datetime(2025, 3, 1, 12, 30, 5, 123456, tzinfo=UTC)
ISSUER = "did:flare:0x" + "cd" * 20
SUBJECT = "did:flare:0x" + "ab" * 20


def _build(**overrides):
    kwargs = dict(
        issuer_did=ISSUER,
        subject_did=SUBJECT,
        title="BSc Computer Science",
        sub_type="degree",
        candidate_name="Ada",
        issued_at=ISSUED,
    )
    kwargs.update(overrides)
    return vc_builder.build(**kwargs)


def test_document_shape() -> None:
    doc, _ = _build()
    assert doc["@context"] == ["https://www.w3.org/2018/credentials/v1"]
    assert doc["type"] == ["VerifiableCredential", "FlareCredCredential"]
    assert doc["issuer"] == ISSUER
    assert doc["issuanceDate"] == "2025-03-01T12:30:05.123Z"
    assert doc["credentialSubject"] == {
        "id": SUBJECT,
        "title": "BSc Computer Science",
        "type": "degree",
        "candidateName": "Ada",
    }


def test_hash_is_keccak_of_canonical_json() -> None:
    doc, digest = _build()
    canonical = json.dumps(doc, sort_keys=True, separators=(",", ":")).encode()
    assert digest == keccak(canonical)
    assert len(digest) == 32


def test_identical_inputs_give_identical_hashes() -> None:
    _, first = _build()
    _, second = _build()
    assert first == second


def test_any_field_change_changes_hash() -> None:
    _, base = _build()
    _, other_title = _build(title="BSc Mathematics")
    _, other_time = _build(issued_at=ISSUED + timedelta(seconds=1))
    assert base != other_title
    assert base != other_time


def test_key_order_does_not_affect_hash() -> None:
    doc, digest = _build()
    reordered = dict(reversed(list(doc.items())))
    assert vc_builder.content_hash(reordered) == digest


def test_issuance_date_is_normalized_to_utc() -> None:
    plus_two = ISSUED.astimezone(timezone(timedelta(hours=2)))
    doc, _ = _build(issued_at=plus_two)
    assert doc["issuanceDate"] == "2025-03-01T12:30:05.123Z"


def test_naive_timestamp_rejected() -> None:
    with pytest.raises(ValueError, match="timezone-aware"):
        _build(issued_at=datetime(2025, 3, 1))


def test_extra_claims_merged_into_subject() -> None:
    doc, _ = _build(extra_claims={"githubRepo": "https://api.github.com/repos/a/b"})
    assert doc["credentialSubject"]["githubRepo"] == "https://api.github.com/repos/a/b"


def test_extra_claims_cannot_shadow_core_fields() -> None:
    with pytest.raises(ValueError, match="may not override"):
        _build(extra_claims={"id": "did:flare:0x" + "00" * 20})


def test_skill_pass_document() -> None:
    doc, digest = vc_builder.build_skill_pass(
        ISSUER, SUBJECT, "Solidity Basics", 85, "Ada", issued_at=ISSUED
    )
    assert doc["type"] == ["VerifiableCredential", "SkillPassVC"]
    assert doc["credentialSubject"] == {
        "id": SUBJECT,
        "skillQuiz": "Solidity Basics",
        "score": 85,
        "candidateName": "Ada",
    }
    assert digest == vc_builder.content_hash(doc)


def test_anchored_wrapper_round_trips_hash() -> None:
    doc, digest = _build()
    wrapper = json.loads(
        vc_builder.anchored_wrapper(doc, token_id=42, tx_hash="0x" + "1" * 64)
    )
    assert wrapper["tokenId"] == "42"
    assert wrapper["txHash"] == "0x" + "1" * 64
    assert "proofTx" not in wrapper
    assert vc_builder.content_hash(wrapper["vc"]) == digest


def test_anchored_wrapper_carries_proof_tx() -> None:
    doc, _ = _build()
    wrapper = json.loads(
        vc_builder.anchored_wrapper(
            doc, token_id=1, tx_hash="0x" + "1" * 64, proof_tx="0x" + "2" * 64
        )
    )
    assert wrapper["proofTx"] == "0x" + "2" * 64
