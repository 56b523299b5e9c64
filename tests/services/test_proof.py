from __future__ import annotations

import json

import pytest

from vcanchor.models.proof import (
    AddressProof,
    EvmTxProof,
    JsonProof,
    NoneProof,
    PaymentProof,
    ProofError,
    parse_proof,
)

TX = "0x" + "ab" * 32
ADDR = "0x" + "12" * 20


def test_none_ignores_payload() -> None:
    assert parse_proof("none", "whatever") == NoneProof()


def test_evm_tx_accepts_bare_hash_and_lowercases() -> None:
    proof = parse_proof("evm-tx", TX.upper().replace("0X", "0x"))
    assert proof == EvmTxProof(tx_hash=TX)
    assert proof.proof_tx == TX


def test_payment_accepts_json_wrapped_hash() -> None:
    proof = parse_proof("payment", json.dumps({"txHash": TX}))
    assert isinstance(proof, PaymentProof)
    assert proof.serialize() == TX


@pytest.mark.parametrize("payload", ["0x1234", "not a hash", '{"txHash": "0x12"}'])
def test_evm_tx_rejects_malformed(payload: str) -> None:
    with pytest.raises(ProofError, match="32-byte"):
        parse_proof("evm-tx", payload)


def test_missing_payload_rejected() -> None:
    with pytest.raises(ProofError, match="required"):
        parse_proof("json", "   ")


def test_json_requires_object() -> None:
    with pytest.raises(ProofError, match="JSON object"):
        parse_proof("json", "[1, 2]")


def test_json_exposes_request_url() -> None:
    proof = parse_proof(
        "json", json.dumps({"request": {"url": "https://api.github.com/repos/a/b"}})
    )
    assert isinstance(proof, JsonProof)
    assert proof.request_url == "https://api.github.com/repos/a/b"
    assert proof.proof_tx is None


def test_json_serialization_is_canonical() -> None:
    proof = parse_proof("json", '{"b": 1, "a": 2}')
    assert proof.serialize() == '{"a":2,"b":1}'


def test_address_accepts_bare_or_wrapped() -> None:
    assert parse_proof("address", ADDR) == AddressProof(address=ADDR)
    assert parse_proof("address", json.dumps({"address": ADDR})) == AddressProof(
        address=ADDR
    )


def test_address_rejects_short_value() -> None:
    with pytest.raises(ProofError, match="20-byte"):
        parse_proof("address", "0x1234")


def test_unknown_type_rejected() -> None:
    with pytest.raises(ProofError, match="unsupported"):
        parse_proof("zk-snark", "x")
