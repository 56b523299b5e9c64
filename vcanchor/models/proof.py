"""Credential proof payloads as a tagged union.

The candidate attaches evidence of one of five kinds.  Each variant parses
and validates its own shape once, at submission, so downstream code matches
on the variant type instead of re-parsing an opaque string.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

_TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class ProofType(StrEnum):
    NONE = "none"
    EVM_TX = "evm-tx"
    JSON = "json"
    PAYMENT = "payment"
    ADDRESS = "address"


class ProofError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class NoneProof:
    type = ProofType.NONE

    def serialize(self) -> str | None:
        return None

    @property
    def proof_tx(self) -> str | None:
        return None


@dataclass(frozen=True, slots=True)
class EvmTxProof:
    """Hash of a transaction carrying an on-chain attestation."""

    tx_hash: str
    type = ProofType.EVM_TX

    def serialize(self) -> str:
        return self.tx_hash

    @property
    def proof_tx(self) -> str:
        return self.tx_hash


@dataclass(frozen=True, slots=True)
class PaymentProof:
    """Hash of a transaction proving receipt of payment."""

    tx_hash: str
    type = ProofType.PAYMENT

    def serialize(self) -> str:
        return self.tx_hash

    @property
    def proof_tx(self) -> str:
        return self.tx_hash


@dataclass(frozen=True, slots=True)
class JsonProof:
    """Attestation object produced by an external data connector."""

    data: dict[str, Any]
    type = ProofType.JSON

    def serialize(self) -> str:
        return json.dumps(self.data, sort_keys=True, separators=(",", ":"))

    @property
    def proof_tx(self) -> None:
        return None

    @property
    def request_url(self) -> str | None:
        request = self.data.get("request")
        if isinstance(request, dict) and isinstance(request.get("url"), str):
            return request["url"]
        return None


@dataclass(frozen=True, slots=True)
class AddressProof:
    address: str
    type = ProofType.ADDRESS

    def serialize(self) -> str:
        return self.address

    @property
    def proof_tx(self) -> None:
        return None


Proof = NoneProof | EvmTxProof | PaymentProof | JsonProof | AddressProof


def _load_json_object(raw: str) -> dict[str, Any] | None:
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def _parse_tx_hash(raw: str, kind: str) -> str:
    if _TX_HASH_RE.match(raw):
        return raw.lower()
    obj = _load_json_object(raw)
    if obj is not None and isinstance(obj.get("txHash"), str):
        if _TX_HASH_RE.match(obj["txHash"]):
            return obj["txHash"].lower()
    raise ProofError(f"{kind} proof must be a 32-byte transaction hash")


def parse_proof(proof_type: ProofType | str, payload: str | None) -> Proof:
    """Build the proof variant for ``proof_type`` from its raw payload.

    Raises ProofError when the payload does not match the variant's shape,
    including a missing payload for any type other than ``none``.
    """
    try:
        ptype = ProofType(proof_type)
    except ValueError:
        raise ProofError(f"unsupported proof type {proof_type!r}") from None

    raw = (payload or "").strip()
    if ptype is ProofType.NONE:
        return NoneProof()
    if not raw:
        raise ProofError("Proof is required for the selected proof type.")

    if ptype is ProofType.EVM_TX:
        return EvmTxProof(tx_hash=_parse_tx_hash(raw, "evm-tx"))
    if ptype is ProofType.PAYMENT:
        return PaymentProof(tx_hash=_parse_tx_hash(raw, "payment"))
    if ptype is ProofType.JSON:
        obj = _load_json_object(raw)
        if obj is None:
            raise ProofError("json proof must be a JSON object")
        return JsonProof(data=obj)

    # ADDRESS
    candidate = raw
    obj = _load_json_object(raw)
    if obj is not None and isinstance(obj.get("address"), str):
        candidate = obj["address"]
    if not _ADDRESS_RE.match(candidate):
        raise ProofError("address proof must be a 20-byte hex address")
    return AddressProof(address=candidate)
