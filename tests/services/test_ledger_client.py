from __future__ import annotations

import pytest
from web3.exceptions import ContractLogicError, TimeExhausted

from vcanchor.services.errors import (
    AnchoringFailed,
    AnchoringIndeterminate,
    LedgerReadFailed,
    ValidationFailed,
)
from vcanchor.services.ledger_client import (
    InMemoryLedgerClient,
    Signer,
    Web3LedgerClient,
)

TO = "0x" + "ab" * 20
DIGEST = b"\x01" * 32
SIGNER = Signer.for_address("0x" + "cd" * 20)


@pytest.fixture
def ledger() -> InMemoryLedgerClient:
    return InMemoryLedgerClient()


# ---- in-process ledger ----


def test_mint_assigns_sequential_tokens(ledger: InMemoryLedgerClient) -> None:
    ledger.set_next_token_id(42)
    first = ledger.mint_credential(TO, DIGEST, "", SIGNER)
    second = ledger.mint_credential(TO, DIGEST, "", SIGNER)
    assert (first.token_id, second.token_id) == (42, 43)
    assert first.tx_hash != second.tx_hash
    assert ledger.read_credential_hash(42) == DIGEST
    assert ledger.fetch_mint(first.tx_hash) == first


def test_mint_validates_arguments(ledger: InMemoryLedgerClient) -> None:
    with pytest.raises(ValidationFailed, match="recipient"):
        ledger.mint_credential("0x1234", DIGEST, "", SIGNER)
    with pytest.raises(ValidationFailed, match="32 bytes"):
        ledger.mint_credential(TO, b"\x01" * 31, "", SIGNER)
    assert ledger.mint_calls == []


def test_unknown_token_read_fails(ledger: InMemoryLedgerClient) -> None:
    with pytest.raises(LedgerReadFailed):
        ledger.read_credential_hash(1)


def test_held_mint_resolves_on_include(ledger: InMemoryLedgerClient) -> None:
    ledger.hold_next_mint()
    with pytest.raises(AnchoringIndeterminate) as excinfo:
        ledger.mint_credential(TO, DIGEST, "", SIGNER)
    tx_hash = excinfo.value.tx_hash

    assert ledger.fetch_mint(tx_hash) is None
    ledger.include(tx_hash)
    assert ledger.fetch_mint(tx_hash).token_id == 1


def test_reverted_mint_reported_on_fetch(ledger: InMemoryLedgerClient) -> None:
    ledger.hold_next_mint()
    with pytest.raises(AnchoringIndeterminate) as excinfo:
        ledger.mint_credential(TO, DIGEST, "", SIGNER)
    ledger.revert(excinfo.value.tx_hash)

    with pytest.raises(AnchoringFailed) as failed:
        ledger.fetch_mint(excinfo.value.tx_hash)
    assert failed.value.stage == "revert"


def test_fetch_mint_rejects_malformed_hash(ledger: InMemoryLedgerClient) -> None:
    with pytest.raises(ValidationFailed):
        ledger.fetch_mint("0x1234")


def test_read_random_bound(ledger: InMemoryLedgerClient) -> None:
    ledger.queue_random(17)
    assert ledger.read_random(10) == 7
    assert 0 <= ledger.read_random(3) < 3
    with pytest.raises(ValidationFailed):
        ledger.read_random(0)


def test_has_identity(ledger: InMemoryLedgerClient) -> None:
    ledger.register_identity(TO)
    assert ledger.has_identity(TO.upper().replace("0X", "0x")) is True
    assert ledger.has_identity("0x" + "00" * 20) is False


def test_pay_subscription_sends_plan_price(ledger: InMemoryLedgerClient) -> None:
    ledger.set_plan_price(1, 10**18)
    receipt = ledger.pay_subscription(1, SIGNER)
    assert receipt.tx_hash.startswith("0x")
    assert ledger.payments == [(1, SIGNER.address, 10**18)]


def test_pay_subscription_unknown_plan(ledger: InMemoryLedgerClient) -> None:
    with pytest.raises(ValidationFailed, match="Unknown plan key 5"):
        ledger.pay_subscription(5, SIGNER)
    assert ledger.payments == []


def test_signer_for_address_rejects_garbage() -> None:
    with pytest.raises(ValidationFailed):
        Signer.for_address("not-an-address")


def test_signer_from_private_key_derives_address() -> None:
    signer = Signer.from_private_key("0x" + "11" * 32)
    assert signer.account is not None
    assert signer.address == signer.account.address


# ---- web3 client write-outcome mapping ----


class _FakeEth:
    def __init__(self, receipt=None, wait_error: Exception | None = None) -> None:
        self._receipt = receipt
        self._wait_error = wait_error

    def wait_for_transaction_receipt(self, tx_hash, timeout):
        if self._wait_error is not None:
            raise self._wait_error
        return self._receipt


class _FakeWeb3:
    def __init__(self, eth: _FakeEth) -> None:
        self.eth = eth


class _FakeCall:
    def __init__(self, error: Exception | None = None) -> None:
        self._error = error

    def transact(self, tx):
        if self._error is not None:
            raise self._error
        return b"\x22" * 32


def _client(eth: _FakeEth) -> Web3LedgerClient:
    return Web3LedgerClient(
        _FakeWeb3(eth),  # type: ignore[arg-type]
        chain_id=114,
        did_registry_address=None,
        credential_nft_address=None,
        rng_helper_address=None,
        subscription_manager_address=None,
        receipt_timeout=5,
    )


def test_send_maps_revert_during_estimation() -> None:
    client = _client(_FakeEth())
    with pytest.raises(AnchoringFailed) as excinfo:
        client._send(_FakeCall(ContractLogicError("execution reverted: no")), SIGNER)
    assert excinfo.value.stage == "revert"


def test_send_maps_network_error_to_submission_failure() -> None:
    client = _client(_FakeEth())
    with pytest.raises(AnchoringFailed) as excinfo:
        client._send(_FakeCall(ConnectionError("refused")), SIGNER)
    assert excinfo.value.stage == "submission"


def test_send_maps_receipt_timeout_to_indeterminate() -> None:
    client = _client(_FakeEth(wait_error=TimeExhausted("slow")))
    with pytest.raises(AnchoringIndeterminate) as excinfo:
        client._send(_FakeCall(), SIGNER)
    assert excinfo.value.tx_hash == "0x" + "22" * 32


def test_send_maps_failed_status_to_revert() -> None:
    client = _client(_FakeEth(receipt={"status": 0, "blockNumber": 1}))
    with pytest.raises(AnchoringFailed) as excinfo:
        client._send(_FakeCall(), SIGNER)
    assert excinfo.value.stage == "revert"


def test_send_returns_included_receipt() -> None:
    client = _client(_FakeEth(receipt={"status": 1, "blockNumber": 12}))
    tx_hash, receipt = client._send(_FakeCall(), SIGNER)
    assert tx_hash == "0x" + "22" * 32
    assert receipt["blockNumber"] == 12


def test_unconfigured_contract_rejected() -> None:
    client = _client(_FakeEth())
    with pytest.raises(ValidationFailed, match="CredentialNFT"):
        client.read_credential_hash(1)
