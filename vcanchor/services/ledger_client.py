"""Ledger anchoring client.

Wraps the contract calls this service makes against the external ledger:

  mint_credential       write  CredentialNFT.mintCredential + CredentialMinted
  fetch_mint            read   receipt read-back for reconciliation
  read_credential_hash  read   CredentialNFT.getVcHash
  has_identity          read   DIDRegistry.hasDID
  read_random           read   RngHelper.randomMod
  read_plan_price       read   SubscriptionManager.planPriceWei
  pay_subscription      write  SubscriptionManager.paySubscription (payable)

WRITE OUTCOMES
--------------
Every write ends in exactly one of:

  ValidationFailed        bad arguments, nothing was sent
  AnchoringFailed         stage="submission": signing/network failure before
                          the node accepted the transaction
                          stage="revert": gas estimation reverted, or the
                          receipt came back with status 0
  AnchoringIndeterminate  the transaction was sent but its inclusion could
                          not be confirmed (receipt timeout, connection lost
                          while waiting, or an included receipt without a
                          decodable CredentialMinted event)
  success                 an included receipt with status 1 (and, for mints,
                          a decoded token id)

Indeterminate carries the transaction hash when one is known so that an
operator can read it back with fetch_mint before anything is retried.  The
ledger offers no deduplication key for mints, so retrying an indeterminate
write risks a second token.

The methods are synchronous (web3's HTTP provider blocks); async callers
run them through ``asyncio.to_thread``.
"""

from __future__ import annotations

import logging
import re
import secrets
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import is_address, keccak, to_checksum_address
from web3 import Web3
from web3.exceptions import (
    ContractLogicError,
    TimeExhausted,
    TransactionNotFound,
    Web3Exception,
)
from web3.logs import DISCARD

from vcanchor.core.config import SETTINGS, Settings
from vcanchor.core.metrics import LEDGER_CALL_DURATION, LEDGER_CALLS
from vcanchor.services.errors import (
    AnchoringFailed,
    AnchoringIndeterminate,
    AnchorServiceError,
    LedgerReadFailed,
    ValidationFailed,
)
from vcanchor.services.ledger_abi import (
    CREDENTIAL_NFT_ABI,
    DID_REGISTRY_ABI,
    RNG_HELPER_ABI,
    SUBSCRIPTION_MANAGER_ABI,
)

logger = logging.getLogger(__name__)

_TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Signer:
    """Who pays for and signs a write.

    With ``account`` set the transaction is signed locally and sent raw.
    Without it the node is asked to send from ``address`` (an account the
    node holds unlocked), which is how a caller that signs its own
    transactions is represented.
    """

    address: str
    account: LocalAccount | None = None

    @staticmethod
    def from_private_key(private_key: str) -> Signer:
        account = Account.from_key(private_key)
        return Signer(address=account.address, account=account)

    @staticmethod
    def for_address(address: str) -> Signer:
        if not is_address(address):
            raise ValidationFailed(f"invalid signer address {address!r}")
        return Signer(address=to_checksum_address(address))


@dataclass(frozen=True, slots=True)
class MintReceipt:
    token_id: int
    tx_hash: str


@dataclass(frozen=True, slots=True)
class TxReceipt:
    tx_hash: str
    block_number: int


@runtime_checkable
class LedgerClient(Protocol):
    def mint_credential(
        self, to_address: str, content_hash: bytes, metadata_uri: str, signer: Signer
    ) -> MintReceipt: ...

    def fetch_mint(self, tx_hash: str) -> MintReceipt | None: ...

    def read_credential_hash(self, token_id: int) -> bytes: ...

    def has_identity(self, address: str) -> bool: ...

    def read_random(self, bound: int) -> int: ...

    def read_plan_price(self, plan_key: int) -> int: ...

    def pay_subscription(self, plan_key: int, signer: Signer) -> TxReceipt: ...

    def is_connected(self) -> bool: ...


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


@contextmanager
def _observed(operation: str) -> Iterator[None]:
    start = time.monotonic()
    outcome = "ok"
    try:
        yield
    except AnchoringIndeterminate:
        outcome = "indeterminate"
        raise
    except ValidationFailed:
        outcome = "rejected"
        raise
    except AnchorServiceError:
        outcome = "failed"
        raise
    finally:
        LEDGER_CALLS.labels(operation=operation, outcome=outcome).inc()
        LEDGER_CALL_DURATION.labels(operation=operation).observe(
            time.monotonic() - start
        )


def _check_mint_args(to_address: str, content_hash: bytes) -> str:
    if not is_address(to_address):
        raise ValidationFailed(f"invalid recipient address {to_address!r}")
    if len(content_hash) != 32:
        raise ValidationFailed(
            f"content hash must be 32 bytes (got {len(content_hash)})"
        )
    return to_checksum_address(to_address)


def _check_bound(bound: int) -> None:
    if bound <= 0:
        raise ValidationFailed(f"bound must be positive (got {bound})")


def _check_tx_hash(tx_hash: str) -> None:
    if not _TX_HASH_RE.match(tx_hash):
        raise ValidationFailed(f"malformed transaction hash {tx_hash!r}")


def _revert_reason(exc: ContractLogicError) -> str:
    return getattr(exc, "message", None) or str(exc) or "execution reverted"


# ---------------------------------------------------------------------------
# web3 implementation
# ---------------------------------------------------------------------------


class Web3LedgerClient:
    """LedgerClient over an EVM JSON-RPC endpoint.

    Holds one Web3 connection and read-only contract handles for the
    lifetime of the process.  Nothing on the instance changes after
    construction.
    """

    def __init__(
        self,
        w3: Web3,
        *,
        chain_id: int,
        did_registry_address: str | None,
        credential_nft_address: str | None,
        rng_helper_address: str | None,
        subscription_manager_address: str | None,
        receipt_timeout: int,
    ) -> None:
        self._w3 = w3
        self._chain_id = chain_id
        self._receipt_timeout = receipt_timeout
        self._did_registry = self._contract(did_registry_address, DID_REGISTRY_ABI)
        self._nft = self._contract(credential_nft_address, CREDENTIAL_NFT_ABI)
        self._rng = self._contract(rng_helper_address, RNG_HELPER_ABI)
        self._subscriptions = self._contract(
            subscription_manager_address, SUBSCRIPTION_MANAGER_ABI
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Web3LedgerClient:
        w3 = Web3(
            Web3.HTTPProvider(settings.ledger_rpc_url, request_kwargs={"timeout": 30})
        )
        logger.info(
            "Ledger client configured: rpc=%s chain_id=%d",
            settings.ledger_rpc_url,
            settings.ledger_chain_id,
        )
        return cls(
            w3,
            chain_id=settings.ledger_chain_id,
            did_registry_address=settings.did_registry_address,
            credential_nft_address=settings.credential_nft_address,
            rng_helper_address=settings.rng_helper_address,
            subscription_manager_address=settings.subscription_manager_address,
            receipt_timeout=settings.ledger_receipt_timeout,
        )

    def _contract(self, address: str | None, abi: list[dict]) -> Any:
        if not address:
            return None
        return self._w3.eth.contract(address=to_checksum_address(address), abi=abi)

    @staticmethod
    def _require(contract: Any, name: str) -> Any:
        if contract is None:
            raise ValidationFailed(f"{name} contract address is not configured")
        return contract

    def is_connected(self) -> bool:
        try:
            return bool(self._w3.is_connected())
        except (Web3Exception, OSError):
            return False

    # --- reads ------------------------------------------------------------

    def _call(self, fn: Any) -> Any:
        try:
            return fn.call()
        except (Web3Exception, OSError, ValueError) as exc:
            raise LedgerReadFailed(str(exc)) from exc

    def read_credential_hash(self, token_id: int) -> bytes:
        with _observed("read_hash"):
            nft = self._require(self._nft, "CredentialNFT")
            return bytes(self._call(nft.functions.getVcHash(token_id)))

    def has_identity(self, address: str) -> bool:
        with _observed("has_identity"):
            if not is_address(address):
                raise ValidationFailed(f"invalid address {address!r}")
            registry = self._require(self._did_registry, "DIDRegistry")
            return bool(
                self._call(registry.functions.hasDID(to_checksum_address(address)))
            )

    def read_random(self, bound: int) -> int:
        with _observed("read_random"):
            _check_bound(bound)
            rng = self._require(self._rng, "RngHelper")
            return int(self._call(rng.functions.randomMod(bound)))

    def read_plan_price(self, plan_key: int) -> int:
        with _observed("plan_price"):
            mgr = self._require(self._subscriptions, "SubscriptionManager")
            return int(self._call(mgr.functions.planPriceWei(plan_key)))

    # --- writes -----------------------------------------------------------

    def _send(self, fn: Any, signer: Signer, *, value: int = 0) -> tuple[str, Any]:
        """Submit ``fn`` and block until it is included.

        Returns (tx_hash, receipt) for a receipt with status 1.
        """
        try:
            if signer.account is not None:
                tx = fn.build_transaction(
                    {
                        "from": signer.address,
                        "value": value,
                        "nonce": self._w3.eth.get_transaction_count(
                            signer.address, "pending"
                        ),
                        "chainId": self._chain_id,
                    }
                )
                signed = signer.account.sign_transaction(tx)
                raw_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
            else:
                raw_hash = fn.transact({"from": signer.address, "value": value})
        except ContractLogicError as exc:
            raise AnchoringFailed(_revert_reason(exc), stage="revert") from exc
        except (Web3Exception, OSError, ValueError) as exc:
            raise AnchoringFailed(str(exc), stage="submission") from exc

        tx_hash = Web3.to_hex(raw_hash)
        logger.info("Transaction sent", extra={"tx_hash": tx_hash})

        try:
            receipt = self._w3.eth.wait_for_transaction_receipt(
                raw_hash, timeout=self._receipt_timeout
            )
        except TimeExhausted as exc:
            raise AnchoringIndeterminate(
                f"no receipt after {self._receipt_timeout}s", tx_hash=tx_hash
            ) from exc
        except (Web3Exception, OSError) as exc:
            raise AnchoringIndeterminate(
                f"lost connection awaiting receipt: {exc}", tx_hash=tx_hash
            ) from exc

        if receipt["status"] != 1:
            raise AnchoringFailed(f"transaction {tx_hash} reverted", stage="revert")
        return tx_hash, receipt

    def _decode_minted(self, receipt: Any, tx_hash: str) -> MintReceipt:
        events = self._nft.events.CredentialMinted().process_receipt(
            receipt, errors=DISCARD
        )
        if not events:
            raise AnchoringIndeterminate(
                "CredentialMinted event not found in receipt", tx_hash=tx_hash
            )
        return MintReceipt(token_id=int(events[0]["args"]["tokenId"]), tx_hash=tx_hash)

    def mint_credential(
        self, to_address: str, content_hash: bytes, metadata_uri: str, signer: Signer
    ) -> MintReceipt:
        with _observed("mint"):
            to = _check_mint_args(to_address, content_hash)
            nft = self._require(self._nft, "CredentialNFT")
            tx_hash, receipt = self._send(
                nft.functions.mintCredential(to, content_hash, metadata_uri), signer
            )
            minted = self._decode_minted(receipt, tx_hash)
            logger.info(
                "Credential minted token_id=%d to=%s",
                minted.token_id,
                to,
                extra={"tx_hash": tx_hash, "operation": "mint"},
            )
            return minted

    def fetch_mint(self, tx_hash: str) -> MintReceipt | None:
        with _observed("fetch_mint"):
            _check_tx_hash(tx_hash)
            self._require(self._nft, "CredentialNFT")
            try:
                receipt = self._w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                return None
            except (Web3Exception, OSError, ValueError) as exc:
                raise LedgerReadFailed(str(exc)) from exc
            if receipt["status"] != 1:
                raise AnchoringFailed(f"transaction {tx_hash} reverted", stage="revert")
            return self._decode_minted(receipt, tx_hash)

    def pay_subscription(self, plan_key: int, signer: Signer) -> TxReceipt:
        with _observed("pay"):
            mgr = self._require(self._subscriptions, "SubscriptionManager")
            price = int(self._call(mgr.functions.planPriceWei(plan_key)))
            if price == 0:
                raise ValidationFailed(f"Unknown plan key {plan_key}")
            tx_hash, receipt = self._send(
                mgr.functions.paySubscription(signer.address, plan_key),
                signer,
                value=price,
            )
            return TxReceipt(tx_hash=tx_hash, block_number=int(receipt["blockNumber"]))


# ---------------------------------------------------------------------------
# In-process implementation
# ---------------------------------------------------------------------------


class InMemoryLedgerClient:
    """Deterministic in-process ledger for local dev and tests.

    Besides the LedgerClient surface it exposes a few knobs tests use to
    drive failure paths: ``fail_next_mint``, ``hold_next_mint`` (the mint is
    sent but not included until ``include``), ``queue_random``.
    """

    def __init__(self) -> None:
        self._identities: set[str] = set()
        self._tokens: dict[int, bytes] = {}
        self._included: dict[str, MintReceipt] = {}
        self._held: dict[str, tuple[MintReceipt, bytes]] = {}
        self._reverted: set[str] = set()
        self._plan_prices: dict[int, int] = {}
        self._random_queue: list[int] = []
        self._next_token_id = 1
        self._block = 0
        self._fail_next: AnchorServiceError | None = None
        self._hold_next = False
        self.mint_calls: list[tuple[str, bytes, str, str]] = []
        self.payments: list[tuple[int, str, int]] = []

    # --- test/dev knobs ---------------------------------------------------

    def register_identity(self, address: str) -> None:
        self._identities.add(to_checksum_address(address))

    def set_plan_price(self, plan_key: int, price_wei: int) -> None:
        self._plan_prices[plan_key] = price_wei

    def set_next_token_id(self, token_id: int) -> None:
        self._next_token_id = token_id

    def queue_random(self, *values: int) -> None:
        self._random_queue.extend(values)

    def fail_next_mint(self, exc: AnchorServiceError) -> None:
        self._fail_next = exc

    def hold_next_mint(self) -> None:
        self._hold_next = True

    def include(self, tx_hash: str) -> None:
        minted, content_hash = self._held.pop(tx_hash)
        self._tokens[minted.token_id] = content_hash
        self._included[tx_hash] = minted

    def revert(self, tx_hash: str) -> None:
        self._held.pop(tx_hash)
        self._reverted.add(tx_hash)

    def reset(self) -> None:
        self.__init__()  # type: ignore[misc]

    # --- LedgerClient -----------------------------------------------------

    def is_connected(self) -> bool:
        return True

    def _tx_hash(self, *parts: object) -> str:
        self._block += 1
        return "0x" + keccak(text=":".join(map(str, (self._block, *parts)))).hex()

    def mint_credential(
        self, to_address: str, content_hash: bytes, metadata_uri: str, signer: Signer
    ) -> MintReceipt:
        with _observed("mint"):
            to = _check_mint_args(to_address, content_hash)
            self.mint_calls.append((to, content_hash, metadata_uri, signer.address))

            if self._fail_next is not None:
                exc, self._fail_next = self._fail_next, None
                raise exc

            token_id = self._next_token_id
            self._next_token_id += 1
            tx_hash = self._tx_hash("mint", to, token_id)
            minted = MintReceipt(token_id=token_id, tx_hash=tx_hash)

            if self._hold_next:
                self._hold_next = False
                self._held[tx_hash] = (minted, content_hash)
                raise AnchoringIndeterminate(
                    "no receipt before timeout", tx_hash=tx_hash
                )

            self._tokens[token_id] = content_hash
            self._included[tx_hash] = minted
            return minted

    def fetch_mint(self, tx_hash: str) -> MintReceipt | None:
        with _observed("fetch_mint"):
            _check_tx_hash(tx_hash)
            if tx_hash in self._reverted:
                raise AnchoringFailed(f"transaction {tx_hash} reverted", stage="revert")
            return self._included.get(tx_hash)

    def read_credential_hash(self, token_id: int) -> bytes:
        with _observed("read_hash"):
            if token_id not in self._tokens:
                raise LedgerReadFailed(f"unknown token {token_id}")
            return self._tokens[token_id]

    def has_identity(self, address: str) -> bool:
        with _observed("has_identity"):
            if not is_address(address):
                raise ValidationFailed(f"invalid address {address!r}")
            return to_checksum_address(address) in self._identities

    def read_random(self, bound: int) -> int:
        with _observed("read_random"):
            _check_bound(bound)
            if self._random_queue:
                return self._random_queue.pop(0) % bound
            return secrets.randbelow(bound)

    def read_plan_price(self, plan_key: int) -> int:
        with _observed("plan_price"):
            return self._plan_prices.get(plan_key, 0)

    def pay_subscription(self, plan_key: int, signer: Signer) -> TxReceipt:
        with _observed("pay"):
            price = self._plan_prices.get(plan_key, 0)
            if price == 0:
                raise ValidationFailed(f"Unknown plan key {plan_key}")
            tx_hash = self._tx_hash("pay", signer.address, plan_key)
            self.payments.append((plan_key, signer.address, price))
            return TxReceipt(tx_hash=tx_hash, block_number=self._block)


# ---------------------------------------------------------------------------
# Module-level singletons
# ---------------------------------------------------------------------------
# One shared client per process, chosen from configuration the same way the
# Redis pool is: a real backend when configured, in-process otherwise.

if SETTINGS.ledger_rpc_url:
    ledger_client: LedgerClient = Web3LedgerClient.from_settings(SETTINGS)
else:
    ledger_client = InMemoryLedgerClient()

# Signer the platform uses to anchor issuer-approved credentials.  The
# in-process ledger does not check signatures, so a throwaway key is enough
# there; against a real ledger the key must be configured.
if SETTINGS.platform_signer_private_key:
    platform_signer: Signer | None = Signer.from_private_key(
        SETTINGS.platform_signer_private_key
    )
elif isinstance(ledger_client, InMemoryLedgerClient):
    platform_signer = Signer.from_private_key("0x" + "11" * 32)
else:
    platform_signer = None
