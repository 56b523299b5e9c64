from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def _getenv_address(name: str) -> str | None:
    raw = _getenv(name, "")
    if not raw:
        return None
    if not _ADDRESS_RE.match(raw):
        raise ValueError(f"{name} must be a 0x-prefixed 20-byte address (got {raw!r})")
    return raw


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None

    # Ledger (EVM JSON-RPC).  When ledger_rpc_url is None the service runs
    # against the in-process ledger.
    ledger_rpc_url: str | None
    ledger_chain_id: int
    did_registry_address: str | None
    credential_nft_address: str | None
    rng_helper_address: str | None
    subscription_manager_address: str | None
    platform_signer_private_key: str | None
    platform_issuer_did: str
    ledger_receipt_timeout: int

    # Grading collaborator (OpenAI-compatible chat completions)
    grader_api_key: str | None
    grader_api_base: str
    grader_model: str

    seed_ttl_seconds: int

    # PEM-encoded ES256 public key of the upstream token issuer.  Unset in
    # dev/test, where an ephemeral key pair is generated instead.
    jwt_public_key_pem: str | None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    receipt_timeout = _getenv_int("LEDGER_RECEIPT_TIMEOUT", 120)
    if receipt_timeout <= 0:
        raise ValueError(
            f"LEDGER_RECEIPT_TIMEOUT must be positive (got {receipt_timeout})"
        )

    seed_ttl = _getenv_int("SEED_TTL_SECONDS", 3600)
    if seed_ttl <= 0:
        raise ValueError(f"SEED_TTL_SECONDS must be positive (got {seed_ttl})")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv("LOG_JSON", "false").lower() in ("1", "true", "yes"),
        port=_getenv_int("PORT", 8000),
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        ledger_rpc_url=_getenv("LEDGER_RPC_URL", "") or None,
        ledger_chain_id=_getenv_int("LEDGER_CHAIN_ID", 114),
        did_registry_address=_getenv_address("DID_REGISTRY_ADDRESS"),
        credential_nft_address=_getenv_address("CREDENTIAL_NFT_ADDRESS"),
        rng_helper_address=_getenv_address("RNG_HELPER_ADDRESS"),
        subscription_manager_address=_getenv_address("SUBSCRIPTION_MANAGER_ADDRESS"),
        platform_signer_private_key=_getenv("PLATFORM_SIGNER_PRIVATE_KEY", "") or None,
        platform_issuer_did=_getenv(
            "PLATFORM_ISSUER_DID",
            "did:flare:0x0000000000000000000000000000000000000001",
        ),
        ledger_receipt_timeout=receipt_timeout,
        grader_api_key=_getenv("GRADER_API_KEY", "") or None,
        grader_api_base=_getenv("GRADER_API_BASE", "https://api.openai.com/v1"),
        grader_model=_getenv("GRADER_MODEL", "gpt-4o"),
        seed_ttl_seconds=seed_ttl,
        jwt_public_key_pem=_getenv("JWT_PUBLIC_KEY_PEM", "") or None,
    )


SETTINGS = load_settings()
