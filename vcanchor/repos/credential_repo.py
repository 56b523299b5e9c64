from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import replace
from typing import Protocol

from vcanchor.models.credential import Credential


class CredentialRepo(Protocol):
    async def get(self, credential_id: int) -> Credential | None: ...
    async def add(self, credential: Credential) -> Credential: ...
    async def save(self, credential: Credential) -> None: ...
    async def list_pending_anchors(self) -> list[Credential]: ...

    def locked(
        self, credential_id: int
    ) -> AbstractAsyncContextManager[Credential | None]:
        """Load the credential and hold it exclusively until the block exits.

        Every status transition runs inside this block so two issuers (or
        one issuer double-clicking) cannot both observe ``vc_json is None``
        and mint twice.
        """
        ...


class InMemoryCredentialRepo:
    """Dev and test backend.

    A per-id lock exists only while some task holds or waits for it.
    """

    def __init__(self) -> None:
        self._by_id: dict[int, Credential] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: dict[int, int] = {}
        self._next_id = 1

    def clear(self) -> None:
        self._by_id.clear()
        self._locks.clear()
        self._lock_users.clear()
        self._next_id = 1

    async def get(self, credential_id: int) -> Credential | None:
        return self._by_id.get(credential_id)

    async def add(self, credential: Credential) -> Credential:
        if credential.id <= 0:
            credential = replace(credential, id=self._next_id)
        self._next_id = max(self._next_id, credential.id + 1)
        self._by_id[credential.id] = credential
        return credential

    async def save(self, credential: Credential) -> None:
        if credential.id not in self._by_id:
            raise KeyError("credential not found")
        self._by_id[credential.id] = credential

    async def list_pending_anchors(self) -> list[Credential]:
        return [c for c in self._by_id.values() if c.pending_anchor is not None]

    @asynccontextmanager
    async def locked(self, credential_id: int) -> AsyncIterator[Credential | None]:
        lock = self._locks.setdefault(credential_id, asyncio.Lock())
        self._lock_users[credential_id] = self._lock_users.get(credential_id, 0) + 1
        try:
            async with lock:
                yield self._by_id.get(credential_id)
        finally:
            self._lock_users[credential_id] -= 1
            if not self._lock_users[credential_id]:
                del self._lock_users[credential_id]
                del self._locks[credential_id]
