"""Registry of quiz seeds handed out to users.

A seed drawn from the ledger is remembered per (user, seed) for
SEED_TTL_SECONDS.  An attempt is accepted only with a remembered seed, and
the seed is consumed once the attempt is recorded.  An expired seed looks
exactly like one that was never issued.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

from vcanchor.db.redis import redis_pool


def _key(user_id: str, seed: str) -> str:
    return f"seed:{user_id}:{seed.lower()}"


@runtime_checkable
class SeedRegistry(Protocol):
    async def remember(self, user_id: str, seed: str, ttl_seconds: int) -> None: ...

    async def was_issued(self, user_id: str, seed: str) -> bool: ...

    async def consume(self, user_id: str, seed: str) -> None: ...


class InMemorySeedRegistry:
    """Process-local registry with monotonic-clock expiry.

    The autouse fixture in conftest.py clears ``_expires`` between tests.
    """

    def __init__(self) -> None:
        self._expires: dict[str, float] = {}

    async def remember(self, user_id: str, seed: str, ttl_seconds: int) -> None:
        self._expires[_key(user_id, seed)] = time.monotonic() + ttl_seconds

    async def was_issued(self, user_id: str, seed: str) -> bool:
        key = _key(user_id, seed)
        expires = self._expires.get(key)
        if expires is None:
            return False
        if expires <= time.monotonic():
            del self._expires[key]
            return False
        return True

    async def consume(self, user_id: str, seed: str) -> None:
        self._expires.pop(_key(user_id, seed), None)


class RedisSeedRegistry:
    """Shared across API instances; Redis enforces the TTL."""

    _PREFIX = "vcanchor:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def remember(self, user_id: str, seed: str, ttl_seconds: int) -> None:
        await self._redis.set(self._PREFIX + _key(user_id, seed), "1", ex=ttl_seconds)

    async def was_issued(self, user_id: str, seed: str) -> bool:
        return bool(await self._redis.exists(self._PREFIX + _key(user_id, seed)))

    async def consume(self, user_id: str, seed: str) -> None:
        await self._redis.delete(self._PREFIX + _key(user_id, seed))


if redis_pool is not None:
    seed_registry: SeedRegistry = RedisSeedRegistry(redis_pool)
else:
    seed_registry = InMemorySeedRegistry()
