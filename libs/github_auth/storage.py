"""Key/value storage for per-browser OAuth state.

Everything a browser-only client would keep in ``sessionStorage`` (pending
state and verifier, the access token, its expiry, the cached profile) is kept
server-side instead, namespaced by the opaque browser id from the session
cookie.

Backends:
- MemoryBackend: process-local dict with TTLs and an explicit sweep, for
  development and single-process deployments
- RedisBackend: redis.asyncio client, TTLs enforced by Redis

Single-Use Enforcement:
  ``take()`` reads and deletes keys in one step. MemoryBackend never awaits
  between the read and the delete; RedisBackend wraps GET + DEL in a
  MULTI/EXEC pipeline.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

import redis.asyncio

logger = logging.getLogger(__name__)


class KeyValueBackend(ABC):
    """Async key/value store with optional per-key TTL."""

    @abstractmethod
    async def get(self, key: str) -> str | None: ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None: ...

    @abstractmethod
    async def delete(self, *keys: str) -> int: ...

    @abstractmethod
    async def take(self, *keys: str) -> list[str | None]:
        """Atomically read and delete ``keys``, returning values in order."""

    async def sweep(self) -> int:
        """Evict expired entries. Returns the number of entries removed."""
        return 0


class MemoryBackend(KeyValueBackend):
    """In-process backend. Expired entries are invisible and removed by sweep()."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[str, float | None]] = {}
        self._clock = clock

    def _live(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        return value

    async def get(self, key: str) -> str | None:
        return self._live(key)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._entries[key] = (value, expires_at)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._entries.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def take(self, *keys: str) -> list[str | None]:
        values = [self._live(key) for key in keys]
        for key in keys:
            self._entries.pop(key, None)
        return values

    async def sweep(self) -> int:
        now = self._clock()
        expired = [
            key
            for key, (_, expires_at) in self._entries.items()
            if expires_at is not None and expires_at <= now
        ]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.info("Swept expired auth entries", extra={"evicted": len(expired)})
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RedisBackend(KeyValueBackend):
    """Redis-backed store. Key format: {key_prefix}{browser_id}:{name}."""

    def __init__(self, redis_client: redis.asyncio.Redis, key_prefix: str = "gist_auth:") -> None:
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    @staticmethod
    def _decode(value: bytes | str | None) -> str | None:
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def get(self, key: str) -> str | None:
        return self._decode(await self.redis.get(self._key(key)))

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        if ttl_seconds:
            await self.redis.setex(self._key(key), ttl_seconds, value)
        else:
            await self.redis.set(self._key(key), value)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self.redis.delete(*(self._key(key) for key in keys)))

    async def take(self, *keys: str) -> list[str | None]:
        full_keys = [self._key(key) for key in keys]

        async with self.redis.pipeline(transaction=True) as pipe:
            for full_key in full_keys:
                pipe.get(full_key)
            pipe.delete(*full_keys)
            results = await pipe.execute()

        return [self._decode(value) for value in results[: len(full_keys)]]


class BrowserStorage:
    """View of a backend scoped to one browser id (the cookie value)."""

    def __init__(self, backend: KeyValueBackend, browser_id: str) -> None:
        if not browser_id:
            raise ValueError("browser_id must not be empty")
        self.backend = backend
        self.browser_id = browser_id

    def _key(self, name: str) -> str:
        return f"{self.browser_id}:{name}"

    async def get(self, name: str) -> str | None:
        return await self.backend.get(self._key(name))

    async def set(self, name: str, value: str, ttl_seconds: int | None = None) -> None:
        await self.backend.set(self._key(name), value, ttl_seconds)

    async def delete(self, *names: str) -> int:
        return await self.backend.delete(*(self._key(name) for name in names))

    async def take(self, *names: str) -> list[str | None]:
        return await self.backend.take(*(self._key(name) for name in names))


async def run_sweeper(backend: KeyValueBackend, interval_seconds: float) -> None:
    """Periodically evict abandoned login attempts until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await backend.sweep()
        except Exception:
            logger.exception("Auth storage sweep failed")
