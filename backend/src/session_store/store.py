"""TTL-bounded key/value store used for sessions, wizard conversations and model listings."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from .backends import InMemoryBackend, KeyValueBackend, RedisBackend

logger = logging.getLogger(__name__)

MEMORY_URL = "memory://"


class SessionStore:
    """
    Facade over a KeyValueBackend.

    `get` on an absent or expired key returns None and never raises; backend
    failures surface as PersistenceError. Reads never renew a TTL, and every
    write that passes `ttl_seconds` resets the expiry to that value.
    """

    def __init__(self, backend: KeyValueBackend) -> None:
        self.backend = backend

    # Plain values ---------------------------------------------------------

    async def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        await self.backend.set(key, value, ttl_seconds)

    async def get(self, key: str) -> str | None:
        return await self.backend.get(key)

    async def delete(self, *keys: str) -> int:
        return await self.backend.delete(*keys)

    async def exists(self, key: str) -> bool:
        return await self.backend.exists(key)

    # JSON values ----------------------------------------------------------

    async def put_json(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        data = json.dumps(value, ensure_ascii=False, default=str)
        await self.put(key, data, ttl_seconds)

    async def get_json(self, key: str) -> Any | None:
        """Load a JSON value; a malformed payload is treated as missing."""
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding malformed JSON payload under %s", key)
            return None

    # Hashes ---------------------------------------------------------------

    async def hset(self, key: str, mapping: Mapping[str, Any], ttl_seconds: int | None = None) -> None:
        """Write hash fields; None becomes an empty string, everything else str()."""
        encoded = {k: "" if v is None else str(v) for k, v in mapping.items()}
        await self.backend.hset(key, encoded)
        if ttl_seconds is not None:
            await self.backend.expire(key, ttl_seconds)

    async def hget(self, key: str, field: str) -> str | None:
        return await self.backend.hget(key, field)

    async def hgetall(self, key: str) -> dict[str, str]:
        return await self.backend.hgetall(key)

    # Enumeration ----------------------------------------------------------

    async def scan(self, pattern: str) -> list[str]:
        return [key async for key in self.backend.scan_iter(pattern, count=100)]

    async def close(self) -> None:
        await self.backend.close()


def create_store(url: str, clock: Callable[[], float] | None = None) -> SessionStore:
    """Build a store from a URL: `memory://` for the in-process backend, otherwise Redis."""
    if url.startswith(MEMORY_URL):
        logger.info("Using in-memory session store")
        return SessionStore(InMemoryBackend(clock=clock))
    logger.info("Using Redis session store at %s", url)
    return SessionStore(RedisBackend.from_url(url))
