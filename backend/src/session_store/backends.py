"""Key/value backends: Redis for deployments, an in-process dict for tests and local runs."""

from __future__ import annotations

import fnmatch
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..errors import PersistenceError


class KeyValueBackend(ABC):
    """
    Minimal Redis-shaped contract used by SessionStore.

    String values and hash values live in the same keyspace. Reads of absent or
    expired keys return None (or {} for hashes); unavailability raises
    PersistenceError.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        ...

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys; returns how many existed."""
        ...

    @abstractmethod
    async def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        ...

    @abstractmethod
    async def hget(self, key: str, field: str) -> str | None:
        ...

    @abstractmethod
    async def hgetall(self, key: str) -> dict[str, str]:
        ...

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def scan_iter(self, pattern: str, count: int = 100) -> AsyncIterator[str]:
        ...

    async def close(self) -> None:
        return None


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------


@contextmanager
def _redis_errors(operation: str, key: str | None = None) -> Iterator[None]:
    try:
        yield
    except RedisError as e:
        raise PersistenceError(
            f"Store unavailable during {operation}",
            details={"key": key, "reason": str(e)},
        ) from e


class RedisBackend(KeyValueBackend):
    """Backend over redis.asyncio with decoded (str) responses."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisBackend:
        return cls(Redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        with _redis_errors("get", key):
            return await self._client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        with _redis_errors("set", key):
            if ttl_seconds is not None:
                await self._client.set(key, value, ex=ttl_seconds)
            else:
                await self._client.set(key, value)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with _redis_errors("delete"):
            return int(await self._client.delete(*keys))

    async def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        with _redis_errors("hset", key):
            await self._client.hset(key, mapping=dict(mapping))

    async def hget(self, key: str, field: str) -> str | None:
        with _redis_errors("hget", key):
            return await self._client.hget(key, field)

    async def hgetall(self, key: str) -> dict[str, str]:
        with _redis_errors("hgetall", key):
            return dict(await self._client.hgetall(key) or {})

    async def expire(self, key: str, ttl_seconds: int) -> None:
        with _redis_errors("expire", key):
            await self._client.expire(key, ttl_seconds)

    async def exists(self, key: str) -> bool:
        with _redis_errors("exists", key):
            return bool(await self._client.exists(key))

    async def scan_iter(self, pattern: str, count: int = 100) -> AsyncIterator[str]:
        with _redis_errors("scan", pattern):
            async for key in self._client.scan_iter(match=pattern, count=count):
                yield key

    async def close(self) -> None:
        with _redis_errors("close"):
            await self._client.aclose()


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


@dataclass
class _Entry:
    value: Any  # str for plain keys, dict[str, str] for hashes
    expires_at: float | None = None


class InMemoryBackend(KeyValueBackend):
    """
    Dict-backed backend with lazy expiry.

    `clock` returns seconds since the epoch; tests pass a controllable clock to
    move time forward without sleeping.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.time
        self._data: dict[str, _Entry] = {}

    def _live(self, key: str) -> _Entry | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    async def get(self, key: str) -> str | None:
        entry = self._live(key)
        if entry is None or not isinstance(entry.value, str):
            return None
        return entry.value

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        self._data[key] = _Entry(value=value, expires_at=expires_at)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._live(key) is not None:
                del self._data[key]
                deleted += 1
        return deleted

    async def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        entry = self._live(key)
        if entry is None or not isinstance(entry.value, dict):
            entry = _Entry(value={})
            self._data[key] = entry
        entry.value.update({str(k): str(v) for k, v in mapping.items()})

    async def hget(self, key: str, field: str) -> str | None:
        entry = self._live(key)
        if entry is None or not isinstance(entry.value, dict):
            return None
        return entry.value.get(field)

    async def hgetall(self, key: str) -> dict[str, str]:
        entry = self._live(key)
        if entry is None or not isinstance(entry.value, dict):
            return {}
        return dict(entry.value)

    async def expire(self, key: str, ttl_seconds: int) -> None:
        entry = self._live(key)
        if entry is not None:
            entry.expires_at = self._clock() + ttl_seconds

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def scan_iter(self, pattern: str, count: int = 100) -> AsyncIterator[str]:
        for key in list(self._data):
            if fnmatch.fnmatchcase(key, pattern) and self._live(key) is not None:
                yield key
