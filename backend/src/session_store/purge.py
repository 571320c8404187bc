"""Filtered, batched deletion of cached sessions, LEIA metadata and model listings."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..errors import LeiaRunnerError, ValidationError
from .keys import (
    LEIA_META_PREFIX,
    MODELS_PREFIX,
    SESSION_PREFIX,
    VALIDATED_MODELS_KEY,
    leia_meta_key,
    session_key,
    strip_prefix,
)
from .store import SessionStore

logger = logging.getLogger(__name__)

BATCH_SIZE = 100

_TIME_FRAME_RE = re.compile(r"(\d+)([hdwm])")
_HOUR_MS = 60 * 60 * 1000
_UNIT_MS = {
    "h": _HOUR_MS,
    "d": 24 * _HOUR_MS,
    "w": 7 * 24 * _HOUR_MS,
    "m": 30 * 24 * _HOUR_MS,
}
# Millisecond timestamps for any date after 2001-09-09 have at least 11 digits.
_SECONDS_THRESHOLD = 10_000_000_000

PURGE_PATTERNS = (
    f"{SESSION_PREFIX}*",
    f"{LEIA_META_PREFIX}*",
    f"{MODELS_PREFIX}*",
    VALIDATED_MODELS_KEY,
)


def parse_time_frame(text: str | None) -> int | None:
    """`<int><h|d|w|m>` to milliseconds; `all` or empty means no time filter."""
    if not text or text == "all":
        return None
    match = _TIME_FRAME_RE.fullmatch(text)
    if not match:
        raise ValidationError(
            "Invalid time frame. Use Xh (hours), Xd (days), Xw (weeks), Xm (30-day months) or 'all'",
            details={"timeFrame": text},
        )
    amount, unit = match.groups()
    return int(amount) * _UNIT_MS[unit]


def parse_specific_date(text: str | None) -> int:
    """Epoch millis from a Unix timestamp (seconds or millis) or an ISO date/datetime."""
    if not text:
        raise ValidationError("A specific date is required")
    if text.isascii() and text.isdigit():
        value = int(text)
        return value * 1000 if value < _SECONDS_THRESHOLD else value
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(
            "Invalid date. Use ISO format (YYYY-MM-DD or YYYY-MM-DDTHH:mm:ss) or a Unix timestamp",
            details={"date": text},
        ) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


@dataclass
class PurgeRequest:
    time_frame: str = "all"
    specific_date: str | None = None
    session_id: str | None = None
    model_name: str | None = None
    metadata: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        self.time_frame = self.time_frame or "all"
        if self.time_frame != "all" and self.specific_date:
            raise ValidationError("Specify either a time frame or a specific date, not both")
        if self.metadata is not None and not isinstance(self.metadata, dict):
            raise ValidationError("metadata must be a JSON object")

    def applied_filters(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id or None,
            "modelName": self.model_name or None,
            "metadata": self.metadata or None,
        }


@dataclass
class PurgeResult:
    success: bool
    deleted_keys: int
    total_keys_found: int
    time_frame: str | None
    specific_date: str | None
    applied_filters: dict[str, Any]
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out = {
            "success": self.success,
            "deletedKeys": self.deleted_keys,
            "totalKeysFound": self.total_keys_found,
            "timeFrame": self.time_frame,
            "specificDate": self.specific_date,
            "appliedFilters": self.applied_filters,
        }
        if self.errors:
            out["errors"] = list(self.errors)
        return out


class PurgeEngine:
    """
    Deletes store entries matching a request.

    Filters run as a fixed pipeline (time, session id, model name, metadata),
    each one narrowing the previous candidate list.
    """

    def __init__(self, store: SessionStore, clock: Callable[[], float] | None = None) -> None:
        self.store = store
        self._clock = clock or time.time

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def cutoff_for(self, request: PurgeRequest) -> int | None:
        if request.specific_date:
            return parse_specific_date(request.specific_date)
        window = parse_time_frame(request.time_frame)
        return None if window is None else self._now_ms() - window

    async def collect_keys(self) -> list[str]:
        keys: list[str] = []
        for pattern in PURGE_PATTERNS:
            keys.extend(await self.store.scan(pattern))
        return keys

    # Filters ---------------------------------------------------------------

    async def filter_by_time(self, keys: list[str], cutoff: int) -> list[str]:
        kept = []
        for key in keys:
            if not key.startswith(SESSION_PREFIX):
                kept.append(key)
                continue
            created = await self.store.hget(key, "createdAt")
            if created and created.isascii() and created.isdigit() and int(created) <= cutoff:
                kept.append(key)
        return kept

    @staticmethod
    def filter_by_session(keys: list[str], session_id: str) -> list[str]:
        wanted = {session_key(session_id), leia_meta_key(session_id)}
        return [key for key in keys if key in wanted]

    async def filter_by_model(self, keys: list[str], model_name: str) -> list[str]:
        present = set(keys)
        kept = []
        for key in keys:
            if key.startswith(SESSION_PREFIX):
                if await self.store.hget(key, "modelName") == model_name:
                    kept.append(key)
                    meta = leia_meta_key(strip_prefix(key, SESSION_PREFIX))
                    if meta in present:
                        kept.append(meta)
            elif key.startswith(MODELS_PREFIX):
                kept.append(key)
        return _unique(kept)

    async def filter_by_metadata(self, keys: list[str], metadata: dict[str, Any]) -> list[str]:
        present = set(keys)
        expected = {k: str(v) for k, v in metadata.items()}
        kept = []
        for key in keys:
            if not key.startswith(LEIA_META_PREFIX):
                continue
            stored = await self.store.hgetall(key)
            if all(stored.get(k) == v for k, v in expected.items()):
                kept.append(key)
                session = session_key(strip_prefix(key, LEIA_META_PREFIX))
                if session in present:
                    kept.append(session)
        return _unique(kept)

    # Purge -----------------------------------------------------------------

    async def purge(self, request: PurgeRequest) -> PurgeResult:
        cutoff = self.cutoff_for(request)
        all_keys = await self.collect_keys()
        logger.info("Purge found %d keys", len(all_keys))

        candidates = all_keys
        if cutoff is not None:
            candidates = await self.filter_by_time(candidates, cutoff)
            logger.info("After time filter: %d keys", len(candidates))
        if request.session_id:
            candidates = self.filter_by_session(candidates, request.session_id)
            logger.info("After session filter: %d keys", len(candidates))
        if request.model_name:
            candidates = await self.filter_by_model(candidates, request.model_name)
            logger.info("After model filter: %d keys", len(candidates))
        if request.metadata:
            candidates = await self.filter_by_metadata(candidates, request.metadata)
            logger.info("After metadata filter: %d keys", len(candidates))

        deleted = 0
        errors: list[str] = []
        for start in range(0, len(candidates), BATCH_SIZE):
            batch = candidates[start : start + BATCH_SIZE]
            try:
                deleted += await self.store.delete(*batch)
            except LeiaRunnerError as e:
                logger.error("Purge batch starting at %d failed: %s", start, e)
                errors.append(f"batch {start // BATCH_SIZE}: {e}")

        result = PurgeResult(
            success=not errors,
            deleted_keys=deleted,
            total_keys_found=len(all_keys),
            time_frame=None if request.specific_date else request.time_frame,
            specific_date=request.specific_date or None,
            applied_filters=request.applied_filters(),
            errors=errors,
        )
        logger.info("Purge finished: %s", result.to_dict())
        return result

    async def cache_stats(self) -> dict[str, Any]:
        breakdown: dict[str, int] = {}
        for name, pattern in (
            ("sessions", f"{SESSION_PREFIX}*"),
            ("metadata", f"{LEIA_META_PREFIX}*"),
            ("models", f"{MODELS_PREFIX}*"),
        ):
            breakdown[name] = len(await self.store.scan(pattern))
        if await self.store.exists(VALIDATED_MODELS_KEY):
            breakdown["validatedModels"] = 1
        return {"total": sum(breakdown.values()), "breakdown": breakdown}


def _unique(keys: list[str]) -> list[str]:
    return list(dict.fromkeys(keys))
