"""Cache maintenance endpoints: filtered purge and key counts."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from src.errors import ValidationError
from src.session_store.purge import PurgeEngine, PurgeRequest

from .deps import get_purge_engine, require_runner_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cache", tags=["cache"], dependencies=[Depends(require_runner_key)])


def _parse_metadata(raw: str | None) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError("Invalid metadata format. Must be valid JSON", details={"metadata": raw}) from e
    if not isinstance(value, dict):
        raise ValidationError("metadata must be a JSON object", details={"metadata": raw})
    return value


@router.delete("/purge")
async def purge_cache(
    f: str = Query("all", description="Time frame: Xh, Xd, Xw, Xm or 'all'"),
    date: str | None = Query(None, description="ISO date or Unix timestamp; purge entries created up to it"),
    session_id: str | None = Query(None, alias="sessionId"),
    provider: str | None = Query(None, description="Only sessions created on this provider"),
    metadata: str | None = Query(None, description="JSON object matched against LEIA metadata"),
    engine: PurgeEngine = Depends(get_purge_engine),
) -> dict[str, Any]:
    """Delete cached sessions, LEIA metadata and model listings matching every given filter."""
    request = PurgeRequest(
        time_frame=f,
        specific_date=date,
        session_id=session_id,
        model_name=provider,
        metadata=_parse_metadata(metadata),
    )
    result = await engine.purge(request)
    return result.to_dict()


@router.get("/stats")
async def cache_stats(engine: PurgeEngine = Depends(get_purge_engine)) -> dict[str, Any]:
    return await engine.cache_stats()
