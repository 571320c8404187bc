"""Model listing endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from src.model_registry.registry import ProviderRegistry

from .deps import get_registry, require_runner_key

router = APIRouter(tags=["models"], dependencies=[Depends(require_runner_key)])


@router.get("/models")
async def list_models(registry: ProviderRegistry = Depends(get_registry)) -> dict[str, Any]:
    """Validated providers and the default, as last published to the store."""
    return await registry.sync.get_models()
