"""Publishes the validated provider list to the store for other processes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..session_store.keys import MODELS_AVAILABLE_KEY, MODELS_DEFAULT_KEY
from ..session_store.store import SessionStore

if TYPE_CHECKING:
    from .registry import ProviderRegistry

logger = logging.getLogger(__name__)


class ModelSyncService:
    """Writes `models:available` and `models:default`; concurrent syncs collapse into one."""

    def __init__(self, store: SessionStore, registry: ProviderRegistry) -> None:
        self.store = store
        self.registry = registry
        self.is_syncing = False

    async def sync_models(self, force: bool = False) -> None:
        if self.is_syncing and not force:
            logger.info("Model synchronization already in progress")
            return
        self.is_syncing = True
        try:
            await self.store.put_json(MODELS_AVAILABLE_KEY, self.registry.available_models())
            await self.store.put(MODELS_DEFAULT_KEY, self.registry.default_model)
            logger.info("Models synchronized to store")
        finally:
            self.is_syncing = False

    async def force_sync(self) -> None:
        await self.sync_models(force=True)

    async def get_models(self) -> dict[str, Any]:
        """Read the published listing, falling back to this process's default."""
        models = await self.store.get_json(MODELS_AVAILABLE_KEY)
        default = await self.store.get(MODELS_DEFAULT_KEY)
        return {
            "models": models if isinstance(models, list) else [],
            "default": default or self.registry.default_model,
        }
