"""Provider registry: smoke-tests providers at load time and serves lookups by name."""

from __future__ import annotations

import asyncio
import importlib
import inspect
import logging
from collections.abc import Iterable
from typing import Any

from ..errors import LeiaRunnerError, NotFoundError
from ..session_store.keys import VALIDATED_MODELS_KEY
from ..session_store.store import SessionStore
from .config import (
    DEFAULT_SENTINEL,
    SMOKE_TEST_INSTRUCTIONS,
    SMOKE_TEST_MESSAGE,
    SMOKE_TEST_SESSION_ID,
    RegistryConfig,
)
from .models import SmokeTestResult
from .providers.base import ModelProvider
from .sync import ModelSyncService

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Owns the set of candidate providers and the subset that passed validation.

    The validated set only grows through `initialize` and `register_model`;
    lookups never mutate it. Validation flags and the public model listing are
    written to the store so other processes see the same provider set.
    """

    def __init__(
        self,
        store: SessionStore,
        providers: Iterable[ModelProvider] = (),
        config: RegistryConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or RegistryConfig()
        self._default_model = self.config.default_model
        self._candidates: dict[str, ModelProvider] = {}
        self._models: dict[str, ModelProvider] = {}
        self._lock = asyncio.Lock()
        self.sync = ModelSyncService(store, self)
        self.add_candidates(providers)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def add_candidates(self, providers: Iterable[ModelProvider]) -> None:
        """Add providers to the set scanned by `initialize`."""
        for provider in providers:
            self._candidates[provider.name] = provider

    async def initialize(self) -> None:
        """Smoke-test every candidate; one failure never aborts the others."""
        persisted = await self.store.hgetall(VALIDATED_MODELS_KEY)
        if persisted:
            logger.info("Previously validated providers: %s", sorted(k for k, v in persisted.items() if v == "true"))

        for name, provider in self._candidates.items():
            result = await self.test_provider(provider, name)
            if result.success:
                self._models[name] = provider
                await self.store.hset(VALIDATED_MODELS_KEY, {name: "true"})
                logger.info("Provider '%s' loaded and validated", name)
            else:
                await self.store.hset(VALIDATED_MODELS_KEY, {name: "false"})
                logger.error("Provider '%s' failed its smoke test: %s", name, result.errors)

        if self._default_model not in self._models:
            if self._models:
                fallback = next(iter(self._models))
                logger.warning(
                    "Default provider '%s' is not validated; using '%s' instead",
                    self._default_model,
                    fallback,
                )
                self._default_model = fallback
            else:
                logger.warning("No validated providers available")

        logger.info("Provider registry initialized. Default provider: %s", self._default_model)
        await self.notify_model_changes()

    async def test_provider(self, provider: Any, name: str | None = None) -> SmokeTestResult:
        """Structural check, then a live create-session / send-message round trip."""
        name = name or getattr(provider, "name", "unknown")
        logger.info("Running smoke test for provider '%s'", name)
        result = SmokeTestResult()

        if not callable(getattr(provider, "send_message", None)):
            result.fail("Provider does not implement send_message")
        if not callable(getattr(provider, "create_session", None)):
            result.fail("Provider does not implement create_session")
        if not result.success:
            return result

        try:
            session_data = await provider.create_session(
                instructions=SMOKE_TEST_INSTRUCTIONS,
                session_id=SMOKE_TEST_SESSION_ID,
            )
            response = await provider.send_message(
                message=SMOKE_TEST_MESSAGE,
                session_data=session_data,
                session_id=SMOKE_TEST_SESSION_ID,
            )
        except Exception as e:  # any failure here means the provider is unusable
            result.fail(f"Smoke test error: {e}")
            return result

        message = response.get("message") if isinstance(response, dict) else None
        if not isinstance(message, str) or not message.strip():
            result.fail("Provider did not return a valid response")
        return result

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_model(self, name: str = DEFAULT_SENTINEL) -> ModelProvider:
        if name == DEFAULT_SENTINEL:
            if self._default_model in self._models:
                return self._models[self._default_model]
            if self._models:
                return next(iter(self._models.values()))
        elif name in self._models:
            return self._models[name]
        raise NotFoundError(f"Model '{name}' not found or not validated", details={"model": name})

    def available_models(self) -> list[str]:
        return list(self._models)

    def is_validated(self, name: str) -> bool:
        return name in self._models

    @property
    def default_model(self) -> str:
        return self._default_model

    async def set_default_model(self, name: str) -> None:
        if name not in self._models:
            raise NotFoundError(f"Model '{name}' not found", details={"model": name})
        self._default_model = name
        await self.notify_model_changes()

    # ------------------------------------------------------------------
    # Hot registration
    # ------------------------------------------------------------------

    async def register_model(self, name: str, provider: ModelProvider | str) -> dict[str, Any]:
        """
        Load a provider at runtime and admit it only if its smoke test passes.

        `provider` is an instance or a `"package.module:attribute"` path naming
        an instance or a provider class. Returns `{"success": True}` or
        `{"success": False, "errors": [...]}`.
        """
        try:
            instance = _resolve_provider(provider)
        except (ImportError, AttributeError, TypeError, ValueError) as e:
            logger.error("Error loading provider '%s': %s", name, e)
            return {"success": False, "errors": [str(e)]}

        result = await self.test_provider(instance, name)
        async with self._lock:
            if not result.success:
                # A live provider under this name keeps its validated flag.
                if name not in self._models:
                    await self.store.hset(VALIDATED_MODELS_KEY, {name: "false"})
                logger.error("Provider '%s' rejected: %s", name, result.errors)
                return result.to_dict()
            instance.name = name
            self._candidates[name] = instance
            self._models[name] = instance
            await self.store.hset(VALIDATED_MODELS_KEY, {name: "true"})

        logger.info("Provider '%s' registered", name)
        await self.notify_model_changes()
        return result.to_dict()

    async def notify_model_changes(self) -> None:
        """Resync the shared model listing; a failed sync is logged, not raised."""
        try:
            await self.sync.sync_models()
        except LeiaRunnerError as e:
            logger.error("Error notifying model changes: %s", e)


def _resolve_provider(provider: ModelProvider | str) -> Any:
    if not isinstance(provider, str):
        return provider
    module_path, sep, attr = provider.partition(":")
    if not sep or not module_path or not attr:
        raise ValueError(f"Provider path must look like 'package.module:attribute', got {provider!r}")
    target = getattr(importlib.import_module(module_path), attr)
    if inspect.isclass(target):
        return target()
    return target
