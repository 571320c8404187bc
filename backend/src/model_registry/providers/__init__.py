"""Model provider implementations and the factory used at start-up."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from .base import ModelProvider
from .ollama import OllamaProvider
from .openai_assistant import OpenAIAssistantProvider
from .openai_responses import OpenAIResponsesProvider
from .wizard import WizardProvider

if TYPE_CHECKING:
    from ..registry import ProviderRegistry

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[ModelProvider]] = {
    OpenAIAssistantProvider.name: OpenAIAssistantProvider,
    OpenAIResponsesProvider.name: OpenAIResponsesProvider,
    OllamaProvider.name: OllamaProvider,
    WizardProvider.name: WizardProvider,
}


def build_providers(names: Iterable[str], registry: ProviderRegistry | None = None) -> list[ModelProvider]:
    """Instantiate the named providers; unknown names are logged and skipped."""
    providers: list[ModelProvider] = []
    for name in names:
        cls = PROVIDER_CLASSES.get(name)
        if cls is None:
            logger.warning("Unknown provider '%s' in configuration; skipping", name)
            continue
        provider = cls()
        if isinstance(provider, WizardProvider) and registry is not None:
            provider.bind(registry)
        providers.append(provider)
    return providers


__all__ = [
    "ModelProvider",
    "OllamaProvider",
    "OpenAIAssistantProvider",
    "OpenAIResponsesProvider",
    "WizardProvider",
    "PROVIDER_CLASSES",
    "build_providers",
]
