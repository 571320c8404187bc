"""
Manual smoke test for the configured model providers.

This is not a formal test suite; it's a small script you can run manually
from the `backend/` directory:

    python -m src.model_registry.smoke_test [provider ...]

It uses the in-memory store, so it only needs the model backends themselves
(OpenAI credentials, a running Ollama server) to be reachable.
"""

from __future__ import annotations

import asyncio
import sys

from main_config import ENABLED_PROVIDERS

from ..logging_config import setup_logging
from ..session_store import MEMORY_URL, create_store
from .providers import build_providers
from .registry import ProviderRegistry


async def run(names: list[str]) -> int:
    setup_logging()
    registry = ProviderRegistry(create_store(MEMORY_URL))
    providers = build_providers(names, registry)

    failures = 0
    for provider in providers:
        print(f"Testing provider '{provider.name}'...")
        result = await registry.test_provider(provider)
        print("Result:", result.to_dict())
        if not result.success:
            failures += 1

    print(f"{len(providers) - failures}/{len(providers)} providers passed")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run(sys.argv[1:] or ENABLED_PROVIDERS)))
