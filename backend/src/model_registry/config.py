"""Registry configuration: default provider and smoke-test fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field

from main_config import DEFAULT_MODEL, ENABLED_PROVIDERS

DEFAULT_SENTINEL = "default"

SMOKE_TEST_INSTRUCTIONS = "This is an automated test."
SMOKE_TEST_MESSAGE = "Are you working correctly?"
SMOKE_TEST_SESSION_ID = "test-session"


@dataclass
class RegistryConfig:
    """Which providers to load and which one answers the `default` sentinel."""

    default_model: str = DEFAULT_MODEL
    enabled_providers: list[str] = field(default_factory=lambda: list(ENABLED_PROVIDERS))
