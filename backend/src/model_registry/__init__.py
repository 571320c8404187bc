"""Provider registry: pluggable model providers validated by a smoke test at load time."""

from .config import RegistryConfig
from .models import SessionHandle, SessionRecord, SmokeTestResult
from .providers import ModelProvider, build_providers
from .registry import ProviderRegistry
from .sync import ModelSyncService

__all__ = [
    "ModelProvider",
    "ModelSyncService",
    "ProviderRegistry",
    "RegistryConfig",
    "SessionHandle",
    "SessionRecord",
    "SmokeTestResult",
    "build_providers",
]
