"""TTL key/value store, key namespaces and the purge engine.

`src.session_store.sessions` is imported directly by callers; it depends on
the model registry.
"""

from .backends import InMemoryBackend, KeyValueBackend, RedisBackend
from .purge import PurgeEngine, PurgeRequest, PurgeResult, parse_specific_date, parse_time_frame
from .store import MEMORY_URL, SessionStore, create_store

__all__ = [
    "InMemoryBackend",
    "KeyValueBackend",
    "MEMORY_URL",
    "PurgeEngine",
    "PurgeRequest",
    "PurgeResult",
    "RedisBackend",
    "SessionStore",
    "create_store",
    "parse_specific_date",
    "parse_time_frame",
]
