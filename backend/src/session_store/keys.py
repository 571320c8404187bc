"""Key namespaces shared by the session service, the wizard and the purge engine."""

from __future__ import annotations

SESSION_PREFIX = "session:"
LEIA_META_PREFIX = "leia:meta:"
MODELS_PREFIX = "models:"
WIZARD_PREFIX = "wizard:"
VALIDATED_MODELS_KEY = "validated_models"

MODELS_AVAILABLE_KEY = f"{MODELS_PREFIX}available"
MODELS_DEFAULT_KEY = f"{MODELS_PREFIX}default"


def session_key(session_id: str) -> str:
    return f"{SESSION_PREFIX}{session_id}"


def leia_meta_key(session_id: str) -> str:
    return f"{LEIA_META_PREFIX}{session_id}"


def wizard_key(session_id: str) -> str:
    return f"{WIZARD_PREFIX}{session_id}"


def strip_prefix(key: str, prefix: str) -> str:
    return key[len(prefix):] if key.startswith(prefix) else key
