"""Wizard agent configuration: loop bounds, models and catalog settings."""

from __future__ import annotations

from pathlib import Path

from main_config import (
    CATALOG_API_KEY,
    DESIGNER_BACKEND_URL,
    OPENAI_MODEL,
    OPENAI_STRUCTURED_MODEL,
    WIZARD_SYSTEM_PROMPT_PATH as _WIZARD_SYSTEM_PROMPT_PATH,
)

WIZARD_SYSTEM_PROMPT_PATH = Path(_WIZARD_SYSTEM_PROMPT_PATH)

MAX_ITERATIONS = 15
CONVERSATION_TTL_SECONDS = 3600
STREAM_QUEUE_SIZE = 32

WIZARD_CHAT_MODEL = OPENAI_MODEL
STRUCTURED_MODEL = OPENAI_STRUCTURED_MODEL

CATALOG_BASE_URL = DESIGNER_BACKEND_URL
CATALOG_KEY = CATALOG_API_KEY
CATALOG_TIMEOUT_SECONDS = 30.0
DEFAULT_SEARCH_LIMIT = 5

ITERATION_LIMIT_MESSAGE = "Process took too many steps. Please try refining your request."
CANCELLED_MESSAGE = "Turn cancelled"
