"""Console logging setup for the runner process."""

from __future__ import annotations

import logging

from main_config import LOG_LEVEL

_LOGGING_CONFIGURED = False

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def setup_logging(level_name: str | None = None) -> None:
    """Attach one console handler to the root logger. Safe to call repeatedly."""
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    level_name = (level_name or LOG_LEVEL or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level_value)
    has_console = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in root_logger.handlers
    )
    if not has_console:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)

    # httpx logs every request at INFO; keep catalog traffic out of the console
    logging.getLogger("httpx").setLevel(max(level_value, logging.WARNING))

    _LOGGING_CONFIGURED = True
