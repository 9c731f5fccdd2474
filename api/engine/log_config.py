from __future__ import annotations

import logging

from api.engine.constants import DEFAULT_LOG_LEVEL, ENV_LOG_LEVEL, LOG_DATE_FORMAT, LOG_FORMAT
from api.engine.utils import env_str


def resolve_log_level() -> int:
    name = (env_str(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        return logging.INFO
    return level


def configure_logging(level: int | None = None) -> None:
    """Install a single stream handler on the root logger (idempotent)."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level if level is not None else resolve_log_level())
    if any(getattr(handler, "_progress_guard", False) for handler in root_logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler._progress_guard = True  # type: ignore[attr-defined]
    root_logger.addHandler(handler)
