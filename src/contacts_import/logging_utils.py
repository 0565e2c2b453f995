from __future__ import annotations

import logging
import os
from typing import Optional

from .config_loader import DEFAULT_LOG_FORMAT, PipelineConfig

LOG_LEVEL_ENV = "CONTACTS_IMPORT_LOG_LEVEL"

# requests logs every connection through urllib3 at DEBUG.
HTTP_LOGGERS = ("urllib3",)


def level_from_name(name: Optional[str]) -> int:
    """Numeric level for ``name``; unknown names fall back to WARNING."""
    text = str(name or "").strip().upper()
    if text.isdigit():
        return int(text)
    value = logging.getLevelName(text)
    return value if isinstance(value, int) else logging.WARNING


def effective_level(config: PipelineConfig, level_override: Optional[str] = None) -> int:
    """
    Pick the log level by precedence:

    1. ``CONTACTS_IMPORT_LOG_LEVEL`` environment variable
    2. ``level_override`` (the ``--log-level`` flag)
    3. ``config.logging.level``
    4. ``WARNING``
    """
    name = os.getenv(LOG_LEVEL_ENV) or level_override or config.logging.level or "WARNING"
    return level_from_name(name)


def configure_logging(config: PipelineConfig, level_override: Optional[str] = None) -> int:
    level = effective_level(config, level_override)
    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level)
    else:
        logging.basicConfig(level=level, format=config.logging.format or DEFAULT_LOG_FORMAT)

    http_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)
    return level
