from __future__ import annotations

"""Structured logging helpers.

- Events are single-line JSON strings; never log raw mention context.
- Entry points call `configure_logging()`; it only installs a handler when none exists.
"""

import json
import logging
from typing import Any


def configure_logging(level: int = logging.INFO) -> None:
    # Ensure logs are visible when run from a scheduler / console.
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger("trendwatch").setLevel(level)


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str, sort_keys=False))
