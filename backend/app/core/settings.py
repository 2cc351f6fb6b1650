"""Runtime settings (environment only).

Constraints:
- Configuration is via TW_* environment variables (.env loaded if present).
- Invalid values fail fast at startup with RuntimeError.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Optional

from app.core.env import load_env_if_present


SOURCES_YAML_ENV: Final[str] = "TW_SOURCES_YAML"
LOG_LEVEL_ENV: Final[str] = "TW_LOG_LEVEL"
TOP_N_ENV: Final[str] = "TW_TOP_N"
MENTIONS_JSONL_ENV: Final[str] = "TW_MENTIONS_JSONL"

DEFAULT_SOURCES_YAML: Final[Path] = (
    Path(__file__).resolve().parents[2] / "ingestion" / "config" / "sources.yaml"
)


@dataclass(frozen=True, slots=True)
class Settings:
    sources_yaml: Path
    log_level: int
    top_n: int
    mentions_jsonl: Optional[Path] = None


def get_log_level() -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise RuntimeError(f"Invalid {LOG_LEVEL_ENV}={name!r}; expected DEBUG, INFO, WARNING or ERROR.")
    return level


def get_top_n() -> int:
    v = os.environ.get(TOP_N_ENV, "10")
    try:
        n = int(v)
    except ValueError as e:
        raise RuntimeError(f"Invalid {TOP_N_ENV}; must be integer.") from e
    if n <= 0:
        raise RuntimeError(f"{TOP_N_ENV} must be > 0.")
    return n


def get_settings() -> Settings:
    load_env_if_present()
    sources = os.environ.get(SOURCES_YAML_ENV)
    mentions = os.environ.get(MENTIONS_JSONL_ENV)
    return Settings(
        sources_yaml=Path(sources) if sources else DEFAULT_SOURCES_YAML,
        log_level=get_log_level(),
        top_n=get_top_n(),
        mentions_jsonl=Path(mentions) if mentions else None,
    )
