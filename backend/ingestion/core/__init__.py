"""Ingestion boundary for the trend engine.

- Sources are configured, not discovered here.
- Mentions arrive already normalized; store them append-only.
"""

from ingestion.core.mention_store import Mention, MentionStore, SourceStats, mention_from_mapping
from ingestion.core.source_registry import (
    Source,
    SourceCategory,
    SourceRegistry,
    load_sources_yaml,
)

__all__ = [
    "Mention",
    "MentionStore",
    "Source",
    "SourceCategory",
    "SourceRegistry",
    "SourceStats",
    "load_sources_yaml",
    "mention_from_mapping",
]
