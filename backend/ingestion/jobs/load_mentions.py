from __future__ import annotations

"""Mention loader: JSONL file -> MentionStore.

STRICT:
- Mentions are produced upstream (fetching, brand normalization and sentiment
  extraction happen outside this repository).
- One JSON object per line; bad lines are logged and skipped.
- Partial load is success.

Run:
  python ingestion/jobs/load_mentions.py --mentions mentions.jsonl
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure `backend/` is on sys.path so `import app...` works when run from repo root.
BASE_DIR = Path(__file__).resolve().parents[2]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from app.core.errors import NotFoundError, ValidationError  # noqa: E402
from app.core.logging import configure_logging, log_event  # noqa: E402
from app.core.settings import get_settings  # noqa: E402
from ingestion.core.mention_store import MentionStore, mention_from_mapping  # noqa: E402
from ingestion.core.source_registry import load_sources_yaml  # noqa: E402


logger = logging.getLogger("trendwatch.ingestion")


def load_mentions_jsonl(store: MentionStore, path: Path) -> dict[str, int]:
    totals = {"lines": 0, "added": 0, "rejected": 0}
    with path.open(encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            totals["lines"] += 1
            try:
                store.add_mention(mention_from_mapping(json.loads(line)))
            except (json.JSONDecodeError, ValidationError, NotFoundError) as e:
                totals["rejected"] += 1
                log_event(logger, "mention_line_rejected", file=path.name, line=lineno, reason=str(e))
                continue
            totals["added"] += 1
    log_event(logger, "mentions_loaded", file=path.name, **totals)
    return totals


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Load mentions from a JSONL file and print per-source stats.")
    parser.add_argument("--mentions", type=Path, required=True, help="JSONL file of mentions")
    parser.add_argument("--sources", type=Path, default=None, help="sources.yaml (default: TW_SOURCES_YAML)")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)

    registry = load_sources_yaml(args.sources or settings.sources_yaml)
    store = MentionStore(registry)
    totals = load_mentions_jsonl(store, args.mentions)

    stats = {
        sid: {"total_brand_mentions": st.total_brand_mentions, "error_rate": st.error_rate}
        for sid, st in store.source_stats().items()
    }
    print(json.dumps({"totals": totals, "sources": stats}, indent=2))
    return 0 if totals["added"] or not totals["lines"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
