"""Trend report job.

Orchestrates one offline pass:
1. Load sources (and scoring defaults) from sources.yaml
2. Load mentions from JSONL
3. Record source connections (optional JSON list)
4. Replay feedback (optional JSONL) through the feedback loop
5. Print the top-N ranking, source performance and recommendations as JSON

Run:
  python derive/job/run_trend_report.py --mentions mentions.jsonl [--connections c.json] [--feedback f.jsonl]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Ensure `backend/` is on sys.path so `import app...` works when run from repo root.
BASE_DIR = Path(__file__).resolve().parents[2]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from app.core.errors import NotFoundError, ValidationError  # noqa: E402
from app.core.logging import configure_logging, log_event  # noqa: E402
from app.core.settings import get_settings  # noqa: E402
from app.services.trend_service import TrendService, build_service  # noqa: E402
from derive.core.feedback import feedback_from_mapping  # noqa: E402
from derive.core.parameters import ParameterStore, load_scoring_yaml  # noqa: E402
from ingestion.core.source_registry import load_sources_yaml  # noqa: E402
from ingestion.jobs.load_mentions import load_mentions_jsonl  # noqa: E402


logger = logging.getLogger("trendwatch.derive")


def _record_connections(service: TrendService, path: Path) -> int:
    rows = json.loads(path.read_text(encoding="utf-8"))
    recorded = 0
    for row in rows:
        try:
            service.context.graph.record_connection(
                row["source_id"], row["target_id"], row.get("connection_type", "backlink"), row["strength"]
            )
        except (KeyError, ValidationError, NotFoundError):
            continue
        recorded += 1
    return recorded


def replay_feedback(service: TrendService, path: Path) -> dict[str, int]:
    """Feed a JSONL file of ratings through the feedback loop; bad lines are logged and skipped."""
    totals = {"lines": 0, "replayed": 0, "rejected": 0}
    with path.open(encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            totals["lines"] += 1
            try:
                fb = feedback_from_mapping(json.loads(line), default_timestamp=service.context.clock())
                service.feedback.record_feedback(fb)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError, ValidationError) as e:
                totals["rejected"] += 1
                log_event(logger, "feedback_line_rejected", file=path.name, line=lineno, reason=str(e))
                continue
            totals["replayed"] += 1
    log_event(logger, "feedback_replayed", file=path.name, **totals)
    return totals


def run_trend_report(service: TrendService, *, limit: int) -> dict[str, Any]:
    ranking = service.engine.rank(limit)
    fb = service.feedback
    return {
        "status": "success",
        "ranking": [
            {
                "brand": s.brand_name,
                "category": s.category.value,
                "total_score": round(s.total_score, 2),
                "confidence": round(s.confidence, 2),
                "mentions": s.mention_count,
            }
            for s in ranking
        ],
        "parameters": service.engine.parameters().as_dict(),
        "performance": [p.model_dump() for p in fb.source_performance()],
        "recommended_weights": [
            {"source_id": r.source_id, "current": r.current_weight, "recommended": r.recommended_weight}
            for r in fb.recommend_source_weights()
        ],
        "recommended_removals": fb.recommend_removals(),
        "recommended_additions": [d.url for d in fb.recommend_additions()],
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Print a brand trend report as JSON.")
    parser.add_argument("--mentions", type=Path, required=True)
    parser.add_argument("--connections", type=Path, default=None)
    parser.add_argument("--feedback", type=Path, default=None)
    parser.add_argument("--sources", type=Path, default=None)
    parser.add_argument("--limit", type=int, default=None)
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)

    sources_yaml = args.sources or settings.sources_yaml
    service = build_service(
        load_sources_yaml(sources_yaml),
        parameters=ParameterStore(load_scoring_yaml(sources_yaml)),
        top_n=settings.top_n,
    )
    load_mentions_jsonl(service.context.mentions, args.mentions)
    if args.connections:
        log_event(logger, "connections_recorded", count=_record_connections(service, args.connections))
    if args.feedback:
        replay_feedback(service, args.feedback)

    print(json.dumps(run_trend_report(service, limit=args.limit or settings.top_n), indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
