"""Application entrypoint — start the API server or run one-off commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import timedelta
from pathlib import Path

import uvicorn

from emotion_nudge.config import Settings, get_settings
from emotion_nudge.logger import setup_logging


def analyze_file(path: Path, settings: Settings) -> dict:
    """Replay a JSON-lines file of emotion events and return insights."""
    from emotion_nudge.analysis.patterns import PatternAnalyzer
    from emotion_nudge.api.schemas import EmotionRequest
    from emotion_nudge.models import EmotionEvent
    from emotion_nudge.store.events import BehaviorStore

    store = BehaviorStore(
        capacity=settings.store_max_events,
        window=timedelta(days=settings.analysis_window_days),
    )
    with path.open(encoding="utf-8") as fh:
        for line in fh:
            if not line.strip():
                continue
            req = EmotionRequest.model_validate_json(line)
            store.append(
                EmotionEvent.observed(
                    req.emotion, req.confidence, req.intensity, req.context, at=req.timestamp
                )
            )

    analyzer = PatternAnalyzer(store, min_data_points=settings.min_data_points)
    events = store.emotions.snapshot()
    now = max(e.timestamp for e in events) if events else None
    return {
        "events": len(events),
        "insights": analyzer.insights(now).model_dump(mode="json"),
        "emotional_patterns": analyzer.emotional_patterns(now).model_dump(mode="json"),
    }


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="emotion-nudge",
        description="Emotion-aware notification scheduling engine.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── serve ─────────────────────────────────────────────────
    serve_parser = sub.add_parser("serve", help="Start the API server.")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")

    # ── init-db ───────────────────────────────────────────────
    sub.add_parser("init-db", help="Create database tables.")

    # ── analyze ───────────────────────────────────────────────
    analyze_parser = sub.add_parser("analyze", help="Print insights for a JSON-lines event file.")
    analyze_parser.add_argument("--events", type=Path, required=True)

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "serve":
        uvicorn.run(
            "emotion_nudge.api.server:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            reload=args.reload,
        )
    elif args.command == "init-db":
        from emotion_nudge.storage.database import init_db

        asyncio.run(init_db())
        print("Database tables created.")
    elif args.command == "analyze":
        print(json.dumps(analyze_file(args.events, settings), indent=2))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
