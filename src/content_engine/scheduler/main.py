"""CLI entry point for scheduled blog generation.

Usage:
    python -m src.content_engine.scheduler.main run
    python -m src.content_engine.scheduler.main generate-now --keyword "why men pull away"
    python -m src.content_engine.scheduler.main status
    python -m src.content_engine.scheduler.main keywords --add "how to make him miss you"
"""

from __future__ import annotations

import argparse
import json
import sys
import threading

from src.common.logging import setup_logging
from src.common.settings_store import SettingsStore
from src.content_engine.publisher.pipeline import GenerationPipeline

from .keywords import KeywordPool
from .scheduler import GenerationScheduler

logger = setup_logging(module_name="scheduler.main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scheduled blog post generation")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Run the scheduler until interrupted")

    generate = sub.add_parser("generate-now", help="Generate one post immediately")
    generate.add_argument("--keyword", help="Keyword to use (default: random unused keyword)")

    sub.add_parser("status", help="Show schedule and last-run details")

    keywords = sub.add_parser("keywords", help="List or edit the keyword pool")
    keywords.add_argument("--add", metavar="KEYWORD", help="Add a keyword")
    keywords.add_argument("--remove", metavar="KEYWORD", help="Remove a keyword")
    keywords.add_argument("--reset", action="store_true", help="Clear the used-keyword list")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    store = SettingsStore()

    if args.command == "keywords":
        pool = KeywordPool(store)
        if args.add:
            added = pool.add(args.add)
            print(f"Added: {args.add}" if added else f"Already in pool: {args.add}")
        if args.remove:
            removed = pool.remove(args.remove)
            print(f"Removed: {args.remove}" if removed else f"Not in pool: {args.remove}")
        if args.reset:
            pool.reset()
            print("Used-keyword list cleared")
        used = set(pool.used())
        for keyword in pool.keywords():
            print(f"  {'[used] ' if keyword in used else ''}{keyword}")
        return 0

    scheduler = GenerationScheduler(GenerationPipeline(), store)

    if args.command == "status":
        print(json.dumps(scheduler.status(), ensure_ascii=False, indent=2))
        return 0

    if args.command == "generate-now":
        run = scheduler.generate_now(args.keyword)
        print(json.dumps(run.to_dict(), ensure_ascii=False, indent=2))
        return 0 if run.success else 1

    # run
    if not scheduler.start():
        logger.error("Scheduler is disabled; set AUTO_BLOG_ENABLED=true in settings")
        return 1
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping scheduler")
    finally:
        scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
