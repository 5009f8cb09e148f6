"""
CLI entrypoint for postfilter.

Provides command-line access to batch classification and the learning store.
"""

import sys
import os
import json
import argparse
import asyncio
import logging
import traceback
from pathlib import Path

import yaml
from dotenv import load_dotenv

from postfilter.classify import PostClassifier
from postfilter.config import default_settings, load_settings
from postfilter.learning import FeedbackProcessor, SIGNAL_WEIGHTS
from postfilter.storage import SqliteStore, get_classification_statistics


# Load environment variables from .env file
load_dotenv()

DEFAULT_DB = "data/db/postfilter.sqlite3"
DEFAULT_SETTINGS = "config/settings.yaml"


def _db_path(args) -> str:
    return args.db or os.getenv("POSTFILTER_DB", DEFAULT_DB)


def _open_store(db_path: str) -> SqliteStore:
    # Ensure parent directory exists
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return SqliteStore(db_path)


def _load_posts(path: str) -> list:
    """Read posts from a JSON or YAML file holding a list."""
    with open(path, "r", encoding="utf-8") as f:
        if path.endswith(".json"):
            posts = json.load(f)
        else:
            posts = yaml.safe_load(f)

    if not isinstance(posts, list):
        raise ValueError(f"Posts file must contain a list: {path}")

    return posts


def _resolve_settings(args):
    path = args.settings or os.getenv("POSTFILTER_SETTINGS", DEFAULT_SETTINGS)

    if not Path(path).exists():
        if args.settings:
            raise FileNotFoundError(f"Configuration file not found: {path}")
        print(f"[INFO] No settings file at {path}, using defaults")
        return default_settings()

    settings = load_settings(path)
    print(f"[OK] Loaded settings from: {path}")
    return settings


async def classify_command(args) -> int:
    """
    Execute the classify command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        settings = _resolve_settings(args)
        posts = _load_posts(args.posts)
    except Exception as e:
        print(f"[ERROR] Failed to load input: {e}")
        return 1

    print(f"[INFO] Loaded {len(posts)} post(s) from: {args.posts}")

    store = _open_store(_db_path(args))

    try:
        learning_data = None
        if not args.no_learning:
            learning_data = await FeedbackProcessor(store).load()

        classifier = PostClassifier(settings, conn=store.conn)
        outcome = await classifier.classify_posts(posts, learning_data=learning_data)

        print("\n" + "=" * 60)
        print("CLASSIFICATION SUMMARY")
        print("=" * 60)

        for result in outcome.results:
            status_symbol = "[FILTER]" if result.filter else "[KEEP]"
            label = result.category_label or result.category or "-"
            print(f"\n{status_symbol} {result.id}")
            print(f"   Category: {label}")
            print(f"   Confidence: {result.confidence:.2f}")
            print(f"   Reason: {result.reason}")
            if result.matched_patterns:
                print(f"   Patterns: {len(result.matched_patterns)}")
            if result.learning_applied:
                print("   Learning applied: yes")

        counters = classifier.results
        print("\n" + "-" * 60)
        print(f"Processed: {counters['processed']}")
        print(f"[OK] Kept: {counters['kept']}")
        print(f"[INFO] Filtered: {counters['filtered']}")
        print(f"[FAIL] Errors: {counters['errors']}")

        stats = get_classification_statistics(store.conn)
        print(f"[INFO] Classifications on record: {stats['total']}")

        if args.export_dir and counters["filtered"] > 0:
            csv_path = classifier.export_filtered_to_csv(args.export_dir)
            if csv_path:
                print(f"[OK] Exported to: {csv_path}")

        return 0

    except KeyboardInterrupt:
        print("\n\n[INTERRUPTED] Classification cancelled by user")
        return 130

    except Exception as e:
        print(f"\n[ERROR] Classification failed: {e}")
        traceback.print_exc()
        return 1

    finally:
        store.close()


async def signal_command(args) -> int:
    """Execute the signal command."""
    if args.name not in SIGNAL_WEIGHTS:
        print(f"[ERROR] Unknown signal: {args.name}")
        print(f"   Known signals: {', '.join(SIGNAL_WEIGHTS)}")
        return 1

    store = _open_store(_db_path(args))

    try:
        processor = FeedbackProcessor(store)
        data = await processor.process_signal(args.name, args.author, args.content, args.pattern)

        print(f"[OK] Recorded signal: {args.name}")
        if args.author:
            print(f"   Author reputation: {data.reputation_for(args.author)}")
        return 0

    except Exception as e:
        print(f"[ERROR] Failed to record signal: {e}")
        return 1

    finally:
        store.close()


async def show_learning_command(args) -> int:
    """Execute the show-learning command."""
    store = _open_store(_db_path(args))

    try:
        data = await FeedbackProcessor(store).load()
    except Exception as e:
        print(f"[ERROR] Failed to read learning data: {e}")
        return 1
    finally:
        store.close()

    print("\n" + "=" * 60)
    print("LEARNING DATA")
    print("=" * 60)

    ranked = sorted(data.author_reputation.items(), key=lambda item: item[1], reverse=True)
    print(f"\nAuthors tracked: {len(ranked)}")
    # Most trusted first, then the least trusted not already shown
    top = max(args.top, 0)
    shown = ranked[:top] + _tail(ranked[top:], top)
    for author, score in shown:
        print(f"   {score:+4d}  {author}")

    print(f"\nKeep keywords ({len(data.learned_keywords.keep)}): "
          f"{', '.join(_tail(data.learned_keywords.keep, top)) or '-'}")
    print(f"Filter keywords ({len(data.learned_keywords.filter)}): "
          f"{', '.join(_tail(data.learned_keywords.filter, top)) or '-'}")

    print(f"\nPatterns observed: {len(data.pattern_stats)}")
    for pattern, stats in sorted(data.pattern_stats.items(), key=lambda item: -item[1].total)[:top]:
        print(f"   {stats.hits}/{stats.total} ({stats.accuracy:.0%})  {pattern}")

    return 0


async def export_learning_command(args) -> int:
    """Execute the export-learning command."""
    store = _open_store(_db_path(args))

    try:
        data = await FeedbackProcessor(store).load()
    finally:
        store.close()

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(data.to_dict(), f, ensure_ascii=False, indent=2)

    print(f"[OK] Learning data exported to: {args.out}")
    return 0


async def import_learning_command(args) -> int:
    """Execute the import-learning command."""
    try:
        with open(args.file, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"[ERROR] Failed to read learning data: {e}")
        return 1

    if not isinstance(raw, dict):
        print("[ERROR] Learning data file must contain an object")
        return 1

    store = _open_store(_db_path(args))

    try:
        data = await FeedbackProcessor(store).replace(raw)
    finally:
        store.close()

    print(f"[OK] Imported learning data from: {args.file}")
    print(f"   Authors: {len(data.author_reputation)}")
    print(f"   Patterns: {len(data.pattern_stats)}")
    return 0


async def reset_learning_command(args) -> int:
    """Execute the reset-learning command."""
    if not args.yes:
        print("[WARN] This clears all learned data. Re-run with --yes to confirm.")
        return 1

    store = _open_store(_db_path(args))

    try:
        await FeedbackProcessor(store).reset()
    finally:
        store.close()

    print("[OK] Learning data reset")
    return 0


COMMANDS = {
    "classify": classify_command,
    "signal": signal_command,
    "show-learning": show_learning_command,
    "export-learning": export_learning_command,
    "import-learning": import_learning_command,
    "reset-learning": reset_learning_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="postfilter",
        description="postfilter - Adaptive Feed Post Classification",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Classify posts with the local patterns
  postfilter classify --posts data/posts.json

  # Record that the user liked a post
  postfilter signal liked --author "Jane Doe" --content "Great write-up on caching"

  # Inspect what has been learned
  postfilter show-learning --top 5

Environment Variables:
  POSTFILTER_DB        SQLite database path (default: data/db/postfilter.sqlite3)
  POSTFILTER_SETTINGS  Settings YAML path (default: config/settings.yaml)
  POSTFILTER_LOG_LEVEL Log level for library messages (default: WARNING)
        """,
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show library log messages",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # classify command
    classify_parser = subparsers.add_parser(
        "classify",
        help="Classify posts with the local pattern engine",
    )

    classify_parser.add_argument(
        "--posts",
        type=str,
        required=True,
        help="JSON or YAML file with a list of {id, content, author} posts",
    )

    classify_parser.add_argument(
        "--settings",
        type=str,
        help="Path to settings.yaml (default: $POSTFILTER_SETTINGS or config/settings.yaml)",
    )

    classify_parser.add_argument(
        "--db",
        type=str,
        help="Path to SQLite database (default: $POSTFILTER_DB or data/db/postfilter.sqlite3)",
    )

    classify_parser.add_argument(
        "--no-learning",
        action="store_true",
        help="Skip learning adjustments",
    )

    classify_parser.add_argument(
        "--export-dir",
        type=str,
        help="Export filtered posts to a CSV file in this directory",
    )

    # signal command
    signal_parser = subparsers.add_parser(
        "signal",
        help="Record a feedback signal",
    )

    signal_parser.add_argument(
        "name",
        type=str,
        help=f"Signal name ({', '.join(SIGNAL_WEIGHTS)})",
    )

    signal_parser.add_argument("--author", type=str, help="Post author")
    signal_parser.add_argument("--content", type=str, help="Post text")

    signal_parser.add_argument(
        "--pattern",
        type=str,
        action="append",
        help="Matched pattern id (repeatable)",
    )

    signal_parser.add_argument("--db", type=str, help="Path to SQLite database")

    # show-learning command
    show_parser = subparsers.add_parser(
        "show-learning",
        help="Show learned reputation, keywords and pattern accuracy",
    )

    show_parser.add_argument("--db", type=str, help="Path to SQLite database")

    show_parser.add_argument(
        "--top",
        type=int,
        default=10,
        help="Entries to show per section (default: 10)",
    )

    # export-learning command
    export_parser = subparsers.add_parser(
        "export-learning",
        help="Export learning data to JSON",
    )

    export_parser.add_argument("--out", type=str, required=True, help="Output JSON file")
    export_parser.add_argument("--db", type=str, help="Path to SQLite database")

    # import-learning command
    import_parser = subparsers.add_parser(
        "import-learning",
        help="Replace learning data with an exported JSON file",
    )

    import_parser.add_argument("--file", type=str, required=True, help="JSON file to import")
    import_parser.add_argument("--db", type=str, help="Path to SQLite database")

    # reset-learning command
    reset_parser = subparsers.add_parser(
        "reset-learning",
        help="Clear all learned data",
    )

    reset_parser.add_argument("--db", type=str, help="Path to SQLite database")

    reset_parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm the reset",
    )

    return parser


def resolve_log_level(verbose=False):
    """Log level from --verbose or POSTFILTER_LOG_LEVEL (any case)."""
    if verbose:
        return "INFO"

    level = os.getenv("POSTFILTER_LOG_LEVEL", "WARNING").upper()
    if not isinstance(logging.getLevelName(level), int):
        return "WARNING"
    return level


def _tail(items, count):
    """Last count items; nothing for a count of zero."""
    return items[-count:] if count > 0 else []


def main(argv=None):
    """Main CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=resolve_log_level(args.verbose), format="%(levelname)s %(name)s: %(message)s")

    if not args.command:
        parser.print_help()
        return 1

    command = COMMANDS.get(args.command)
    if command is None:
        print(f"[ERROR] Unknown command: {args.command}")
        parser.print_help()
        return 1

    try:
        return asyncio.run(command(args))
    except KeyboardInterrupt:
        print("\n\n[INTERRUPTED] Cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
