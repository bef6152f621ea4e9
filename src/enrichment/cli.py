#!/usr/bin/env python3
"""CLI interface for the change-log enrichment pipeline.

This script provides command-line access to feed assembly for testing,
debugging, and replaying exported audit rows.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pydantic

from activity.config import Config, LoggingConfig, load_config
from activity.scoping import filter_rows
from activity.summaries import describe
from activity.validators import validate_audit_row
from enrichment.feed import build_feed
from enrichment.resolver import ContextLookup

STRUCTURED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PLAIN_FORMAT = "%(levelname)s: %(message)s"


def _setup_logging(logging_config: LoggingConfig, verbose: bool) -> None:
    """Configure logging on stderr so stdout stays machine-readable."""
    level = logging.DEBUG if verbose else getattr(logging, logging_config.level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=STRUCTURED_FORMAT if logging_config.structured else PLAIN_FORMAT,
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="activity-feed",
        description="Assemble an activity feed from exported audit rows",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Build a feed from an export containing rows and lookups
  activity-feed --input export.json

  # Only one project's task and comment history, ten newest entries
  activity-feed -i export.json --project p-1 --table tasks --table comments --limit 10

  # Try it with synthetic data and readable summaries
  activity-feed --test --summary
        """
    )

    parser.add_argument(
        "--input", "-i",
        type=Path,
        help="JSON file with {\"rows\": [...], \"lookup\": {...}} or a list of rows"
    )

    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output JSON file for the feed (default: stdout)"
    )

    parser.add_argument(
        "--env", "-e",
        help="Configuration environment to load from config/<env>.yml"
    )

    parser.add_argument("--project", action="append", help="Restrict to a project id (repeatable)")
    parser.add_argument("--task", help="Restrict to a task id")
    parser.add_argument("--user", help="Include changes to this user's own record")
    parser.add_argument("--entity", help="Include the history of one comment, milestone or user")
    parser.add_argument("--table", action="append", help="Restrict to a table name (repeatable)")
    parser.add_argument("--limit", type=int, help="Maximum number of entries")

    parser.add_argument(
        "--summary",
        action="store_true",
        help="Add a human-readable summary to every entry"
    )

    parser.add_argument(
        "--test",
        action="store_true",
        help="Run with synthetic test data"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(args.env) if args.env else Config()
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    _setup_logging(config.logging, args.verbose)

    if args.test:
        document: Any = _generate_test_document()
    elif args.input:
        if not args.input.exists():
            print(f"File not found: {args.input}", file=sys.stderr)
            return 2
        try:
            with open(args.input, "r", encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            print(f"Error: {args.input} is not valid JSON: {e}", file=sys.stderr)
            return 3
    else:
        print("Error: Must provide --input file or use --test mode", file=sys.stderr)
        return 1

    if isinstance(document, list):
        raw_rows, raw_lookup = document, {}
    elif isinstance(document, dict) and isinstance(document.get("rows"), list):
        raw_rows, raw_lookup = document["rows"], document.get("lookup") or {}
    else:
        print("Error: input must be a list of rows or an object with a 'rows' list", file=sys.stderr)
        return 3

    try:
        lookup = ContextLookup.model_validate(raw_lookup)
    except pydantic.ValidationError as e:
        print(f"Error: invalid lookup section: {e}", file=sys.stderr)
        return 3

    # Scope filters need parsed rows; malformed ones still reach the feed to be reported.
    parsed = []
    invalid = []
    for raw in raw_rows:
        result = validate_audit_row(raw)
        if result.ok:
            parsed.append(result.value)
        else:
            invalid.append(raw)

    scoped = filter_rows(
        parsed,
        project_ids=args.project,
        task_id=args.task,
        user_id=args.user,
        table_names=args.table,
        entity_id=args.entity,
    )
    feed = build_feed([*scoped, *invalid], lookup, limit=args.limit, config=config.feed)

    items = feed.feed_items()
    if args.summary:
        for item, entry in zip(items, feed.entries):
            item["summary"] = describe(entry, config.feed.unknown_project_label)

    output_data = {
        "processed_at": feed.processed_at.isoformat(),
        "total_rows": feed.total_rows,
        "entries": len(items),
        "validation_errors": feed.validation_errors,
        "mapping_errors": feed.mapping_errors,
        "warnings": feed.warnings,
        "results": items,
    }

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(output_data, f, indent=2, default=str)
        print(f"Results written to {args.output}")
    else:
        print(json.dumps(output_data, indent=2, default=str))

    return 0


def _generate_test_document() -> Dict[str, Any]:
    """Generate a small synthetic export for trying the pipeline."""
    return {
        "rows": [
            {
                "id": "log-1",
                "table_name": "tasks",
                "operation": "INSERT",
                "new_data": {"id": "t-1", "title": "Fix bug", "project_id": "p-1"},
                "changed_by": "u-1",
                "changed_by_name": "Ann",
                "changed_by_email": "ann@example.com",
                "created_at": "2024-01-01T12:00:00Z",
            },
            {
                "id": "log-2",
                "table_name": "comments",
                "operation": "INSERT",
                "new_data": {"id": "c-1", "task_id": "t-1", "author_id": "u-1", "comment": "On it"},
                "changed_by": "u-1",
                "changed_by_name": "Ann",
                "changed_by_email": "ann@example.com",
                "created_at": "2024-01-01T12:05:00Z",
            },
            {
                "id": "log-3",
                "table_name": "pending_project_invitations",
                "operation": "INSERT",
                "new_data": {"id": "i-1", "project_id": "p-1", "email": "bob@example.com", "role": "member"},
                "changed_by": "u-1",
                "created_at": "2024-01-01T12:10:00Z",
            },
        ],
        "lookup": {
            "users": {"u-1": {"name": "Ann", "email": "ann@example.com"}},
            "tasks": {"t-1": {"title": "Fix bug", "project_id": "p-1"}},
            "projects": {"p-1": "Website Redesign"},
        },
    }


if __name__ == "__main__":
    sys.exit(main())
