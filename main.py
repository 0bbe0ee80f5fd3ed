"""CLI entrypoint for word grid suggestions and heatmaps."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from concurrent.futures import wait
from typing import Any, Dict, List, Optional

from wordgrid.core.config import EngineConfig, GridConfig
from wordgrid.core.constants import Position, SuggestionMode
from wordgrid.engine.session import GridSession
from wordgrid.utils.logger import configure_logging
from wordgrid.utils.pretty import (format_grid, format_phrase_preview,
                                   format_suggestions)


def parse_rows(raw_rows: List[str]) -> List[List[str]]:
    """Split ``--row`` values on commas; blank entries are empty cells."""
    rows = [[word.strip() for word in raw.split(",")] for raw in raw_rows]
    width = max(len(row) for row in rows)
    return [row + [""] * (width - len(row)) for row in rows]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Suggest words for a cell of a row/column phrase grid",
    )
    parser.add_argument(
        "--row",
        action="append",
        required=True,
        metavar="WORDS",
        help="Comma-separated words of one grid row (repeat per row; blank = empty cell)",
    )
    parser.add_argument(
        "--target",
        type=Position.parse,
        help="Cell to suggest words for, as ROW,COL (zero-based)",
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=[m.value for m in SuggestionMode],
        default=SuggestionMode.BALANCED.value,
        help="Scoring policy for suggestions",
    )
    parser.add_argument(
        "--heatmap",
        action="store_true",
        help="Score every filled cell and print the grid with probability buckets",
    )
    parser.add_argument(
        "--api-key",
        type=str,
        default=None,
        help="Completion API key (defaults to the OPENAI_API_KEY environment variable)",
    )
    parser.add_argument("--max-suggestions", type=int, default=10, help="Suggestion list cap")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = getattr(logging, args.log_level.upper(), logging.WARNING)
    configure_logging(level)

    words = parse_rows(args.row)
    try:
        grid_config = GridConfig(rows=len(words), cols=len(words[0]))
    except ValueError as exc:
        parser.error(str(exc))
    if args.target is not None and (
        args.target.row >= len(words) or args.target.col >= len(words[0])
    ):
        parser.error(f"--target {args.target.row},{args.target.col} is outside the grid")

    api_key = args.api_key or os.environ.get("OPENAI_API_KEY")
    engine_config = EngineConfig(max_suggestions=args.max_suggestions)
    payload: Dict[str, Any] = {}
    exit_code = 0

    with GridSession(grid_config, engine_config, api_key=api_key) as session:
        for r, row in enumerate(words):
            for c, word in enumerate(row):
                if word:
                    session.type_word(Position(r, c), word)

        if not session.engine.is_configured:
            print("No API key configured; suggestions are unavailable.", file=sys.stderr)

        if args.heatmap:
            report = session.scheduler.flush(block=True)
            payload["heatmap"] = session.store.to_jsonable()
            payload["failed_cells"] = [[p.row, p.col] for p in report.failed]

        if args.target is not None:
            session.select(args.target)
            session.set_mode(SuggestionMode(args.mode))
            future = session.fetcher.fetch_now()
            if future is not None:
                wait([future])
            view = session.suggestions()
            row_phrase, column_phrase = session.phrase_preview(args.target)
            payload["target"] = [args.target.row, args.target.col]
            payload["row_phrase"] = row_phrase
            payload["column_phrase"] = column_phrase
            payload["suggestions"] = [s.to_jsonable() for s in view.suggestions]
            payload["error"] = view.error
            if view.error:
                exit_code = 1

        if args.json:
            print(json.dumps(payload, ensure_ascii=False, indent=2))
        else:
            print(format_grid(session.store.cells, heatmap=args.heatmap, selected=args.target))
            if args.target is not None:
                print()
                print(format_phrase_preview(payload["row_phrase"], payload["column_phrase"]))
                print()
                if payload["error"]:
                    print(f"Error: {payload['error']}")
                else:
                    print(format_suggestions(view.suggestions))
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
