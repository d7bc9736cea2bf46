from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from .config import ViewerConfig, load_viewer_config
from .expansion import GitLineProvider, expand_all_hunks
from .file_diff import FileDiff, sort_files
from .git_source import read_git_diff, resolve_merge_base
from .hunk_list import HunkListViewModel
from .line_extensions import LoadMoreLinesHandler
from .parsed_diff import ParsedDiff
from .parsers import DISPLAY_MODES
from .search import DiffSearch
from .summary import summarize_parsed_diff
from .viewer_render import render_files, render_rows, render_search, render_summary


def add_source_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", nargs="?", help="Path to a unified diff file ('-' or omitted reads stdin)")
    parser.add_argument("--repo", help="Git repository to diff instead of reading a file")
    parser.add_argument("--base", help="Base ref for --repo")
    parser.add_argument("--head", default="HEAD", help="Head ref for --repo (default: HEAD)")
    parser.add_argument("--config", help="Path to a viewer TOML config")
    parser.add_argument("--mode", choices=sorted(DISPLAY_MODES), help="Display mode (default from config: split)")
    parser.add_argument("--max-lines-to-fetch", type=int, help="Context lines fetched per expansion")
    parser.add_argument("--verbose", action="store_true", help="Log core activity to stderr")


def parse_view_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="View a unified diff as split or unified rows.")
    add_source_args(parser)
    parser.add_argument("--file", dest="file_contains", help="Filter files by path substring")
    parser.add_argument("--search", help="Search rows for a substring")
    parser.add_argument("--expand", action="store_true", help="Expand every hunk once (needs --repo and --base)")
    parser.add_argument("--max-rows", type=int, help="Max rows printed per file")
    parser.add_argument("--json", dest="as_json", action="store_true", help="Output rows as JSON")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False)],
    )


def resolve_config(args: argparse.Namespace) -> ViewerConfig:
    config = load_viewer_config(Path(args.config)) if args.config else ViewerConfig()
    overrides: dict[str, Any] = {}
    if args.mode:
        overrides["display_mode"] = args.mode
    if args.max_lines_to_fetch is not None:
        if args.max_lines_to_fetch < 1:
            raise RuntimeError("--max-lines-to-fetch must be >= 1")
        overrides["max_lines_to_fetch"] = args.max_lines_to_fetch
    if getattr(args, "max_rows", None) is not None:
        if args.max_rows < 1:
            raise RuntimeError("--max-rows must be >= 1")
        overrides["max_rows"] = args.max_rows
    return replace(config, **overrides)


def load_diff_source(args: argparse.Namespace) -> tuple[ParsedDiff, str, LoadMoreLinesHandler | None]:
    if args.repo:
        if not args.base:
            raise RuntimeError("--repo needs --base")
        repo = Path(args.repo)
        parsed = ParsedDiff.build(read_git_diff(repo, args.base, args.head))
        merge_base = resolve_merge_base(repo, args.base, args.head)
        provider = GitLineProvider.for_files(repo, merge_base, args.head, parsed.files)
        return parsed, f"git {args.base}...{args.head}", provider

    if args.path and args.path != "-":
        path = Path(args.path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as error:
            raise RuntimeError(f"Cannot read diff file {path}: {error}") from error
        return ParsedDiff.build(text), str(path), None
    return ParsedDiff.build(sys.stdin.read()), "stdin", None


def filter_files(files: list[FileDiff], file_contains: str | None) -> list[FileDiff]:
    if not file_contains:
        return files
    return [file_diff for file_diff in files if file_contains in file_diff.key]


async def expand_view_models(
    view_models: list[HunkListViewModel],
    handler: LoadMoreLinesHandler,
) -> list[HunkListViewModel]:
    return [await expand_all_hunks(view_model, handler) for view_model in view_models]


def run_view(argv: list[str]) -> int:
    args = parse_view_args(argv)
    configure_logging(args.verbose)
    console = Console()
    try:
        config = resolve_config(args)
        parsed, source, handler = load_diff_source(args)
        files = filter_files(sort_files(parsed.files), args.file_contains)
        if args.expand and handler is None:
            raise RuntimeError("--expand needs --repo and --base")
        view_models = [
            HunkListViewModel(file_diff, config.display_mode, config.max_lines_to_fetch) for file_diff in files
        ]
        if args.expand and view_models:
            view_models = asyncio.run(expand_view_models(view_models, handler))
    except Exception as error:  # noqa: BLE001
        print(f"[error] {error}", file=sys.stderr)
        return 1

    if not files:
        print("[error] No files matched filters.", file=sys.stderr)
        return 2

    search: DiffSearch | None = None
    if args.search:
        search = DiffSearch(files, config.display_mode, config.search_max_lines_to_fetch)
        search.search(args.search)

    if args.as_json:
        payload: dict[str, Any] = {
            "source": source,
            "displayMode": config.display_mode,
            "summary": summarize_parsed_diff(ParsedDiff(parsed.raw_content, tuple(files))),
            "files": [
                {
                    "key": view_model.file_path,
                    "rows": [row.to_dict() for row in view_model.line_pairs[: config.max_rows]],
                }
                for view_model in view_models
            ],
        }
        if search is not None:
            payload["search"] = {
                "query": args.search,
                "totalMatches": search.total_matches,
                "matches": [
                    {
                        "fileKey": match.file_key,
                        "side": match.side,
                        "startIndex": match.start_index,
                        "lineNumberLeft": match.row.line_number_left,
                        "lineNumberRight": match.row.line_number_right,
                    }
                    for match in (search.result.matches if search.result is not None else ())
                ],
            }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    summary = summarize_parsed_diff(ParsedDiff(parsed.raw_content, tuple(files)))
    render_summary(console, summary, source)
    render_files(console, summary)
    result = search.result if search is not None else None
    focused = search.focused_match if search is not None else None
    for view_model in view_models:
        render_rows(
            console,
            view_model.file_path,
            view_model.line_pairs,
            config.display_mode,
            config.max_rows,
            result=result,
            focused=focused,
        )
    if search is not None:
        render_search(console, result, focused, search.current_index)
    return 0


def main() -> None:
    raise SystemExit(run_view(sys.argv[1:]))
