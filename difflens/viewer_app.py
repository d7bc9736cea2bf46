from __future__ import annotations

import argparse
import sys

from rich.console import Console

from .config import ViewerConfig
from .file_diff import sort_files
from .hunk_list import HunkListViewModel
from .line_extensions import LoadMoreLinesHandler
from .parsed_diff import ParsedDiff
from .summary import summarize_parsed_diff
from .viewer_cli import add_source_args, configure_logging, load_diff_source, resolve_config
from .viewer_render import render_files, render_rows, render_summary


def parse_app_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive split/unified diff viewer.")
    add_source_args(parser)
    parser.add_argument("--max-rows", type=int, help="Max rows shown per file")
    parser.add_argument("--once", action="store_true", help="Print dashboard and the first file only, then exit.")
    return parser.parse_args(argv)


def run_textual_app(
    parsed: ParsedDiff,
    config: ViewerConfig,
    handler: LoadMoreLinesHandler | None,
    source: str,
) -> int:
    try:
        from .viewer_textual import launch_textual_viewer
    except Exception as error:  # noqa: BLE001
        print(
            f"[error] textual UI is unavailable: {error}. Install dependencies: python -m pip install -e .",
            file=sys.stderr,
        )
        return 1
    return launch_textual_viewer(parsed, config, handler, source)


def run_app(argv: list[str]) -> int:
    args = parse_app_args(argv)
    configure_logging(args.verbose)
    try:
        config = resolve_config(args)
        parsed, source, handler = load_diff_source(args)
    except Exception as error:  # noqa: BLE001
        print(f"[error] {error}", file=sys.stderr)
        return 1

    if not parsed.files:
        print("[error] Diff contains no files.", file=sys.stderr)
        return 2

    if args.once:
        console = Console()
        summary = summarize_parsed_diff(parsed)
        render_summary(console, summary, source)
        render_files(console, summary)
        first = sort_files(parsed.files)[0]
        view_model = HunkListViewModel(first, config.display_mode, config.max_lines_to_fetch)
        render_rows(console, view_model.file_path, view_model.line_pairs, config.display_mode, config.max_rows)
        return 0
    return run_textual_app(parsed, config, handler, source)


def main() -> None:
    raise SystemExit(run_app(sys.argv[1:]))
