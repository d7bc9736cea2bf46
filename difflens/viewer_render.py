from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .line_metadata import LineMetadata
from .search import SearchMatch, SearchResult

DIRECTION_GLYPHS = {
    "up": "↑",
    "down": "↓",
    "in": "↕",
    "in_up": "↑",
    "in_down": "↓",
    "out": "⇕",
}
LINE_PREFIXES = {"add": "+", "delete": "-", "context": " ", "empty": " "}


def status_style(status: str) -> str:
    if status == "added":
        return "green"
    if status == "deleted":
        return "red"
    if status == "renamed":
        return "yellow"
    return "white"


def line_style(line_type: str) -> str:
    if line_type == "add":
        return "green"
    if line_type == "delete":
        return "red"
    if line_type == "hunk":
        return "cyan"
    if line_type == "empty":
        return "dim"
    return "white"


def render_summary(console: Console, summary: dict[str, Any], source: str) -> None:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("Source", source)
    table.add_row("Files", str(summary["fileCount"]))
    table.add_row("Hunks", str(summary["hunkCount"]))
    table.add_row("Additions", f"+{summary['additions']}")
    table.add_row("Deletions", f"-{summary['deletions']}")
    table.add_row("Binary", str(summary["binaryCount"]))
    counts = summary["statusCounts"]
    table.add_row("Status", ", ".join(f"{name}={counts[name]}" for name in sorted(counts) if counts[name]) or "-")
    console.print(Panel(table, title="Diff Summary", border_style="blue"))


def render_files(console: Console, summary: dict[str, Any]) -> None:
    table = Table(title=f"Files ({summary['fileCount']})", header_style="bold magenta")
    table.add_column("status", no_wrap=True)
    table.add_column("file", overflow="ellipsis")
    table.add_column("lang", no_wrap=True)
    table.add_column("hunks", justify="right")
    table.add_column("+", justify="right", style="green")
    table.add_column("-", justify="right", style="red")
    for item in summary["files"]:
        name = item["key"]
        if item["status"] == "renamed":
            name = f"{item['oldPath']} -> {item['newPath']}"
        if item["isBinary"]:
            size = item["bytes"]
            name = f"{name} (binary{'' if size is None else f', {size} bytes'})"
        table.add_row(
            Text(item["status"], style=status_style(item["status"])),
            name,
            item["language"],
            str(item["hunks"]),
            str(item["additions"]),
            str(item["deletions"]),
        )
    console.print(table)


def format_line_number(value: int | None) -> str:
    return "" if value is None else str(value)


def side_text(
    row: LineMetadata,
    side: str,
    matches: list[SearchMatch],
    focused: SearchMatch | None,
    query: str,
) -> Text:
    line_type = row.line_type(side)
    content = row.content(side) or ""
    text = Text(LINE_PREFIXES.get(line_type, "") + content, style=line_style(line_type))
    offset = len(LINE_PREFIXES.get(line_type, ""))
    for match in matches:
        if match.side not in {None, side}:
            continue
        style = "black on yellow" if match is focused else "black on bright_black"
        start = offset + match.start_index
        text.stylize(style, start, start + len(query))
    return text


def render_rows(
    console: Console,
    file_key: str,
    rows: list[LineMetadata],
    display_mode: str,
    max_rows: int,
    result: SearchResult | None = None,
    focused: SearchMatch | None = None,
) -> None:
    shown = rows[:max_rows]
    title = f"{file_key} ({display_mode}, {len(shown)}/{len(rows)} rows)"
    table = Table(title=title, header_style="bold magenta", show_lines=False)
    table.add_column("", no_wrap=True)
    query = result.query if result is not None else ""

    if display_mode == "split":
        table.add_column("old", justify="right", no_wrap=True)
        table.add_column("left", overflow="fold")
        table.add_column("new", justify="right", no_wrap=True)
        table.add_column("right", overflow="fold")
    else:
        table.add_column("old", justify="right", no_wrap=True)
        table.add_column("new", justify="right", no_wrap=True)
        table.add_column("content", overflow="fold")

    for row in shown:
        glyph = DIRECTION_GLYPHS.get(row.hunk_direction or "", "")
        matches = result.matches_for_row(file_key, row) if result is not None else []
        if row.is_hunk:
            header = Text(row.content_left or "", style=line_style("hunk"))
            if display_mode == "split":
                table.add_row(glyph, format_line_number(row.line_number_left), header, format_line_number(row.line_number_right), "")
            else:
                table.add_row(glyph, format_line_number(row.line_number_left), format_line_number(row.line_number_right), header)
            continue

        if display_mode == "split":
            table.add_row(
                glyph,
                format_line_number(row.line_number_left),
                side_text(row, "left", matches, focused, query),
                format_line_number(row.line_number_right),
                side_text(row, "right", matches, focused, query),
            )
        else:
            table.add_row(
                glyph,
                format_line_number(row.line_number_left),
                format_line_number(row.line_number_right),
                side_text(row, "left", matches, focused, query),
            )
    console.print(table)


def render_search(console: Console, result: SearchResult | None, focused: SearchMatch | None, current_index: int) -> None:
    if result is None:
        console.print(Text("No matches.", style="yellow"))
        return
    position = "-" if focused is None else f"{current_index + 1}/{result.size}"
    console.print(Text(f"Search {result.query!r}: {result.size} match(es), focused {position}", style="bold cyan"))
