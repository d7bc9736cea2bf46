from __future__ import annotations

import logging

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import DataTable, Footer, Header, Input, Static

from .config import ViewerConfig
from .expansion import load_more_lines, resolve_direction
from .file_diff import sort_files
from .hunk_list import HunkListViewModel
from .line_extensions import LoadMoreLinesHandler
from .line_metadata import LineMetadata
from .parsed_diff import ParsedDiff
from .search import DiffSearch
from .viewer_render import DIRECTION_GLYPHS, format_line_number, line_style, side_text, status_style

logger = logging.getLogger(__name__)


class DiffTextualApp(App[None]):
    CSS = """
    Screen { layout: vertical; }
    #topbar { height: 3; border: round #3a86ff; padding: 0 1; }
    #main { height: 1fr; }
    #left { width: 32%; border: round #4cc9f0; }
    #right { width: 68%; border: round #f72585; }
    #files { height: 1fr; }
    #search { height: 3; border: round #2ec4b6; margin: 0 1; }
    #rows { height: 1fr; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("/", "focus_search", "Search"),
        Binding("r", "reset_search", "Reset Search"),
        Binding("n", "next_match", "Next"),
        Binding("N", "previous_match", "Previous"),
        Binding("m", "toggle_mode", "Split/Unified"),
        Binding("e", "expand", "Expand"),
        Binding("E", "expand_up", "Expand Up"),
        Binding("f", "focus_files", "Files"),
        Binding("l", "focus_rows", "Rows"),
    ]

    def __init__(
        self,
        parsed: ParsedDiff,
        config: ViewerConfig | None = None,
        handler: LoadMoreLinesHandler | None = None,
        source_label: str = "",
    ) -> None:
        super().__init__()
        self.config = config or ViewerConfig()
        self.handler = handler
        self.source_label = source_label
        self.files = sort_files(parsed.files)
        self.display_mode = self.config.display_mode
        self.view_models: dict[str, HunkListViewModel] = {
            file_diff.key: HunkListViewModel(file_diff, self.display_mode, self.config.max_lines_to_fetch)
            for file_diff in self.files
        }
        self.search = DiffSearch(self.files, self.display_mode, self.config.search_max_lines_to_fetch)
        self.current_key: str | None = self.files[0].key if self.files else None
        self.displayed_rows: list[LineMetadata] = []
        self._pending: set[str] = set()

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static("", id="topbar")
        with Horizontal(id="main"):
            with Vertical(id="left"):
                yield DataTable(id="files", cursor_type="row")
            with Vertical(id="right"):
                yield Input(placeholder="Search rows (Enter to run)...", id="search")
                yield DataTable(id="rows", cursor_type="row")
        yield Footer()

    def on_mount(self) -> None:
        files_table = self.query_one("#files", DataTable)
        files_table.add_columns("status", "file", "+", "-")
        for file_diff in self.files:
            files_table.add_row(
                Text(file_diff.status, style=status_style(file_diff.status)),
                file_diff.key,
                str(file_diff.additions),
                str(file_diff.deletions),
                key=file_diff.key,
            )
        self._show_file(self.current_key)
        self.query_one("#rows", DataTable).focus()

    def action_focus_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_focus_files(self) -> None:
        self.query_one("#files", DataTable).focus()

    def action_focus_rows(self) -> None:
        self.query_one("#rows", DataTable).focus()

    def action_reset_search(self) -> None:
        self.query_one("#search", Input).value = ""
        self.search.clear()
        self._show_file(self.current_key)

    def action_next_match(self) -> None:
        self.search.next_match()
        self._focus_match()

    def action_previous_match(self) -> None:
        self.search.previous_match()
        self._focus_match()

    def action_toggle_mode(self) -> None:
        self.display_mode = "unified" if self.display_mode == "split" else "split"
        self.view_models = {key: vm.with_display_mode(self.display_mode) for key, vm in self.view_models.items()}
        self.search.set_display_mode(self.display_mode)
        self._show_file(self.current_key)

    async def action_expand(self) -> None:
        await self.expand_row(self.selected_row())

    async def action_expand_up(self) -> None:
        await self.expand_row(self.selected_row(), upward=True)

    def selected_row(self) -> LineMetadata | None:
        table = self.query_one("#rows", DataTable)
        if not self.displayed_rows or not 0 <= table.cursor_row < len(self.displayed_rows):
            return None
        return self.displayed_rows[table.cursor_row]

    async def expand_row(self, row: LineMetadata | None, upward: bool = False) -> bool:
        key = self.current_key
        if key is None or row is None or row.hunk_direction is None:
            self.notify("Select a hunk row to expand.", severity="warning", timeout=1.5)
            return False
        if self.handler is None:
            self.notify("Expansion needs a line provider (--repo/--base).", severity="warning", timeout=2.0)
            return False
        if key in self._pending:
            self.notify("Expansion already in progress.", timeout=1.0)
            return False

        direction = resolve_direction(row.hunk_direction, upward)
        self._pending.add(key)
        try:
            expanded = await load_more_lines(self.view_models[key], row, direction, self.handler)
        except Exception as error:  # noqa: BLE001
            logger.debug("Expansion of %s failed: %s", key, error)
            self.notify(f"Load failed: {error}", severity="error", timeout=3.2)
            return False
        finally:
            self._pending.discard(key)

        # The mode may have been toggled while the request was pending.
        self.view_models[key] = expanded.with_display_mode(self.display_mode)
        if key == self.current_key:
            self._show_file(key, keep_cursor=True)
        return True

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "search":
            return
        self.search.search(event.value)
        if self.search.total_matches == 0 and event.value.strip():
            self.notify(f"No matches for {event.value!r}.", severity="warning", timeout=1.5)
        self._focus_match()
        self.query_one("#rows", DataTable).focus()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.data_table.id != "files" or event.row_key.value is None:
            return
        self._show_file(str(event.row_key.value))

    def _focus_match(self) -> None:
        match = self.search.focused_match
        if match is None:
            self._show_file(self.current_key, keep_cursor=True)
            return
        self._show_file(match.file_key)
        for index, row in enumerate(self.displayed_rows):
            if row == match.row:
                self.query_one("#rows", DataTable).move_cursor(row=index)
                break

    def _show_file(self, key: str | None, keep_cursor: bool = False) -> None:
        table = self.query_one("#rows", DataTable)
        cursor_row = table.cursor_row
        table.clear(columns=True)
        if self.display_mode == "split":
            table.add_columns("", "old", "left", "new", "right")
        else:
            table.add_columns("", "old", "new", "content")

        self.current_key = key
        view_model = self.view_models.get(key) if key is not None else None
        rows = view_model.line_pairs if view_model is not None else []
        self.displayed_rows = rows[: self.config.max_rows]
        result = self.search.result
        focused = self.search.focused_match
        query = result.query if result is not None else ""

        for index, row in enumerate(self.displayed_rows):
            glyph = DIRECTION_GLYPHS.get(row.hunk_direction or "", "")
            old_number = format_line_number(row.line_number_left)
            new_number = format_line_number(row.line_number_right)
            if row.is_hunk:
                header = Text(row.content_left or "", style=line_style("hunk"))
                cells = [glyph, old_number, header, new_number, ""] if self.display_mode == "split" else [glyph, old_number, new_number, header]
            else:
                matches = result.matches_for_row(key, row) if result is not None and key is not None else []
                if self.display_mode == "split":
                    cells = [
                        glyph,
                        old_number,
                        side_text(row, "left", matches, focused, query),
                        new_number,
                        side_text(row, "right", matches, focused, query),
                    ]
                else:
                    cells = [glyph, old_number, new_number, side_text(row, "left", matches, focused, query)]
            table.add_row(*cells, key=str(index))

        if keep_cursor and self.displayed_rows:
            table.move_cursor(row=min(cursor_row, len(self.displayed_rows) - 1))
        self._refresh_topbar()

    def _refresh_topbar(self) -> None:
        total = self.search.total_matches
        position = f"{self.search.current_index + 1}/{total}" if total else "0/0"
        hunks = len(self.view_models[self.current_key].hunks) if self.current_key in self.view_models else 0
        text = (
            f"[b]{self.source_label or '-'}[/b]  "
            f"file={self.current_key or '-'}  "
            f"hunks={hunks}  "
            f"mode={self.display_mode}  "
            f"matches={position}  "
            f"expand={'on' if self.handler is not None else 'off'}  "
            f"[dim]keys: /=search, n/N=next/prev match, m=mode, e=expand, E=expand up, f=files, l=rows[/dim]"
        )
        self.query_one("#topbar", Static).update(text)


def launch_textual_viewer(
    parsed: ParsedDiff,
    config: ViewerConfig,
    handler: LoadMoreLinesHandler | None,
    source_label: str,
) -> int:
    app = DiffTextualApp(parsed, config, handler, source_label)
    app.run()
    return 0
