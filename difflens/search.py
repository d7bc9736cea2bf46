from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .file_diff import FileDiff
from .hunk_list import HunkListViewModel
from .line_metadata import LineMetadata
from .parsers import DISPLAY_MODES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchMatch:
    file_key: str
    row: LineMetadata
    side: str | None
    start_index: int
    row_index: int


@dataclass(frozen=True)
class SearchResult:
    query: str
    matches: tuple[SearchMatch, ...] = field(default_factory=tuple)

    @property
    def size(self) -> int:
        return len(self.matches)

    def matches_for_row(self, file_key: str, row: LineMetadata) -> list[SearchMatch]:
        # Rows compare by value, so rows of an expanded view still find their matches.
        return [match for match in self.matches if match.file_key == file_key and match.row == row]


def find_occurrences(content: str, query: str) -> list[int]:
    positions: list[int] = []
    index = content.find(query)
    while index != -1:
        positions.append(index)
        index = content.find(query, index + len(query))
    return positions


class DiffSearch:
    """Cross-file substring search over the default-expanded rows of each file.

    Matches are numbered globally in file, row and side order. The cursor
    starts at the first match and ``next_match`` / ``previous_match`` wrap in
    both directions.
    """

    def __init__(self, files: Iterable[FileDiff], display_mode: str = "split", max_lines_to_fetch: int = 10) -> None:
        if display_mode not in DISPLAY_MODES:
            raise ValueError(f"Invalid parser type: {display_mode}. Must be 'unified' or 'split'.")
        self.files = tuple(files)
        self.display_mode = display_mode
        self.max_lines_to_fetch = max_lines_to_fetch
        self._rows: list[tuple[str, LineMetadata]] | None = None
        self._result: SearchResult | None = None
        self._current_index = 0

    @property
    def rows(self) -> list[tuple[str, LineMetadata]]:
        if self._rows is None:
            self._rows = [
                (file_diff.key, row)
                for file_diff in self.files
                for row in HunkListViewModel(file_diff, self.display_mode, self.max_lines_to_fetch).line_pairs
            ]
        return self._rows

    @property
    def result(self) -> SearchResult | None:
        return self._result

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def total_matches(self) -> int:
        return self._result.size if self._result is not None else 0

    @property
    def focused_match(self) -> SearchMatch | None:
        if self._result is None or not self._result.matches:
            return None
        return self._result.matches[self._current_index]

    def clear(self) -> None:
        self._result = None
        self._current_index = 0

    def search(self, query: str) -> SearchResult | None:
        self.clear()
        if not query.strip():
            return None

        sides = ("left",) if self.display_mode == "unified" else ("left", "right")
        matches: list[SearchMatch] = []
        for row_index, (file_key, row) in enumerate(self.rows):
            if row.is_hunk:
                continue
            for side in sides:
                content = row.content(side)
                if not content or self._searchable_line_number(row, side) is None:
                    continue
                for start in find_occurrences(content, query):
                    matches.append(
                        SearchMatch(
                            file_key=file_key,
                            row=row,
                            side=side if self.display_mode == "split" else None,
                            start_index=start,
                            row_index=row_index,
                        )
                    )

        logger.debug("Search %r found %d match(es) in %d row(s)", query, len(matches), len(self.rows))
        if not matches:
            return None
        self._result = SearchResult(query=query, matches=tuple(matches))
        return self._result

    def next_match(self) -> int:
        if self.total_matches:
            self._current_index = (self._current_index + 1) % self.total_matches
        return self._current_index

    def previous_match(self) -> int:
        if self.total_matches:
            self._current_index = (self._current_index - 1) % self.total_matches
        return self._current_index

    def set_display_mode(self, display_mode: str) -> None:
        if display_mode not in DISPLAY_MODES:
            raise ValueError(f"Invalid parser type: {display_mode}. Must be 'unified' or 'split'.")
        if display_mode == self.display_mode:
            return
        query = self._result.query if self._result is not None else ""
        self.display_mode = display_mode
        self._rows = None
        self.search(query)

    def _searchable_line_number(self, row: LineMetadata, side: str) -> int | None:
        line_number = row.line_number(side)
        # Unified additions keep their only number in the right slot.
        if line_number is None and self.display_mode == "unified":
            return row.line_number_right
        return line_number
