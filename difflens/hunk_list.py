from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from .file_diff import FileDiff, HunkInfo
from .line_extensions import LineRange, LoadMoreLinesResult
from .line_metadata import LineMetadata
from .models import DiffLine, Hunk
from .parsers import build_line_parser

logger = logging.getLogger(__name__)

RELATION_DIRECTIONS = {
    "start-of-file": "up",
    "small-gap": "out",
    "large-gap": "in",
}
MAX_LINE_OFFSET = 5


@dataclass(frozen=True)
class LoadRange:
    left_range: LineRange
    right_range: LineRange


def _clamped(start: int, end: int) -> LineRange:
    return LineRange(start, max(start, end))


def _search_right_line(
    line_number: int,
    content: str,
    right_lines: Mapping[int, str],
    used: set[int],
) -> int | None:
    candidates = [line_number]
    for offset in range(1, MAX_LINE_OFFSET + 1):
        candidates.append(line_number - offset)
        candidates.append(line_number + offset)
    for candidate in candidates:
        if candidate in used:
            continue
        if right_lines.get(candidate) == content:
            return candidate
    return None


def build_context_lines(left_lines: Mapping[int, str], right_lines: Mapping[int, str]) -> list[DiffLine]:
    """Pair freshly loaded old/new lines into context lines.

    Each old line is matched to an unused new line with identical content,
    probing the same number first and then offsets 1..5, above before below.
    New lines left over are emitted without an old number.
    """
    used_right: set[int] = set()
    lines: list[DiffLine] = []

    for old_number in sorted(left_lines):
        content = left_lines[old_number]
        new_number = _search_right_line(old_number, content, right_lines, used_right)
        if new_number is not None:
            used_right.add(new_number)
        lines.append(DiffLine(content, "context", old_number, new_number))

    for new_number in sorted(right_lines):
        if new_number not in used_right:
            lines.append(DiffLine(right_lines[new_number], "context", None, new_number))

    lines.sort(key=lambda line: line.sort_key)
    return lines


class HunkListViewModel:
    """Row sequence of one file, plus the load-more bookkeeping for its hunks.

    Instances are never mutated after construction; ``load_lines`` returns a
    new view model wrapping the expanded ``FileDiff`` or ``self`` when nothing
    changed.
    """

    def __init__(self, file_diff: FileDiff, display_mode: str = "split", max_lines_to_fetch: int = 10) -> None:
        self.file_diff = file_diff
        self.display_mode = display_mode
        self.max_lines_to_fetch = max_lines_to_fetch
        self._parser = build_line_parser(display_mode)
        self._line_pairs: list[LineMetadata] | None = None
        self._hunk_info: dict[int, HunkInfo] = {}

    @property
    def file_path(self) -> str:
        return self.file_diff.key

    @property
    def hunks(self) -> tuple[Hunk, ...]:
        return self.file_diff.hunks

    @property
    def line_pairs(self) -> list[LineMetadata]:
        if self._line_pairs is None:
            self._line_pairs = self._compute_line_pairs()
        return self._line_pairs

    def hunk_info(self, row: LineMetadata) -> HunkInfo | None:
        pairs = self.line_pairs
        row_id = row.row_id
        if row_id is None or not 0 <= row_id < len(pairs) or pairs[row_id] is not row:
            return None
        return self._hunk_info.get(row_id)

    def expandable_rows(self) -> list[LineMetadata]:
        return [row for row in self.line_pairs if row.hunk_direction is not None]

    def get_load_range(self, row: LineMetadata, direction: str) -> LoadRange:
        cur_old = row.line_number_left if row.line_number_left is not None else (row.line_number_right or 0)
        cur_new = row.line_number_right if row.line_number_right is not None else cur_old
        info = self.hunk_info(row)
        prev = info.prev if info is not None else None
        prev_old_end = prev.old_end if prev is not None else 0
        prev_new_end = prev.new_end if prev is not None else 0
        max_lines = self.max_lines_to_fetch

        if direction == "up":
            return LoadRange(
                _clamped(max(cur_old - max_lines, 1), max(cur_old - 1, 1)),
                _clamped(max(cur_new - max_lines, 1), max(cur_new - 1, 1)),
            )
        if direction == "down":
            if info is not None and row.hunk_direction == "down":
                # The footer anchors on the hunk end, not its own position, so no line is skipped.
                cur_old = info.curr.old_end
                cur_new = info.curr.new_end
            return LoadRange(
                _clamped(cur_old + 1, cur_old + max_lines),
                _clamped(cur_new + 1, cur_new + max_lines),
            )
        if direction == "in_up":
            return LoadRange(
                _clamped(max(cur_old - max_lines, 1), cur_old - 1),
                _clamped(max(cur_new - max_lines, 1), cur_new - 1),
            )
        if direction == "in_down":
            return LoadRange(
                _clamped(prev_old_end + 1, min(prev_old_end + max_lines, cur_old - 1)),
                _clamped(prev_new_end + 1, min(prev_new_end + max_lines, cur_new - 1)),
            )
        if direction == "out":
            return LoadRange(
                _clamped(prev_old_end + 1, cur_old - 1),
                _clamped(prev_new_end + 1, cur_new - 1),
            )
        raise ValueError(f"Invalid direction: {direction}")

    def load_lines(self, row: LineMetadata, result: LoadMoreLinesResult, direction: str) -> HunkListViewModel:
        info = self.hunk_info(row)
        if info is None:
            logger.debug("Ignoring load for a row not tracked by %s", self.file_path)
            return self

        context_lines = build_context_lines(result.left_lines, result.right_lines)
        file_diff = self.file_diff.with_context(context_lines, info, direction)
        if file_diff is self.file_diff:
            return self
        logger.debug(
            "Expanded %s %s with %d line(s): %d -> %d hunk(s)",
            self.file_path,
            direction,
            len(context_lines),
            len(self.file_diff.hunks),
            len(file_diff.hunks),
        )
        return HunkListViewModel(file_diff, self.display_mode, self.max_lines_to_fetch)

    def with_display_mode(self, display_mode: str) -> HunkListViewModel:
        if display_mode == self.display_mode:
            return self
        return HunkListViewModel(self.file_diff, display_mode, self.max_lines_to_fetch)

    def _compute_line_pairs(self) -> list[LineMetadata]:
        self._hunk_info = {}
        pairs: list[LineMetadata] = []
        language = self.file_diff.language
        prev_hunk: Hunk | None = None

        for hunk in self.hunks:
            direction = RELATION_DIRECTIONS.get(hunk.get_relation_to(prev_hunk))
            if direction is not None:
                header = self._build_hunk_row(hunk, hunk.old_start, hunk.new_start, direction)
                self._append(pairs, header, HunkInfo(curr=hunk, prev=prev_hunk))
            for row in self._parser.parse(hunk.changes, language):
                self._append(pairs, row)
            prev_hunk = hunk

        if prev_hunk is not None:
            footer = self._build_hunk_row(
                prev_hunk,
                prev_hunk.old_start + prev_hunk.old_lines,
                prev_hunk.new_start + prev_hunk.new_lines,
                "down",
            )
            self._append(pairs, footer, HunkInfo(curr=prev_hunk))
        return pairs

    def _append(self, pairs: list[LineMetadata], row: LineMetadata, info: HunkInfo | None = None) -> None:
        row.row_id = len(pairs)
        pairs.append(row)
        if info is not None:
            self._hunk_info[row.row_id] = info

    def _build_hunk_row(self, hunk: Hunk, old_line: int, new_line: int, direction: str) -> LineMetadata:
        row = self._parser.parse([DiffLine(hunk.header, "hunk")], self.file_diff.language)[0]
        row.hunk_direction = direction
        row.line_number_left = old_line
        row.line_number_right = new_line
        return row
