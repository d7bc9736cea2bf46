from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .tokenizer import RawLine

DIFF_LINE_TYPES = {"context", "add", "delete", "hunk", "empty"}
HUNK_RELATIONS = {"adjacent", "start-of-file", "small-gap", "large-gap"}

RAW_TYPE_MAP = {"add": "add", "del": "delete", "normal": "context"}
SMALL_GAP_LIMIT = 10


@dataclass(frozen=True)
class DiffLine:
    content: str
    type: str
    line_number_old: int | None = None
    line_number_new: int | None = None

    @property
    def sort_key(self) -> int:
        if self.line_number_old is not None:
            return self.line_number_old
        if self.line_number_new is not None:
            return self.line_number_new
        return -1

    @classmethod
    def build(cls, raw_line: RawLine) -> DiffLine:
        line_type = RAW_TYPE_MAP.get(raw_line.type)
        if line_type is None:
            raise RuntimeError(f"Unknown line type encountered: {raw_line.type}")
        return cls(
            content=raw_line.content[1:],
            type=line_type,
            line_number_old=raw_line.old_line,
            line_number_new=raw_line.new_line,
        )


def ordering_keys(lines: Iterable[DiffLine]) -> list[tuple[int, int]]:
    """Sort keys that place lines by ``line_number_old ?? line_number_new``.

    Lines without an old number (additions, right-only context) stay right
    after the old line they follow, so a hunk whose new numbering is offset
    from its old numbering keeps its order when re-sorted. Lines before the
    first old line sort just ahead of it; without any old line at all the
    new number is used.
    """
    lines = list(lines)
    if not any(line.line_number_old is not None for line in lines):
        return [(line.sort_key, 0) for line in lines]

    keys: list[tuple[int, int]] = []
    leading = 0
    anchor: int | None = None
    for line in lines:
        if line.line_number_old is not None:
            anchor = line.line_number_old
            if leading:
                keys.extend([(anchor, -1)] * leading)
                leading = 0
            keys.append((anchor, 0))
        elif anchor is None:
            leading += 1
        else:
            keys.append((anchor, 1))
    return keys


@dataclass(frozen=True, eq=False)
class Hunk:
    """A contiguous block of changed and context lines of one file.

    Hunks compare by identity: every edit returns a new instance so callers
    can tell "nothing changed" from "state advanced" with ``is``.
    """

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    changes: tuple[DiffLine, ...] = field(default_factory=tuple)
    file_path: str = ""

    @classmethod
    def build(cls, raw_lines: Iterable[RawLine], file_path: str = "") -> Hunk:
        changes = tuple(DiffLine.build(line) for line in raw_lines)
        if not changes:
            raise RuntimeError("Cannot build a hunk with no changes")

        first_old = next((line.line_number_old for line in changes if line.line_number_old is not None), 1)
        first_new = next((line.line_number_new for line in changes if line.line_number_new is not None), 1)
        old_lines = sum(1 for line in changes if line.type in {"context", "delete"})
        new_lines = sum(1 for line in changes if line.type in {"context", "add"})
        return cls(first_old, old_lines, first_new, new_lines, changes, file_path)

    @cached_property
    def header(self) -> str:
        if not self.changes:
            return ""

        first = self.changes[0]
        has_header = first.content.startswith("@@")
        # A hunk that opens the file with plain context carries no range worth showing.
        if not has_header and self.old_start == 1 and first.type == "context":
            return ""

        context = first.content.split("@@")[-1].strip() if has_header else first.content.strip()
        return f"@@ -{self.old_start},{self.old_lines} +{self.new_start},{self.new_lines} @@ {context}"

    @property
    def content_lines(self) -> list[str]:
        body = [line.content for line in self.changes if not line.content.startswith("@@")]
        return [self.header, *body]

    @property
    def old_end(self) -> int:
        return self.old_start + self.old_lines - 1

    @property
    def new_end(self) -> int:
        return self.new_start + self.new_lines - 1

    def get_relation_to(self, prev_hunk: Hunk | None = None) -> str:
        if prev_hunk is None:
            return "adjacent" if self.old_start <= 1 else "start-of-file"

        gap = self.old_start - (prev_hunk.old_start + prev_hunk.old_lines)
        if gap <= 1:
            return "adjacent"
        if gap <= SMALL_GAP_LIMIT:
            return "small-gap"
        return "large-gap"

    def add_changes(self, new_changes: Iterable[DiffLine]) -> Hunk:
        incoming = list(new_changes)
        keyed = [*zip(ordering_keys(self.changes), self.changes), *zip(ordering_keys(incoming), incoming)]
        keyed.sort(key=lambda item: item[0])
        all_changes = [line for _, line in keyed]

        old_numbers = [line.line_number_old for line in all_changes if line.line_number_old is not None]
        new_numbers = [line.line_number_new for line in all_changes if line.line_number_new is not None]

        old_start = min(old_numbers) if old_numbers else self.old_start
        new_start = min(new_numbers) if new_numbers else self.new_start
        old_lines = max(old_numbers) - old_start + 1 if old_numbers else self.old_lines
        new_lines = max(new_numbers) - new_start + 1 if new_numbers else self.new_lines

        return Hunk(old_start, old_lines, new_start, new_lines, tuple(all_changes), self.file_path)
