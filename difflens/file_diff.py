from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from functools import cmp_to_key
from pathlib import PurePosixPath
from typing import Iterable

from .models import DiffLine, Hunk
from .tokenizer import NULL_PATH, RawFile, normalize_diff_path

logger = logging.getLogger(__name__)

BINARY_FILES_RE = re.compile(r"^Binary files (?P<a>.+) and (?P<b>.+) differ$", re.MULTILINE)
GIT_BINARY_MARKER = "GIT binary patch"
BINARY_LITERAL_RE = re.compile(r"^literal (?P<size>\d+)$", re.MULTILINE)
BINARY_SIZE_COMMENT_RE = re.compile(r"^#\s*size:\s*(?P<size>\d+)\s*bytes?\s*$", re.MULTILINE | re.IGNORECASE)

LANGUAGE_BY_SUFFIX = {
    ".py": "python",
    ".pyi": "python",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".json": "json",
    ".md": "markdown",
    ".css": "css",
    ".scss": "scss",
    ".html": "html",
    ".xml": "xml",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".java": "java",
    ".kt": "kotlin",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".swift": "swift",
    ".sh": "bash",
    ".sql": "sql",
}
LANGUAGE_BY_NAME = {"Dockerfile": "docker", "Makefile": "makefile"}


def detect_language(path: str) -> str:
    path_obj = PurePosixPath(path)
    if path_obj.name in LANGUAGE_BY_NAME:
        return LANGUAGE_BY_NAME[path_obj.name]
    return LANGUAGE_BY_SUFFIX.get(path_obj.suffix.lower(), "text")


def is_binary_content(raw_content: str, old_path: str, new_path: str) -> bool:
    if GIT_BINARY_MARKER in raw_content:
        return True
    expected = (old_path, new_path)
    for match in BINARY_FILES_RE.finditer(raw_content):
        paths = (normalize_diff_path(match.group("a")), normalize_diff_path(match.group("b")))
        if paths == expected or paths[::-1] == expected:
            return True
    return False


def parse_binary_size(raw_content: str) -> int | None:
    match = BINARY_LITERAL_RE.search(raw_content) or BINARY_SIZE_COMMENT_RE.search(raw_content)
    if match is None:
        return None
    return int(match.group("size"))


@dataclass(frozen=True)
class HunkInfo:
    """Neighbourhood of an expandable row: the hunk it opens and the one before."""

    curr: Hunk
    prev: Hunk | None = None

    @property
    def prev_hunk_last_line(self) -> int:
        return self.prev.old_end if self.prev is not None else 0


@dataclass(frozen=True, eq=False)
class FileDiff:
    old_path: str
    new_path: str
    is_renamed: bool = False
    is_new: bool = False
    is_deleted: bool = False
    language: str = "text"
    hunks: tuple[Hunk, ...] = field(default_factory=tuple)
    raw_content: str = ""
    is_binary: bool = False
    bytes: int | None = None

    @property
    def key(self) -> str:
        return self.old_path if self.is_deleted else self.new_path

    @property
    def status(self) -> str:
        if self.is_new:
            return "added"
        if self.is_deleted:
            return "deleted"
        if self.is_renamed:
            return "renamed"
        return "modified"

    @property
    def additions(self) -> int:
        return sum(1 for hunk in self.hunks for line in hunk.changes if line.type == "add")

    @property
    def deletions(self) -> int:
        return sum(1 for hunk in self.hunks for line in hunk.changes if line.type == "delete")

    @classmethod
    def build(cls, raw_content: str, raw_file: RawFile) -> FileDiff:
        old_path = raw_file.from_path
        new_path = raw_file.to_path
        is_new = old_path == NULL_PATH
        is_deleted = new_path == NULL_PATH
        file_path = old_path if is_deleted else new_path
        is_binary = is_binary_content(raw_content, old_path, new_path)

        hunks: tuple[Hunk, ...] = ()
        if not is_binary:
            hunks = tuple(Hunk.build(chunk.changes, file_path) for chunk in raw_file.chunks)

        return cls(
            old_path=old_path,
            new_path=new_path,
            is_renamed=old_path != new_path and not is_new and not is_deleted,
            is_new=is_new,
            is_deleted=is_deleted,
            language="binary" if is_binary else detect_language(file_path),
            hunks=hunks,
            raw_content=raw_content,
            is_binary=is_binary,
            bytes=parse_binary_size(raw_content) if is_binary else None,
        )

    def with_context(self, lines: Iterable[DiffLine], hunk_info: HunkInfo | None, direction: str) -> FileDiff:
        if hunk_info is None:
            return self
        prev, curr = hunk_info.prev, hunk_info.curr

        if direction == "out":
            if prev is None or curr is None:
                return self
            return self._merge_hunks(list(lines), prev, curr)
        if direction in {"up", "in_up", "down"}:
            return self._add_context(list(lines), curr)
        if direction == "in_down" and prev is not None:
            return self._add_context(list(lines), prev)
        return self

    def _index_of(self, hunk: Hunk | None) -> int | None:
        for index, candidate in enumerate(self.hunks):
            if candidate is hunk:
                return index
        return None

    def _add_context(self, lines: list[DiffLine], target: Hunk | None) -> FileDiff:
        index = self._index_of(target)
        if index is None:
            logger.debug("Hunk to expand is not part of %s", self.key)
            return self
        hunks = list(self.hunks)
        hunks[index] = hunks[index].add_changes(lines)
        return replace(self, hunks=tuple(hunks))

    def _merge_hunks(self, lines: list[DiffLine], prev: Hunk, curr: Hunk) -> FileDiff:
        prev_index = self._index_of(prev)
        curr_index = self._index_of(curr)
        if prev_index is None or curr_index is None:
            logger.debug("Hunks to merge are not part of %s", self.key)
            return self
        hunks = list(self.hunks)
        hunks[prev_index] = prev.add_changes([*lines, *curr.changes])
        del hunks[curr_index]
        return replace(self, hunks=tuple(hunks))

    @staticmethod
    def compare(a: FileDiff, b: FileDiff) -> int:
        parts_a = a.key.split("/")
        parts_b = b.key.split("/")
        for index in range(min(len(parts_a), len(parts_b))):
            segment_a = parts_a[index]
            segment_b = parts_b[index]
            if segment_a == segment_b:
                continue
            a_is_file = index == len(parts_a) - 1
            b_is_file = index == len(parts_b) - 1
            if a_is_file and not b_is_file:
                return 1
            if b_is_file and not a_is_file:
                return -1
            return -1 if segment_a < segment_b else 1
        # Shared prefix: the longer path sorts first.
        return len(parts_b) - len(parts_a)


def sort_files(files: Iterable[FileDiff]) -> list[FileDiff]:
    return sorted(files, key=cmp_to_key(FileDiff.compare))
