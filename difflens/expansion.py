from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable

from .file_diff import FileDiff
from .git_source import read_git_file
from .hunk_list import HunkListViewModel
from .line_extensions import LineRange, LineRequest, LoadMoreLinesHandler, LoadMoreLinesResult
from .line_metadata import LineMetadata
from .tokenizer import NULL_PATH

logger = logging.getLogger(__name__)


def resolve_direction(hunk_direction: str | None, upward: bool = False) -> str | None:
    """Map a header row's direction to the one a load request uses.

    Large gaps (``in``) expand from either side; the lower half of the
    previous hunk is the default.
    """
    if hunk_direction == "in":
        return "in_up" if upward else "in_down"
    return hunk_direction


async def load_more_lines(
    view_model: HunkListViewModel,
    row: LineMetadata,
    direction: str,
    handler: LoadMoreLinesHandler,
) -> HunkListViewModel:
    if view_model.hunk_info(row) is None:
        logger.debug("Skipping load for stale row in %s", view_model.file_path)
        return view_model

    load_range = view_model.get_load_range(row, direction)
    request = LineRequest(view_model.file_path, load_range.left_range, load_range.right_range)
    logger.debug(
        "Requesting %s lines %s/%s for %s",
        direction,
        load_range.left_range.to_dict(),
        load_range.right_range.to_dict(),
        request.file_key,
    )
    result = await handler(request)
    return view_model.load_lines(row, result, direction)


async def expand_all_hunks(
    view_model: HunkListViewModel,
    handler: LoadMoreLinesHandler,
    upward: bool = False,
) -> HunkListViewModel:
    index = 0
    while True:
        rows = view_model.expandable_rows()
        if index >= len(rows):
            return view_model
        row = rows[index]
        direction = resolve_direction(row.hunk_direction, upward)
        expanded = await load_more_lines(view_model, row, direction, handler)
        # A merge removes the header in place; the next one slides into this slot.
        if len(expanded.expandable_rows()) >= len(rows):
            index += 1
        view_model = expanded


def extract_lines(content: str, start: int, end: int) -> dict[int, str]:
    lines = content.splitlines()
    first = max(start, 1)
    last = min(end, len(lines))
    return {number: lines[number - 1] for number in range(first, last + 1)}


class GitLineProvider:
    """Answers load requests from both file versions stored in a git repository."""

    def __init__(
        self,
        repo: Path,
        base_ref: str,
        head_ref: str,
        paths: dict[str, tuple[str, str]] | None = None,
    ) -> None:
        self.repo = repo
        self.base_ref = base_ref
        self.head_ref = head_ref
        self.paths = dict(paths or {})
        self._contents: dict[tuple[str, str], str | None] = {}

    @classmethod
    def for_files(cls, repo: Path, base_ref: str, head_ref: str, files: Iterable[FileDiff]) -> GitLineProvider:
        paths = {file_diff.key: (file_diff.old_path, file_diff.new_path) for file_diff in files}
        return cls(repo, base_ref, head_ref, paths)

    async def __call__(self, request: LineRequest) -> LoadMoreLinesResult:
        old_path, new_path = self.paths.get(request.file_key, (request.file_key, request.file_key))
        left_lines = await self._read_range(self.base_ref, old_path, request.left_range)
        right_lines = await self._read_range(self.head_ref, new_path, request.right_range)
        return LoadMoreLinesResult(left_lines=left_lines, right_lines=right_lines)

    async def _read_range(self, ref: str, path: str, line_range: LineRange) -> dict[int, str]:
        if path == NULL_PATH:
            return {}
        cache_key = (ref, path)
        if cache_key not in self._contents:
            try:
                self._contents[cache_key] = await asyncio.to_thread(read_git_file, self.repo, ref, path)
            except RuntimeError as error:
                logger.debug("No content for %s at %s: %s", path, ref, error)
                self._contents[cache_key] = None
        content = self._contents[cache_key]
        if content is None:
            return {}
        return extract_lines(content, line_range.start, line_range.end)
