from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .file_diff import FileDiff
from .tokenizer import NULL_PATH, git_header_paths, tokenize_unified_diff

logger = logging.getLogger(__name__)


def slice_file_contents(raw_content: str) -> dict[str, list[str]]:
    result: dict[str, list[str]] = {}
    current_file: str | None = None

    for line in raw_content.split("\n"):
        if line.startswith("diff --git"):
            from_file, to_file = git_header_paths(line)
            current_file = from_file if to_file == NULL_PATH else to_file
            result.setdefault(current_file, [])
        elif current_file is not None:
            result[current_file].append(line)
    return result


@dataclass(frozen=True, eq=False)
class ParsedDiff:
    raw_content: str
    files: tuple[FileDiff, ...] = field(default_factory=tuple)

    @classmethod
    def build(cls, raw_content: str) -> ParsedDiff:
        if not raw_content.strip():
            return cls(raw_content=raw_content)
        try:
            raw_files = tokenize_unified_diff(raw_content)
            content_map = slice_file_contents(raw_content)
            files = []
            for raw_file in raw_files:
                # Deleted files keep their body under the original path.
                content_key = raw_file.from_path if raw_file.to_path == NULL_PATH else raw_file.to_path
                files.append(FileDiff.build("\n".join(content_map.get(content_key, [])), raw_file))
        except RuntimeError as error:
            logger.warning("Could not parse diff text: %s", error)
            return cls(raw_content=raw_content)
        return cls(raw_content=raw_content, files=tuple(files))

    def get_file(self, key: str) -> FileDiff | None:
        for file_diff in self.files:
            if file_diff.key == key:
                return file_diff
        return None
