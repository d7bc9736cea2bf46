from __future__ import annotations

import re
from dataclasses import dataclass, field

NULL_PATH = "/dev/null"

HUNK_HEADER_RE = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? "
    r"\+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@(?P<header>.*)$"
)

GIT_HEADER_RE = re.compile(r"^diff --git (?P<a>a/.*?|/dev/null) (?P<b>b/.*|/dev/null)$")


@dataclass(frozen=True)
class RawLine:
    content: str
    type: str
    old_line: int | None = None
    new_line: int | None = None


@dataclass
class RawChunk:
    content: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    changes: list[RawLine] = field(default_factory=list)


@dataclass
class RawFile:
    from_path: str
    to_path: str
    chunks: list[RawChunk] = field(default_factory=list)

    @property
    def additions(self) -> int:
        return sum(1 for chunk in self.chunks for line in chunk.changes if line.type == "add")

    @property
    def deletions(self) -> int:
        return sum(1 for chunk in self.chunks for line in chunk.changes if line.type == "del")


def normalize_diff_path(raw: str) -> str:
    value = raw.strip()
    if "\t" in value:
        value = value.split("\t", 1)[0]
    if value == NULL_PATH:
        return NULL_PATH
    if value.startswith("a/") or value.startswith("b/"):
        return value[2:]
    return value


def git_header_paths(line: str) -> tuple[str, str]:
    # Prefixed paths may contain spaces; the " b/" boundary separates them.
    match = GIT_HEADER_RE.match(line.rstrip("\r"))
    if match:
        return normalize_diff_path(match.group("a")), normalize_diff_path(match.group("b"))
    parts = line.split()
    a_path = normalize_diff_path(parts[2]) if len(parts) > 2 else ""
    b_path = normalize_diff_path(parts[3]) if len(parts) > 3 else a_path
    return a_path, b_path


def tokenize_unified_diff(diff_text: str) -> list[RawFile]:
    lines = diff_text.splitlines()
    files: list[RawFile] = []
    current_file: RawFile | None = None
    index = 0

    while index < len(lines):
        line = lines[index]

        if line.startswith("diff --git "):
            a_path, b_path = git_header_paths(line)
            current_file = RawFile(from_path=a_path, to_path=b_path)
            files.append(current_file)
            index += 1
            continue

        if line.startswith("--- ") and index + 1 < len(lines) and lines[index + 1].startswith("+++ "):
            from_path = normalize_diff_path(line[4:])
            to_path = normalize_diff_path(lines[index + 1][4:])
            if current_file is None or current_file.chunks:
                current_file = RawFile(from_path=from_path, to_path=to_path)
                files.append(current_file)
            else:
                current_file.from_path = from_path
                current_file.to_path = to_path
            index += 2
            continue

        if current_file is None:
            index += 1
            continue

        if line.startswith("new file mode"):
            current_file.from_path = NULL_PATH
        elif line.startswith("deleted file mode"):
            current_file.to_path = NULL_PATH
        elif line.startswith("rename from "):
            current_file.from_path = line[len("rename from "):].strip()
        elif line.startswith("rename to "):
            current_file.to_path = line[len("rename to "):].strip()
        elif line.startswith("@@ "):
            chunk, index = _read_chunk(lines, index)
            current_file.chunks.append(chunk)
            continue
        index += 1

    return files


def _read_chunk(lines: list[str], index: int) -> tuple[RawChunk, int]:
    header_line = lines[index]
    match = HUNK_HEADER_RE.match(header_line)
    if not match:
        raise RuntimeError(f"Unsupported hunk header: {header_line}")

    old_start = int(match.group("old_start"))
    old_count = int(match.group("old_count") or "1")
    new_start = int(match.group("new_start"))
    new_count = int(match.group("new_count") or "1")
    chunk = RawChunk(
        content=header_line,
        old_start=old_start,
        old_lines=old_count,
        new_start=new_start,
        new_lines=new_count,
    )

    old_cursor = old_start
    new_cursor = new_start
    old_remaining = old_count
    new_remaining = new_count
    index += 1

    while index < len(lines) and (old_remaining > 0 or new_remaining > 0):
        line = lines[index]
        if line.startswith("\\"):
            index += 1
            continue
        if line.startswith("+") and new_remaining > 0:
            chunk.changes.append(RawLine(line, "add", None, new_cursor))
            new_cursor += 1
            new_remaining -= 1
        elif line.startswith("-") and old_remaining > 0:
            chunk.changes.append(RawLine(line, "del", old_cursor, None))
            old_cursor += 1
            old_remaining -= 1
        elif (line.startswith(" ") or line == "") and old_remaining > 0 and new_remaining > 0:
            chunk.changes.append(RawLine(line or " ", "normal", old_cursor, new_cursor))
            old_cursor += 1
            new_cursor += 1
            old_remaining -= 1
            new_remaining -= 1
        else:
            break
        index += 1

    while index < len(lines) and lines[index].startswith("\\"):
        index += 1
    return chunk, index
