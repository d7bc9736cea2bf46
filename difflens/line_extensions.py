from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable


@dataclass(frozen=True)
class LineRange:
    start: int
    end: int

    def __iter__(self):
        return iter(range(self.start, self.end + 1))

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class LineRequest:
    file_key: str
    left_range: LineRange
    right_range: LineRange


@dataclass(frozen=True)
class LoadMoreLinesResult:
    # Keys are absolute line numbers of that file version; a missing key means unavailable.
    left_lines: dict[int, str] = field(default_factory=dict)
    right_lines: dict[int, str] = field(default_factory=dict)


LoadMoreLinesHandler = Callable[[LineRequest], Awaitable[LoadMoreLinesResult]]
