from __future__ import annotations

from dataclasses import dataclass, field

HUNK_DIRECTIONS = {"up", "down", "in", "in_up", "in_down", "out"}
SIDES = {"left", "right"}


@dataclass
class LineMetadata:
    """One render-ready row pairing the old (left) and new (right) side.

    Parsers fill both slots; ``row_id`` is the row's index in the row list of
    the view model that emitted it and is not part of value equality.
    """

    type_left: str | None = None
    content_left: str | None = None
    line_number_left: int | None = None
    type_right: str | None = None
    content_right: str | None = None
    line_number_right: int | None = None
    language: str = "text"
    hunk_direction: str | None = None
    row_id: int | None = field(default=None, compare=False)

    @classmethod
    def build_hunk_line(cls, content: str, language: str) -> LineMetadata:
        return cls("hunk", content, None, "hunk", content, None, language)

    @property
    def is_hunk(self) -> bool:
        return self.type_left == "hunk" or self.type_right == "hunk"

    def content(self, side: str | None = None) -> str | None:
        if side == "right":
            return self.content_right
        return self.content_left

    def line_type(self, side: str | None = None) -> str:
        value = self.type_right if side == "right" else self.type_left
        return value or "context"

    def line_number(self, side: str | None = None) -> int | None:
        if side == "right":
            return self.line_number_right
        return self.line_number_left

    def to_dict(self) -> dict[str, object]:
        return {
            "typeLeft": self.type_left,
            "contentLeft": self.content_left,
            "lineNumberLeft": self.line_number_left,
            "typeRight": self.type_right,
            "contentRight": self.content_right,
            "lineNumberRight": self.line_number_right,
            "hunkDirection": self.hunk_direction,
        }
