from __future__ import annotations

from typing import Iterable

from .line_metadata import LineMetadata
from .models import DiffLine

DISPLAY_MODES = {"split", "unified"}


class LineParser:
    def parse(self, lines: Iterable[DiffLine], language: str = "text") -> list[LineMetadata]:
        rows: list[LineMetadata] = []
        for line in lines:
            self.process_line(line, rows, language)
        return rows

    def process_line(self, change: DiffLine, rows: list[LineMetadata], language: str) -> None:
        if change.type == "context":
            rows.append(_both_sides(change, "context", language))
        elif change.type == "empty":
            rows.append(_both_sides(change, "empty", language))
        elif change.type == "hunk":
            rows.append(LineMetadata.build_hunk_line(change.content, language))
        elif change.type == "delete":
            rows.append(
                LineMetadata(
                    type_left="delete",
                    content_left=change.content,
                    line_number_left=change.line_number_old,
                    type_right="empty",
                    language=language,
                )
            )
        elif change.type == "add":
            self.process_addition(change, rows, language)
        else:
            raise RuntimeError(f"Unknown line type encountered: {change.type}")

    def process_addition(self, change: DiffLine, rows: list[LineMetadata], language: str) -> None:
        raise NotImplementedError


class SplitLineParser(LineParser):
    def process_addition(self, change: DiffLine, rows: list[LineMetadata], language: str) -> None:
        last_row = rows[-1] if rows else None
        # Pair with the deletion just before it; greedy and strictly one-to-one.
        if last_row is not None and last_row.type_left == "delete" and last_row.type_right == "empty":
            last_row.type_right = "add"
            last_row.content_right = change.content
            last_row.line_number_right = change.line_number_new
            return
        rows.append(
            LineMetadata(
                type_left="empty",
                type_right="add",
                content_right=change.content,
                line_number_right=change.line_number_new,
                language=language,
            )
        )


class UnifiedLineParser(LineParser):
    def process_addition(self, change: DiffLine, rows: list[LineMetadata], language: str) -> None:
        rows.append(
            LineMetadata(
                type_left="add",
                content_left=change.content,
                type_right="empty",
                line_number_right=change.line_number_new,
                language=language,
            )
        )


def _both_sides(change: DiffLine, line_type: str, language: str) -> LineMetadata:
    return LineMetadata(
        type_left=line_type,
        content_left=change.content,
        line_number_left=change.line_number_old,
        type_right=line_type,
        content_right=change.content,
        line_number_right=change.line_number_new,
        language=language,
    )


def build_line_parser(mode: str) -> LineParser:
    if mode == "split":
        return SplitLineParser()
    if mode == "unified":
        return UnifiedLineParser()
    raise ValueError(f"Invalid parser type: {mode}. Must be 'unified' or 'split'.")
