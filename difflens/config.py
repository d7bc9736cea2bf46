from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .parsers import DISPLAY_MODES


@dataclass(frozen=True)
class ViewerConfig:
    display_mode: str = "split"
    max_lines_to_fetch: int = 10
    search_max_lines_to_fetch: int = 10
    max_rows: int = 400


def _positive_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise RuntimeError(f"viewer config {key} must be a positive integer, got {value!r}")
    return value


def load_viewer_config(path: Path) -> ViewerConfig:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as error:
        raise RuntimeError(f"Cannot read viewer config {path}: {error}") from error

    viewer = data.get("viewer") or data
    display_mode = str(viewer.get("display_mode") or "split").strip().lower()
    if display_mode not in DISPLAY_MODES:
        raise RuntimeError("viewer config must set display_mode = 'split' or 'unified'")

    return ViewerConfig(
        display_mode=display_mode,
        max_lines_to_fetch=_positive_int(viewer, "max_lines_to_fetch", 10),
        search_max_lines_to_fetch=_positive_int(viewer, "search_max_lines_to_fetch", 10),
        max_rows=_positive_int(viewer, "max_rows", 400),
    )
