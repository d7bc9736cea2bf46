from __future__ import annotations

from typing import Any

from .file_diff import sort_files
from .parsed_diff import ParsedDiff


def summarize_parsed_diff(parsed: ParsedDiff) -> dict[str, Any]:
    file_items: list[dict[str, Any]] = []
    status_counts = {"added": 0, "deleted": 0, "renamed": 0, "modified": 0}
    for file_diff in sort_files(parsed.files):
        status_counts[file_diff.status] += 1
        file_items.append(
            {
                "key": file_diff.key,
                "oldPath": file_diff.old_path,
                "newPath": file_diff.new_path,
                "status": file_diff.status,
                "language": file_diff.language,
                "hunks": len(file_diff.hunks),
                "additions": file_diff.additions,
                "deletions": file_diff.deletions,
                "isBinary": file_diff.is_binary,
                "bytes": file_diff.bytes,
            }
        )

    return {
        "fileCount": len(file_items),
        "hunkCount": sum(item["hunks"] for item in file_items),
        "additions": sum(item["additions"] for item in file_items),
        "deletions": sum(item["deletions"] for item in file_items),
        "binaryCount": sum(1 for item in file_items if item["isBinary"]),
        "statusCounts": status_counts,
        "files": file_items,
    }
