import asyncio
import sys
import unittest
from pathlib import Path
from unittest import mock

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from difflens import expansion
from difflens.expansion import GitLineProvider, expand_all_hunks, extract_lines, load_more_lines, resolve_direction
from difflens.hunk_list import HunkListViewModel
from difflens.line_extensions import LineRange, LineRequest, LoadMoreLinesResult
from difflens.parsed_diff import ParsedDiff


APP_DIFF = """diff --git a/src/app.py b/src/app.py
--- a/src/app.py
+++ b/src/app.py
@@ -20,4 +20,4 @@
 line20
-old21
+new21
 line22
 line23
@@ -40,3 +40,4 @@
 line40
+added41
 line41
 line42
"""

OLD_TEXT = "\n".join(f"line{number}" for number in range(1, 61)) + "\n"


def make_view_model() -> HunkListViewModel:
    return HunkListViewModel(ParsedDiff.build(APP_DIFF).files[0], "split", 10)


class FileLines:
    """In-memory provider: both versions share numbering outside the hunks."""

    def __init__(self) -> None:
        self.requests: list[LineRequest] = []

    async def __call__(self, request: LineRequest) -> LoadMoreLinesResult:
        self.requests.append(request)
        left = extract_lines(OLD_TEXT, request.left_range.start, request.left_range.end)
        right = extract_lines(OLD_TEXT, request.right_range.start, request.right_range.end)
        return LoadMoreLinesResult(left, right)


class TestHelpers(unittest.TestCase):
    def test_extract_lines_clips_to_content(self):
        self.assertEqual(extract_lines("a\nb\nc\n", 0, 2), {1: "a", 2: "b"})
        self.assertEqual(extract_lines("a\nb\nc", 3, 9), {3: "c"})
        self.assertEqual(extract_lines("", 1, 3), {})

    def test_resolve_direction(self):
        self.assertEqual(resolve_direction("in"), "in_down")
        self.assertEqual(resolve_direction("in", upward=True), "in_up")
        self.assertEqual(resolve_direction("out", upward=True), "out")

    def test_line_range_iterates_inclusive(self):
        self.assertEqual(list(LineRange(3, 5)), [3, 4, 5])


class TestLoadMoreLines(unittest.TestCase):
    def test_request_uses_computed_range(self):
        vm = make_view_model()
        provider = FileLines()
        expanded = asyncio.run(load_more_lines(vm, vm.line_pairs[0], "up", provider))
        self.assertEqual(provider.requests, [LineRequest("src/app.py", LineRange(10, 19), LineRange(10, 19))])
        self.assertEqual(expanded.hunks[0].old_start, 10)

    def test_stale_row_skips_handler(self):
        vm = make_view_model()
        stale = make_view_model().line_pairs[0]
        provider = FileLines()
        self.assertIs(asyncio.run(load_more_lines(vm, stale, "up", provider)), vm)
        self.assertEqual(provider.requests, [])

    def test_handler_failure_propagates(self):
        vm = make_view_model()

        async def failing(request: LineRequest) -> LoadMoreLinesResult:
            raise RuntimeError("host offline")

        with self.assertRaises(RuntimeError):
            asyncio.run(load_more_lines(vm, vm.line_pairs[0], "up", failing))
        self.assertEqual(vm.hunks[0].old_start, 20)

    def test_expand_all_hunks_visits_every_header(self):
        vm = make_view_model()
        provider = FileLines()
        expanded = asyncio.run(expand_all_hunks(vm, provider))
        self.assertEqual(len(provider.requests), 3)
        self.assertEqual(len(expanded.hunks), 2)
        self.assertEqual(expanded.hunks[0].old_start, 10)
        self.assertEqual(expanded.hunks[0].old_lines, 24)
        self.assertEqual(expanded.hunks[1].old_end, 52)

    def test_expand_all_hunks_follows_merge(self):
        text = "--- a/x.py\n+++ b/x.py\n@@ -2,2 +2,2 @@\n-line2\n+LINE2\n line3\n@@ -8,1 +8,1 @@\n-line8\n+LINE8\n"
        vm = HunkListViewModel(ParsedDiff.build(text).files[0], "split", 10)
        self.assertEqual([row.hunk_direction for row in vm.expandable_rows()], ["up", "out", "down"])
        expanded = asyncio.run(expand_all_hunks(vm, FileLines()))
        self.assertEqual(len(expanded.hunks), 1)
        hunk = expanded.hunks[0]
        self.assertEqual((hunk.old_start, hunk.old_end), (1, 18))


class TestGitLineProvider(unittest.TestCase):
    def test_reads_both_versions_once(self):
        provider = GitLineProvider(Path("/repo"), "base", "head", {"new.py": ("old.py", "new.py")})
        contents = {("base", "old.py"): "a\nb\nc\n", ("head", "new.py"): "a\nB\nc\nd\n"}

        def fake_read(repo: Path, ref: str, path: str) -> str:
            return contents[(ref, path)]

        request = LineRequest("new.py", LineRange(1, 2), LineRange(3, 4))
        with mock.patch.object(expansion, "read_git_file", side_effect=fake_read) as reader:
            first = asyncio.run(provider(request))
            second = asyncio.run(provider(request))
        self.assertEqual(first.left_lines, {1: "a", 2: "b"})
        self.assertEqual(first.right_lines, {3: "c", 4: "d"})
        self.assertEqual(second, first)
        self.assertEqual(reader.call_count, 2)

    def test_missing_side_yields_empty_map(self):
        provider = GitLineProvider(Path("/repo"), "base", "head")

        def fake_read(repo: Path, ref: str, path: str) -> str:
            if ref == "base":
                raise RuntimeError("git show base:x.py failed: does not exist")
            return "x\n"

        with mock.patch.object(expansion, "read_git_file", side_effect=fake_read):
            result = asyncio.run(provider(LineRequest("x.py", LineRange(1, 1), LineRange(1, 1))))
        self.assertEqual(result.left_lines, {})
        self.assertEqual(result.right_lines, {1: "x"})

    def test_null_path_is_never_read(self):
        files = ParsedDiff.build("diff --git a/n.txt b/n.txt\nnew file mode 100644\n--- /dev/null\n+++ b/n.txt\n@@ -0,0 +1 @@\n+x\n").files
        provider = GitLineProvider.for_files(Path("/repo"), "base", "head", files)
        with mock.patch.object(expansion, "read_git_file", return_value="x\n") as reader:
            result = asyncio.run(provider(LineRequest("n.txt", LineRange(1, 1), LineRange(1, 1))))
        self.assertEqual(result.left_lines, {})
        self.assertEqual(result.right_lines, {1: "x"})
        reader.assert_called_once_with(Path("/repo"), "head", "n.txt")


if __name__ == "__main__":
    unittest.main()
