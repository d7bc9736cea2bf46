import io
import json
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from difflens import viewer_app, viewer_cli
from scripts import view_diff, view_diff_app


APP_DIFF = """diff --git a/src/app.py b/src/app.py
index 1111111..2222222 100644
--- a/src/app.py
+++ b/src/app.py
@@ -20,4 +20,4 @@ def main():
 line20
-old21
+new21
 line22
 line23
@@ -40,3 +40,4 @@ def helper():
 line40
+added41
 line41
 line42
diff --git a/README.md b/README.md
index 3333333..4444444 100644
--- a/README.md
+++ b/README.md
@@ -1,1 +1,2 @@
 # Title
+added41 in docs
"""

OLD_TEXT = "\n".join(f"line{number}" for number in range(1, 61)) + "\n"


def run_cli(argv: list[str]) -> tuple[int, str, str]:
    stdout = io.StringIO()
    stderr = io.StringIO()
    with redirect_stdout(stdout), redirect_stderr(stderr):
        code = viewer_cli.run_view(argv)
    return code, stdout.getvalue(), stderr.getvalue()


class TestViewerCli(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.diff_path = Path(self._tmp.name) / "change.diff"
        self.diff_path.write_text(APP_DIFF, encoding="utf-8")

    def tearDown(self):
        self._tmp.cleanup()

    def test_parse_args_defaults(self):
        args = viewer_cli.parse_view_args(["change.diff"])
        self.assertEqual(args.path, "change.diff")
        self.assertIsNone(args.mode)
        self.assertEqual(args.head, "HEAD")
        self.assertFalse(args.expand)
        self.assertFalse(args.as_json)

    def test_json_output_lists_sorted_files_and_rows(self):
        code, stdout, _ = run_cli([str(self.diff_path), "--json"])
        self.assertEqual(code, 0)
        payload = json.loads(stdout)
        self.assertEqual(payload["displayMode"], "split")
        self.assertEqual([item["key"] for item in payload["files"]], ["src/app.py", "README.md"])
        self.assertEqual(len(payload["files"][0]["rows"]), 11)
        self.assertEqual(payload["summary"]["additions"], 3)
        self.assertEqual(payload["summary"]["deletions"], 1)
        self.assertEqual(payload["summary"]["hunkCount"], 3)

    def test_json_unified_mode_and_max_rows(self):
        code, stdout, _ = run_cli([str(self.diff_path), "--json", "--mode", "unified", "--max-rows", "5"])
        self.assertEqual(code, 0)
        payload = json.loads(stdout)
        self.assertEqual(payload["displayMode"], "unified")
        self.assertEqual(len(payload["files"][0]["rows"]), 5)
        self.assertEqual(payload["files"][0]["rows"][3]["typeLeft"], "add")

    def test_json_search_counts_matches_across_files(self):
        code, stdout, _ = run_cli([str(self.diff_path), "--json", "--search", "added41"])
        self.assertEqual(code, 0)
        search = json.loads(stdout)["search"]
        self.assertEqual(search["totalMatches"], 2)
        self.assertEqual([match["fileKey"] for match in search["matches"]], ["src/app.py", "README.md"])
        self.assertEqual(search["matches"][0]["side"], "right")

    def test_file_filter(self):
        code, stdout, _ = run_cli([str(self.diff_path), "--json", "--file", "README"])
        self.assertEqual(code, 0)
        self.assertEqual([item["key"] for item in json.loads(stdout)["files"]], ["README.md"])

    def test_file_filter_without_match_returns_2(self):
        code, _, stderr = run_cli([str(self.diff_path), "--file", "nothing-here"])
        self.assertEqual(code, 2)
        self.assertIn("[error] No files matched filters.", stderr)

    def test_missing_file_returns_1(self):
        code, _, stderr = run_cli(["not-found.diff"])
        self.assertEqual(code, 1)
        self.assertIn("[error]", stderr)

    def test_expand_without_repo_returns_1(self):
        code, _, stderr = run_cli([str(self.diff_path), "--expand"])
        self.assertEqual(code, 1)
        self.assertIn("--expand needs --repo and --base", stderr)

    def test_config_file_sets_mode(self):
        config_path = Path(self._tmp.name) / "difflens.toml"
        config_path.write_text('[viewer]\ndisplay_mode = "unified"\n', encoding="utf-8")
        code, stdout, _ = run_cli([str(self.diff_path), "--json", "--config", str(config_path)])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(stdout)["displayMode"], "unified")

    def test_rich_output_renders(self):
        code, stdout, _ = run_cli([str(self.diff_path), "--search", "line22"])
        self.assertEqual(code, 0)
        self.assertIn("Diff Summary", stdout)
        self.assertIn("src/app.py", stdout)
        self.assertIn("line22", stdout)

    def test_repo_expand_reads_git(self):
        with mock.patch.object(viewer_cli, "read_git_diff", return_value=APP_DIFF), mock.patch.object(
            viewer_cli, "resolve_merge_base", return_value="merge-base-sha"
        ), mock.patch("difflens.expansion.read_git_file", return_value=OLD_TEXT) as reader:
            code, stdout, _ = run_cli(
                ["--repo", "/repo", "--base", "main", "--head", "feature", "--expand", "--json", "--file", "src/"]
            )
        self.assertEqual(code, 0)
        payload = json.loads(stdout)
        self.assertEqual(payload["source"], "git main...feature")
        rows = payload["files"][0]["rows"]
        self.assertEqual(rows[0]["hunkDirection"], "up")
        self.assertEqual(rows[0]["lineNumberLeft"], 10)
        self.assertGreater(len(rows), 11)
        refs = {call.args[1] for call in reader.call_args_list}
        self.assertEqual(refs, {"merge-base-sha", "feature"})

    def test_repo_requires_base(self):
        code, _, stderr = run_cli(["--repo", "/repo"])
        self.assertEqual(code, 1)
        self.assertIn("--repo needs --base", stderr)


class TestViewerApp(unittest.TestCase):
    def test_parse_args_defaults(self):
        args = viewer_app.parse_app_args(["change.diff"])
        self.assertEqual(args.path, "change.diff")
        self.assertFalse(args.once)

    def test_run_once_success(self):
        with tempfile.TemporaryDirectory() as tmp:
            diff_path = Path(tmp) / "change.diff"
            diff_path.write_text(APP_DIFF, encoding="utf-8")
            with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
                code = viewer_app.run_app([str(diff_path), "--once"])
        self.assertEqual(code, 0)

    def test_run_with_empty_diff_returns_2(self):
        with tempfile.TemporaryDirectory() as tmp:
            diff_path = Path(tmp) / "empty.diff"
            diff_path.write_text("", encoding="utf-8")
            with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
                code = viewer_app.run_app([str(diff_path), "--once"])
        self.assertEqual(code, 2)

    def test_run_with_missing_file_returns_error(self):
        with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
            code = viewer_app.run_app(["not-found.diff", "--once"])
        self.assertEqual(code, 1)


class TestScriptWrappers(unittest.TestCase):
    def test_wrappers_delegate_argument_parsing(self):
        self.assertTrue(view_diff.parse_args(["x.diff", "--json"]).as_json)
        self.assertTrue(view_diff_app.parse_args(["x.diff", "--once"]).once)

    def test_app_wrapper_runs_once(self):
        with tempfile.TemporaryDirectory() as tmp:
            diff_path = Path(tmp) / "change.diff"
            diff_path.write_text(APP_DIFF, encoding="utf-8")
            with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
                code = view_diff_app.run([str(diff_path), "--once"])
        self.assertEqual(code, 0)


if __name__ == "__main__":
    unittest.main()
