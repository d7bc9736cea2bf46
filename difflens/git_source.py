from __future__ import annotations

import subprocess
from pathlib import Path


def run_git(repo: Path, args: list[str]) -> str:
    process = subprocess.run(
        ["git", "-C", str(repo), *args],
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=False,
    )
    if process.returncode != 0:
        message = process.stderr.strip() or process.stdout.strip()
        raise RuntimeError(f"git {' '.join(args)} failed: {message}")
    return process.stdout


def resolve_merge_base(repo: Path, base_ref: str, head_ref: str) -> str:
    return run_git(repo, ["merge-base", base_ref, head_ref]).strip()


def read_git_diff(repo: Path, base_ref: str, head_ref: str) -> str:
    run_git(repo, ["rev-parse", "--verify", base_ref])
    run_git(repo, ["rev-parse", "--verify", head_ref])
    return run_git(
        repo,
        ["diff", "--no-color", "--find-renames=50%", f"{base_ref}...{head_ref}"],
    )


def read_git_file(repo: Path, ref: str, path: str) -> str:
    return run_git(repo, ["show", f"{ref}:{path}"])
