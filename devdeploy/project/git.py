"""Thin git subprocess helpers used by the project manager."""

from __future__ import annotations

import logging
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

DEFAULT_BRANCH_CANDIDATES = ("origin/main", "main", "origin/master", "master")


class GitError(Exception):
    """A git command failed; the message carries git's stderr."""


def run_git(*args: str, cwd: str | Path | None = None) -> str:
    """Run git and return stripped stdout, raising GitError on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        msg = (e.stderr or "").strip() or str(e)
        raise GitError(msg) from e
    except FileNotFoundError as e:
        raise GitError("git executable not found") from e
    return result.stdout.strip()


def git_succeeds(*args: str) -> bool:
    try:
        run_git(*args)
    except GitError:
        return False
    return True


@contextmanager
def hooks_disabled() -> Iterator[tuple[str, str]]:
    """Yield `-c core.hooksPath=<empty dir>` so repo hooks cannot block worktree ops."""
    with tempfile.TemporaryDirectory(prefix="devdeploy-nohooks") as empty:
        yield ("-c", f"core.hooksPath={empty}")


def resolve_default_branch(repo_path: str | Path) -> str:
    """Find the default branch ref of a repository.

    Prefers the remote HEAD (`origin/main` style), then falls back to the
    usual branch names.
    """
    try:
        ref = run_git("-C", str(repo_path), "symbolic-ref", "refs/remotes/origin/HEAD")
        if ref.startswith("refs/remotes/"):
            return ref.removeprefix("refs/remotes/")
    except GitError:
        pass

    for candidate in DEFAULT_BRANCH_CANDIDATES:
        if git_succeeds("-C", str(repo_path), "rev-parse", "--verify", candidate):
            return candidate
    raise GitError("cannot find default branch (tried origin/HEAD, main, master)")


def find_worktree_for_branch(repo_path: str | Path, branch: str) -> str:
    """Return the path of an existing worktree checked out on `branch`, or ""."""
    try:
        out = run_git("-C", str(repo_path), "worktree", "list", "--porcelain")
    except GitError:
        return ""
    current_path = ""
    for line in out.splitlines():
        if line.startswith("worktree "):
            current_path = line.removeprefix("worktree ")
        elif line == f"branch refs/heads/{branch}" and current_path:
            if Path(current_path).is_dir():
                return current_path
    return ""


def resolve_common_dir(worktree_path: str | Path) -> Path:
    """Return the git common dir (where `info/exclude` lives) for a checkout.

    A regular repo has a `.git` directory which is the common dir. A linked
    worktree has a `.git` file (`gitdir: <path>`) whose gitdir holds a
    `commondir` file pointing (usually relatively) at the main repo's `.git`.
    """
    git_path = Path(worktree_path) / ".git"
    if git_path.is_dir():
        return git_path
    if not git_path.is_file():
        raise GitError(f"{worktree_path} is not a git checkout")

    content = git_path.read_text(encoding="utf-8").strip()
    if not content.startswith("gitdir:"):
        raise GitError(f"unexpected .git file content in {worktree_path}")
    gitdir = Path(content.removeprefix("gitdir:").strip())
    if not gitdir.is_absolute():
        gitdir = (Path(worktree_path) / gitdir).resolve()

    commondir_file = gitdir / "commondir"
    if not commondir_file.is_file():
        return gitdir
    common = Path(commondir_file.read_text(encoding="utf-8").strip())
    if not common.is_absolute():
        common = (gitdir / common).resolve()
    return common
