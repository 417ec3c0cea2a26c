"""`gh pr list` wrapper with a short-lived per-worktree cache."""

from __future__ import annotations

import json
import logging
import subprocess
import threading
import time
from dataclasses import dataclass

from devdeploy.constants import PR_CACHE_TTL_S
from devdeploy.project.models import PRInfo

logger = logging.getLogger(__name__)

PR_JSON_FIELDS = "number,title,state,headRefName,mergedAt"


class GitHubError(Exception):
    """`gh` failed or returned unparseable output."""


def merge_prs(first: list[PRInfo], second: list[PRInfo]) -> list[PRInfo]:
    """Concatenate two PR lists, dropping duplicates by number (first wins)."""
    seen: set[int] = set()
    merged: list[PRInfo] = []
    for pr in [*first, *second]:
        if pr.number in seen:
            continue
        seen.add(pr.number)
        merged.append(pr)
    return merged


@dataclass
class _CacheEntry:
    prs: list[PRInfo]
    stored_at: float


class PRSource:
    """Lists PRs authored by the current user or awaiting the review team.

    Results are cached per (worktree, state, limit) for `ttl_s` seconds.
    Safe to call from worker threads.
    """

    def __init__(self, review_team: str = "", ttl_s: float = PR_CACHE_TTL_S) -> None:
        self.review_team = review_team
        self.ttl_s = ttl_s
        self._cache: dict[str, _CacheEntry] = {}
        self._lock = threading.RLock()

    # --- gh invocations ---

    def _run_gh(self, worktree_path: str, *args: str) -> str:
        try:
            result = subprocess.run(
                ["gh", *args],
                cwd=worktree_path,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise GitHubError((e.stderr or "").strip() or str(e)) from e
        except (FileNotFoundError, NotADirectoryError) as e:
            raise GitHubError(str(e)) from e
        return result.stdout

    def list_prs(self, worktree_path: str, state: str, limit: int, *extra: str) -> list[PRInfo]:
        args = ["pr", "list", "--json", PR_JSON_FIELDS]
        if state and state != "open":
            args += ["--state", state]
        if limit > 0:
            args += ["--limit", str(limit)]
        args += list(extra)
        out = self._run_gh(worktree_path, *args)
        try:
            raw = json.loads(out or "[]")
        except json.JSONDecodeError as e:
            raise GitHubError(f"invalid gh output: {e}") from e
        try:
            return [PRInfo.from_json(item) for item in raw]
        except (ValueError, TypeError, AttributeError) as e:
            raise GitHubError(f"invalid PR data: {e}") from e

    def repo_owner(self, worktree_path: str) -> str:
        """Return the GitHub owner login of the repo, or "" when unknown."""
        try:
            return self._run_gh(worktree_path, "repo", "view", "--json", "owner", "-q", ".owner.login").strip()
        except GitHubError:
            return ""

    def list_filtered(self, worktree_path: str, state: str, limit: int) -> list[PRInfo]:
        """Return my PRs plus PRs requesting review from the team, deduplicated."""
        key = f"{worktree_path}:{state}:{limit}"
        cached = self._get_cached(key)
        if cached is not None:
            return cached

        mine: list[PRInfo] = []
        mine_err: GitHubError | None = None
        try:
            mine = self.list_prs(worktree_path, state, limit, "--author", "@me")
        except GitHubError as e:
            mine_err = e

        team: list[PRInfo] = []
        team_ok = False
        owner = self.repo_owner(worktree_path) if self.review_team else ""
        if owner:
            search = f"team-review-requested:{owner}/{self.review_team}"
            try:
                team = self.list_prs(worktree_path, state, limit, "--search", search)
                team_ok = True
            except GitHubError as e:
                logger.debug("Team PR query failed in %s: %s", worktree_path, e)

        if mine_err is not None and not team_ok:
            raise mine_err

        result = merge_prs(mine, team)
        self._set_cached(key, result)
        return result

    # --- cache ---

    def _get_cached(self, key: str) -> list[PRInfo] | None:
        with self._lock:
            entry = self._cache.get(key)
        if entry is None or time.monotonic() - entry.stored_at > self.ttl_s:
            return None
        return list(entry.prs)

    def _set_cached(self, key: str, prs: list[PRInfo]) -> None:
        with self._lock:
            self._cache[key] = _CacheEntry(prs=list(prs), stored_at=time.monotonic())

    def clear(self, path_prefix: str = "") -> None:
        """Drop cached entries (all, or those whose worktree starts with `path_prefix`)."""
        with self._lock:
            if not path_prefix:
                self._cache.clear()
                return
            for key in [k for k in self._cache if k.startswith(path_prefix)]:
                del self._cache[key]
