"""Project CRUD and git worktree management.

A project is a directory under the projects base dir holding one git
worktree per repo (branch `devdeploy/<project>-<xyz>`) plus on-demand PR
worktrees named `<repo>-pr-<number>`. Source repos live in the workspace
dir. All methods block on subprocesses and are meant to run off the UI
loop.
"""

from __future__ import annotations

import logging
import random
import re
import shutil
import string
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from pathlib import Path

from devdeploy import constants
from devdeploy.config import DevdeployConfig
from devdeploy.project.git import (
    GitError,
    find_worktree_for_branch,
    git_succeeds,
    hooks_disabled,
    resolve_default_branch,
    run_git,
)
from devdeploy.project.github import GitHubError, PRSource
from devdeploy.project.models import PRInfo, ProjectInfo, ProjectOverview, RepoPRs, Resource
from devdeploy.project.rules import inject_worktree_rules

logger = logging.getLogger(__name__)

PR_WORKTREE_PATTERN = re.compile(r"^.+-pr-\d+$")
OPEN_PRS_LIMIT = 30  # gh pr list default
_BRANCH_SUFFIX_CHARS = string.ascii_lowercase + string.digits


class ProjectError(Exception):
    """A project operation failed (message is user-presentable)."""


def normalize_project_name(name: str) -> str:
    return name.replace(" ", "-").lower()


def pr_worktree_name(repo_name: str, pr_number: int) -> str:
    return f"{repo_name}{constants.PR_WORKTREE_SEPARATOR}{pr_number}"


class ProjectManager:
    """Filesystem, git and GitHub operations for devdeploy projects."""

    def __init__(
        self,
        projects_base: str | Path,
        workspace: str | Path,
        pr_source: PRSource | None = None,
        *,
        merged_prs_limit: int = 5,
        merged_pr_max_age: timedelta = timedelta(hours=20),
    ) -> None:
        self.projects_base = Path(projects_base).expanduser()
        self.workspace = Path(workspace).expanduser()
        self.pr_source = pr_source or PRSource()
        self.merged_prs_limit = merged_prs_limit
        self.merged_pr_max_age = merged_pr_max_age

    @classmethod
    def from_config(cls, cfg: DevdeployConfig) -> "ProjectManager":
        return cls(
            cfg.projects_path,
            cfg.workspace_path,
            PRSource(review_team=cfg.review_team, ttl_s=cfg.pr_cache_ttl_s),
            merged_prs_limit=cfg.merged_prs_limit,
            merged_pr_max_age=timedelta(hours=cfg.merged_pr_max_age_h),
        )

    # --- paths ---

    def project_dir(self, name: str) -> Path:
        return self.projects_base / normalize_project_name(name)

    def pr_worktree_path(self, project_name: str, repo_name: str, pr_number: int) -> Path:
        return self.project_dir(project_name) / pr_worktree_name(repo_name, pr_number)

    # --- listing (filesystem only) ---

    def list_projects(self) -> list[ProjectInfo]:
        """Return projects on disk, sorted by name. Missing base dir means none."""
        if not self.projects_base.is_dir():
            return []
        projects: list[ProjectInfo] = []
        for entry in sorted(self.projects_base.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            projects.append(
                ProjectInfo(name=entry.name, repo_count=len(self.list_project_repos(entry.name)), dir=str(entry))
            )
        return projects

    def list_workspace_repos(self) -> list[str]:
        """Return names of git repos directly under the workspace dir."""
        if not self.workspace.is_dir():
            return []
        return sorted(entry.name for entry in self.workspace.iterdir() if (entry / ".git").is_dir())

    def list_project_repos(self, project_name: str) -> list[str]:
        """Return repo worktree dir names of a project (PR worktrees excluded)."""
        project_dir = self.project_dir(project_name)
        if not project_dir.is_dir():
            return []
        repos: list[str] = []
        for entry in sorted(project_dir.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            if PR_WORKTREE_PATTERN.match(entry.name):
                continue
            if (entry / ".git").exists():
                repos.append(entry.name)
        return repos

    def list_project_repos_only(self, project_name: str) -> list[Resource]:
        """Repo resources from a filesystem scan; no network calls."""
        project_dir = self.project_dir(project_name)
        return [Resource.repo(name, str(project_dir / name)) for name in self.list_project_repos(project_name)]

    # --- project CRUD ---

    def create_project(self, name: str) -> Path:
        if not name.strip():
            raise ProjectError("Project name is empty")
        project_dir = self.project_dir(name)
        try:
            project_dir.mkdir(parents=True, exist_ok=True)
            config_path = project_dir / constants.PROJECT_CONFIG_FILE
            if not config_path.exists():
                config_path.write_text(constants.PROJECT_CONFIG_HEADER, encoding="utf-8")
        except OSError as e:
            raise ProjectError(str(e)) from e
        logger.info("Created project %s at %s", name, project_dir)
        return project_dir

    def delete_project(self, name: str) -> None:
        """Remove every repo worktree (so source repos forget them), then the project dir."""
        project_dir = self.project_dir(name)
        for repo_name in self.list_project_repos(name):
            try:
                self.remove_repo(name, repo_name)
            except ProjectError as e:
                raise ProjectError(f"remove worktree {repo_name}: {e}") from e
        try:
            shutil.rmtree(project_dir, ignore_errors=False)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise ProjectError(str(e)) from e
        logger.info("Deleted project %s", name)

    # --- repo worktrees ---

    def add_repo(self, project_name: str, repo_name: str) -> Path:
        """Create a worktree of a workspace repo on a fresh devdeploy branch.

        The source repo's HEAD is never touched; repo hooks are disabled for
        the add and merge steps.
        """
        src_repo = self.workspace / repo_name
        dst_path = self.project_dir(project_name) / repo_name
        if not src_repo.is_dir():
            raise ProjectError(f"source repo {src_repo} not found")
        suffix = "".join(random.choice(_BRANCH_SUFFIX_CHARS) for _ in range(3))
        branch = f"{constants.BRANCH_PREFIX}{normalize_project_name(project_name)}-{suffix}"

        try:
            run_git("-C", str(src_repo), "fetch", "origin")
        except GitError as e:
            logger.debug("fetch origin failed in %s: %s", src_repo, e)

        try:
            main_ref = resolve_default_branch(src_repo)
            with hooks_disabled() as no_hooks:
                if not git_succeeds("-C", str(src_repo), "rev-parse", "--verify", branch):
                    run_git("-C", str(src_repo), *no_hooks, "worktree", "add", "-b", branch, str(dst_path), main_ref)
                else:
                    run_git("-C", str(src_repo), *no_hooks, "worktree", "add", str(dst_path), branch)
                    run_git("-C", str(dst_path), *no_hooks, "merge", main_ref, "--no-edit")
            inject_worktree_rules(dst_path)
        except (GitError, OSError) as e:
            raise ProjectError(f"add {repo_name}: {e}") from e

        self.clear_pr_cache_for_project(project_name)
        logger.info("Added %s to %s on %s", repo_name, project_name, branch)
        return dst_path

    def remove_repo(self, project_name: str, repo_name: str) -> None:
        worktree_path = self.project_dir(project_name) / repo_name
        self._remove_worktree(repo_name, worktree_path)
        self.clear_pr_cache_for_project(project_name)

    def remove_pr_worktree(self, project_name: str, repo_name: str, pr_number: int) -> None:
        """Remove `<repo>-pr-<n>`; a missing directory is a no-op."""
        worktree_path = self.pr_worktree_path(project_name, repo_name, pr_number)
        if not worktree_path.exists():
            return
        self._remove_worktree(repo_name, worktree_path)
        self.clear_pr_cache_for_project(project_name)

    def _remove_worktree(self, repo_name: str, worktree_path: Path) -> None:
        src_repo = self.workspace / repo_name
        try:
            run_git("-C", str(src_repo), "worktree", "remove", str(worktree_path), "--force")
        except GitError as e:
            raise ProjectError(f"git worktree remove: {e}") from e

    def ensure_pr_worktree(self, project_name: str, repo_name: str, pr_number: int, branch: str) -> Path:
        """Create or reuse the worktree for a PR branch and return its path.

        Reuses `<repo>-pr-<n>` if it is already a checkout, or any worktree
        of the source repo already on `branch`. Otherwise fetches the branch
        and adds a worktree from the local branch or `origin/<branch>`.
        """
        src_repo = self.workspace / repo_name
        if not src_repo.is_dir():
            raise ProjectError(f"source repo {src_repo} not found")
        dst_path = self.pr_worktree_path(project_name, repo_name, pr_number)

        if (dst_path / ".git").exists():
            self._inject_best_effort(dst_path)
            return dst_path

        existing = find_worktree_for_branch(src_repo, branch)
        if existing:
            self._inject_best_effort(Path(existing))
            return Path(existing)

        try:
            run_git("-C", str(src_repo), "fetch", "origin", branch)
        except GitError as e:
            logger.debug("fetch %s failed in %s: %s", branch, src_repo, e)

        ref = branch
        if not git_succeeds("-C", str(src_repo), "rev-parse", "--verify", ref):
            ref = f"origin/{branch}"
            if not git_succeeds("-C", str(src_repo), "rev-parse", "--verify", ref):
                raise ProjectError(f"branch {branch} not found locally or on origin")

        try:
            with hooks_disabled() as no_hooks:
                if ref == branch:
                    run_git("-C", str(src_repo), *no_hooks, "worktree", "add", str(dst_path), branch)
                else:
                    run_git("-C", str(src_repo), *no_hooks, "worktree", "add", "-b", branch, str(dst_path), ref)
        except GitError as e:
            raise ProjectError(f"git worktree add: {e}") from e
        try:
            inject_worktree_rules(dst_path)
        except (GitError, OSError) as e:
            raise ProjectError(f"inject rules: {e}") from e

        self.clear_pr_cache_for_project(project_name)
        return dst_path

    def inject_rules(self, worktree_path: str | Path) -> None:
        try:
            inject_worktree_rules(worktree_path)
        except (GitError, OSError) as e:
            raise ProjectError(f"inject rules: {e}") from e

    def _inject_best_effort(self, worktree_path: Path) -> None:
        try:
            inject_worktree_rules(worktree_path)
        except (GitError, OSError) as e:
            logger.debug("Rule injection skipped for %s: %s", worktree_path, e)

    # --- PRs ---

    def clear_pr_cache(self) -> None:
        self.pr_source.clear()

    def clear_pr_cache_for_project(self, project_name: str) -> None:
        self.pr_source.clear(str(self.project_dir(project_name)))

    def _open_prs(self, worktree_path: Path) -> list[PRInfo]:
        return self.pr_source.list_filtered(str(worktree_path), "open", OPEN_PRS_LIMIT)

    def _recent_merged_prs(self, worktree_path: Path) -> list[PRInfo]:
        merged = self.pr_source.list_filtered(str(worktree_path), "merged", self.merged_prs_limit)
        cutoff = datetime.now(timezone.utc) - self.merged_pr_max_age
        return [pr for pr in merged if pr.merged_at is not None and pr.merged_at > cutoff]

    def _repo_prs(self, worktree_path: Path, include_merged: bool) -> list[PRInfo]:
        """Open (then recently merged) PRs of one repo; a failing half yields nothing."""
        prs: list[PRInfo] = []
        try:
            prs.extend(self._open_prs(worktree_path))
        except GitHubError as e:
            logger.debug("Open PRs unavailable for %s: %s", worktree_path, e)
        if include_merged:
            try:
                prs.extend(self._recent_merged_prs(worktree_path))
            except GitHubError as e:
                logger.debug("Merged PRs unavailable for %s: %s", worktree_path, e)
        return prs

    def _prs_by_repo(self, project_name: str, include_merged: bool) -> list[RepoPRs]:
        repos = self.list_project_repos(project_name)
        if not repos:
            return []
        project_dir = self.project_dir(project_name)
        with ThreadPoolExecutor(max_workers=len(repos)) as executor:
            results = list(executor.map(lambda name: self._repo_prs(project_dir / name, include_merged), repos))
        return [RepoPRs(repo=name, prs=prs) for name, prs in zip(repos, results)]

    def list_project_prs(self, project_name: str) -> list[RepoPRs]:
        """Open plus recently merged PRs, grouped in repo order (fetched in parallel)."""
        return self._prs_by_repo(project_name, include_merged=True)

    def load_project_summary(self, project_name: str) -> ProjectOverview:
        """Open PR count and the repo + open-PR resources of a project."""
        grouped = self._prs_by_repo(project_name, include_merged=False)
        project_dir = self.project_dir(project_name)
        resources = self.build_resources(project_dir, grouped)
        return ProjectOverview(pr_count=sum(len(group.prs) for group in grouped), resources=resources)

    def list_project_resources(self, project_name: str) -> list[Resource]:
        """All resources of a project (repos, open and recently merged PRs)."""
        return self.build_resources(self.project_dir(project_name), self.list_project_prs(project_name))

    @staticmethod
    def build_resources(project_dir: Path, grouped: list[RepoPRs]) -> list[Resource]:
        """Each repo resource followed by its PR resources in source order."""
        resources: list[Resource] = []
        for group in grouped:
            resources.append(Resource.repo(group.repo, str(project_dir / group.repo)))
            for pr in group.prs:
                pr_dir = project_dir / pr_worktree_name(group.repo, pr.number)
                resources.append(Resource.pull_request(group.repo, pr, str(pr_dir) if pr_dir.is_dir() else ""))
        return resources
