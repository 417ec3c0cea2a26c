"""Asynchronous commands returned by the dispatcher.

A command is a blocking callable the front end runs on a worker thread;
whatever message it returns is fed back into the dispatcher on the UI
loop. Commands never touch AppState. Fan-out inside a command uses a
thread pool with index-addressed results.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

from devdeploy.beads import BeadsError, BeadSource
from devdeploy.project.manager import ProjectManager
from devdeploy.project.models import BeadInfo, ProjectInfo, ProjectSummary, Resource
from devdeploy.session.tracker import ResourceKey
from devdeploy.tui.messages import (
    BeadsLoaded,
    DetailPRsLoaded,
    DetailReposLoaded,
    Message,
    ProjectsEnriched,
    ProjectsLoaded,
    Tick,
)

logger = logging.getLogger(__name__)

Post = Callable[[Message], None]


@dataclass(frozen=True)
class Command:
    """Run `run` off the UI loop after `delay` seconds; dispatch its result."""

    run: Callable[[], Optional[Message]]
    name: str = "command"
    delay: float = 0.0


@dataclass(frozen=True)
class StreamCommand:
    """Long-running command that posts any number of messages while it runs."""

    run: Callable[[Post], None]
    name: str = "stream"


AnyCommand = Command | StreamCommand


def emit(msg: Message) -> Command:
    """Command that simply delivers `msg` on a later loop iteration."""
    return Command(run=lambda: msg, name=type(msg).__name__)


def tick(interval_s: float) -> Command:
    return Command(run=Tick, name="tick", delay=interval_s)


# --- Dashboard pipeline ---


def load_projects(manager: ProjectManager, generation: int) -> Command:
    """Phase 1: project names and repo counts from disk; PR/bead counts LOADING."""

    def run() -> Message:
        try:
            infos = manager.list_projects()
        except OSError as e:
            logger.debug("list_projects failed: %s", e)
            infos = []
        return ProjectsLoaded(
            generation=generation,
            projects=[ProjectSummary(name=info.name, repo_count=info.repo_count) for info in infos],
        )

    return Command(run=run, name="load_projects")


def count_beads(source: BeadSource, resources: list[Resource]) -> int:
    """Open beads across resources with worktrees; failing resources count as zero."""
    counts: dict[int, int] = {}
    lock = threading.Lock()

    def count_one(index: int, resource: Resource) -> None:
        try:
            n = len(source.beads_for(resource.worktree_path, resource.pr.number if resource.pr else None))
        except BeadsError as e:
            logger.debug("Bead count failed for %s: %s", resource.worktree_path, e)
            n = 0
        with lock:
            counts[index] = n

    targets = [(i, r) for i, r in enumerate(resources) if r.worktree_path]
    if not targets:
        return 0
    with ThreadPoolExecutor(max_workers=len(targets)) as executor:
        for future in [executor.submit(count_one, i, r) for i, r in targets]:
            future.result()
    return sum(counts.values())


def enrich_projects(
    manager: ProjectManager, source: BeadSource, projects: list[ProjectInfo], generation: int
) -> Command:
    """Phase 2: PR and bead counts per project, computed concurrently.

    The message carries the complete list so the dashboard swaps it in at
    once.
    """

    def summarize(info: ProjectInfo) -> ProjectSummary:
        overview = manager.load_project_summary(info.name)
        return ProjectSummary(
            name=info.name,
            repo_count=info.repo_count,
            pr_count=overview.pr_count,
            bead_count=count_beads(source, overview.resources),
        )

    def run() -> Message:
        enriched: list[ProjectSummary | None] = [None] * len(projects)
        if projects:
            with ThreadPoolExecutor(max_workers=len(projects)) as executor:
                futures = [executor.submit(summarize, info) for info in projects]
                for i, future in enumerate(futures):
                    try:
                        enriched[i] = future.result()
                    except Exception as e:  # isolate one project's failure
                        logger.debug("Enrichment failed for %s: %s", projects[i].name, e)
                        enriched[i] = ProjectSummary(projects[i].name, projects[i].repo_count, 0, 0)
        return ProjectsEnriched(generation=generation, projects=[p for p in enriched if p is not None])

    return Command(run=run, name="enrich_projects")


# --- Detail pipeline ---


def load_detail_repos(manager: ProjectManager, project_name: str, generation: int) -> Command:
    """Phase 1: repo resources from a filesystem scan."""

    def run() -> Message:
        try:
            resources = manager.list_project_repos_only(project_name)
        except OSError as e:
            logger.debug("Repo scan failed for %s: %s", project_name, e)
            resources = []
        return DetailReposLoaded(project_name=project_name, generation=generation, resources=resources)

    return Command(run=run, name="load_detail_repos")


def load_detail_prs(manager: ProjectManager, project_name: str, generation: int) -> Command:
    """Phase 2: PRs grouped by repo."""

    def run() -> Message:
        try:
            grouped = manager.list_project_prs(project_name)
        except Exception as e:  # loading_prs must always clear
            logger.debug("PR load failed for %s: %s", project_name, e)
            grouped = []
        return DetailPRsLoaded(project_name=project_name, generation=generation, prs_by_repo=grouped)

    return Command(run=run, name="load_detail_prs")


def load_resource_beads(
    source: BeadSource, project_name: str, generation: int, resources: list[Resource]
) -> Command:
    """Phase 3: beads for every resource with a worktree, one worker each.

    Failed resources are left out of the result map.
    """
    snapshot = [(r.worktree_path, r.pr.number if r.pr else None) for r in resources]
    keys = tuple(ResourceKey.from_resource(r) for r in resources)

    def run() -> Message:
        beads_by_index: dict[int, list[BeadInfo]] = {}
        lock = threading.Lock()

        def fetch(index: int, worktree_path: str, pr_number: int | None) -> None:
            try:
                found = source.beads_for(worktree_path, pr_number)
            except BeadsError as e:
                logger.debug("Beads unavailable for %s: %s", worktree_path, e)
                return
            with lock:
                beads_by_index[index] = found

        targets = [(i, path, pr) for i, (path, pr) in enumerate(snapshot) if path]
        if targets:
            with ThreadPoolExecutor(max_workers=len(targets)) as executor:
                for future in [executor.submit(fetch, *target) for target in targets]:
                    future.result()
        return BeadsLoaded(project_name=project_name, generation=generation, keys=keys, beads_by_index=beads_by_index)

    return Command(run=run, name="load_resource_beads")
