"""Progressive load pipeline handlers (dashboard and project detail)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from devdeploy.project.manager import pr_worktree_name
from devdeploy.project.models import ProjectInfo, Resource, ResourceKind
from devdeploy.session.tracker import ResourceKey
from devdeploy.tui import commands
from devdeploy.tui.commands import AnyCommand
from devdeploy.tui.messages import BeadsLoaded, DetailPRsLoaded, DetailReposLoaded, ProjectsEnriched, ProjectsLoaded
from devdeploy.tui.state import AppMode, AppState, DetailState, LoadPhase

if TYPE_CHECKING:
    from devdeploy.tui.dispatcher import Services

logger = logging.getLogger(__name__)


class LoaderHandlersMixin:
    services: "Services"

    # --- dashboard ---

    def start_dashboard_load(self, state: AppState) -> list[AnyCommand]:
        dash = state.dashboard
        dash.generation += 1
        dash.phase = LoadPhase.PHASE1
        return [commands.load_projects(self.services.manager, dash.generation)]

    def handle_projects_loaded(self, state: AppState, msg: ProjectsLoaded) -> list[AnyCommand]:
        dash = state.dashboard
        if msg.generation != dash.generation:
            return []
        dash.view.set_projects(msg.projects)
        if not msg.projects:
            dash.phase = LoadPhase.IDLE
            return []
        dash.phase = LoadPhase.PHASE2
        infos = [ProjectInfo(name=p.name, repo_count=p.repo_count, dir="") for p in msg.projects]
        return [commands.enrich_projects(self.services.manager, self.services.beads, infos, dash.generation)]

    def handle_projects_enriched(self, state: AppState, msg: ProjectsEnriched) -> list[AnyCommand]:
        dash = state.dashboard
        if msg.generation != dash.generation:
            return []
        dash.view.set_projects(msg.projects, keep_selection=True)
        dash.phase = LoadPhase.IDLE
        return []

    # --- project detail ---

    def _current_detail(self, state: AppState, project_name: str, generation: int) -> DetailState | None:
        """The detail state a pipeline result belongs to, or None when stale."""
        detail = state.detail
        if state.mode is not AppMode.PROJECT_DETAIL or detail is None:
            return None
        if detail.project_name != project_name or detail.generation != generation:
            return None
        return detail

    def start_detail_load(self, state: AppState) -> list[AnyCommand]:
        detail = state.detail
        if detail is None:
            return []
        detail.generation += 1
        detail.phase = LoadPhase.PHASE1
        detail.loading_prs = True
        detail.loading_beads = False
        return [commands.load_detail_repos(self.services.manager, detail.project_name, detail.generation)]

    def handle_detail_repos_loaded(self, state: AppState, msg: DetailReposLoaded) -> list[AnyCommand]:
        detail = self._current_detail(state, msg.project_name, msg.generation)
        if detail is None:
            return []
        detail.view.set_resources(list(msg.resources))
        detail.loading_prs = True
        detail.loading_beads = False
        detail.phase = LoadPhase.PHASE2
        self.refresh_panes(state)
        return [commands.load_detail_prs(self.services.manager, detail.project_name, detail.generation)]

    def handle_detail_prs_loaded(self, state: AppState, msg: DetailPRsLoaded) -> list[AnyCommand]:
        detail = self._current_detail(state, msg.project_name, msg.generation)
        if detail is None:
            return []
        project_dir = self.services.manager.project_dir(detail.project_name)
        prs_by_repo = {group.repo: group.prs for group in msg.prs_by_repo}

        merged: list[Resource] = []
        for repo in detail.resources:
            if repo.kind is not ResourceKind.REPO:
                continue
            merged.append(repo)
            for pr in prs_by_repo.get(repo.repo_name, []):
                pr_dir = project_dir / pr_worktree_name(repo.repo_name, pr.number)
                merged.append(Resource.pull_request(repo.repo_name, pr, str(pr_dir) if pr_dir.is_dir() else ""))

        detail.view.set_resources(merged)
        detail.loading_prs = False
        detail.loading_beads = True
        detail.phase = LoadPhase.PHASE3
        self.refresh_panes(state)
        return [commands.load_resource_beads(self.services.beads, detail.project_name, detail.generation, merged)]

    def handle_beads_loaded(self, state: AppState, msg: BeadsLoaded) -> list[AnyCommand]:
        detail = self._current_detail(state, msg.project_name, msg.generation)
        if detail is None:
            return []
        for i, resource in enumerate(detail.resources):
            if i >= len(msg.keys) or ResourceKey.from_resource(resource) != msg.keys[i]:
                continue
            resource.beads = list(msg.beads_by_index.get(i, []))
        detail.loading_beads = False
        if detail.phase is LoadPhase.PHASE3:
            detail.phase = LoadPhase.IDLE
        detail.view.rebuild()
        return []

    def refresh_beads(self, state: AppState) -> list[AnyCommand]:
        detail = state.detail
        if state.mode is not AppMode.PROJECT_DETAIL or detail is None:
            return []
        detail.loading_beads = True
        return [
            commands.load_resource_beads(self.services.beads, detail.project_name, detail.generation, detail.resources)
        ]

    # --- periodic resync ---

    def handle_tick(self, state: AppState) -> list[AnyCommand]:
        next_tick = commands.tick(self.services.config.tick_interval_s)
        detail = state.detail
        if state.mode is not AppMode.PROJECT_DETAIL or detail is None:
            return [next_tick]
        self.refresh_panes(state)
        if not detail.has_worktrees():
            return [next_tick]
        return [
            commands.load_resource_beads(self.services.beads, detail.project_name, detail.generation, detail.resources),
            next_tick,
        ]

    def handle_refresh(self, state: AppState) -> list[AnyCommand]:
        self.services.manager.clear_pr_cache()
        if state.mode is AppMode.PROJECT_DETAIL and state.detail is not None:
            return self.start_detail_load(state)
        return self.start_dashboard_load(state)

    # --- panes ---

    def prune_panes(self) -> None:
        """Drop dead panes before reading tracker state; oracle failures are ignored."""
        try:
            self.services.tracker.prune()
        except Exception as e:
            logger.debug("Pane prune skipped: %s", e)

    def refresh_panes(self, state: AppState) -> None:
        """Copy tracker state onto the detail resources for display."""
        detail = state.detail
        if detail is None:
            return
        self.prune_panes()
        for resource in detail.resources:
            resource.panes = self.services.tracker.pane_infos(ResourceKey.from_resource(resource))
