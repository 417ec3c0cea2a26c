"""Project and repo management handlers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from devdeploy.project.manager import ProjectError
from devdeploy.project.models import ResourceKind
from devdeploy.session.tracker import ResourceKey
from devdeploy.tui import commands
from devdeploy.tui.commands import AnyCommand, Command
from devdeploy.tui.messages import (
    AddRepo,
    CreateProject,
    DeleteProject,
    Message,
    ProjectCreated,
    ProjectDeleted,
    ProjectTeardownReady,
    RemoveRepo,
    RepoAdded,
    RepoRemoved,
    SelectProject,
)
from devdeploy.tui.overlay import ConfirmOverlay, PickerOverlay, TextInputOverlay
from devdeploy.tui.panes import kill_panes
from devdeploy.tui.state import AppMode, AppState, DetailState
from devdeploy.tui.views import DetailView

if TYPE_CHECKING:
    from devdeploy.tui.dispatcher import Services

logger = logging.getLogger(__name__)


class ProjectHandlersMixin:
    services: "Services"

    # --- navigation ---

    def select_project(self, state: AppState, msg: SelectProject) -> list[AnyCommand]:
        """Enter project detail (from the dashboard or the switcher) and start phase 1."""
        state.overlays.pop_resolved()
        width, height = state.terminal_size
        state.mode = AppMode.PROJECT_DETAIL
        state.detail = DetailState(project_name=msg.name, view=DetailView(width=width, height=height))
        cmds = self.start_detail_load(state)
        if not state.tick_active:
            state.tick_active = True
            cmds.append(commands.tick(self.services.config.tick_interval_s))
        return cmds

    def back_to_dashboard(self, state: AppState) -> list[AnyCommand]:
        state.mode = AppMode.DASHBOARD
        state.detail = None
        return []

    def show_project_switcher(self, state: AppState) -> list[AnyCommand]:
        try:
            infos = self.services.manager.list_projects()
        except OSError as e:
            state.status.set(f"List projects: {e}", is_error=True)
            return []
        if not infos:
            state.status.set("No projects found", is_error=True)
            return []
        state.overlays.push(PickerOverlay("Switch project", [info.name for info in infos], SelectProject))
        return []

    # --- create / delete ---

    def show_create_project(self, state: AppState) -> list[AnyCommand]:
        state.overlays.push(TextInputOverlay("New project name", CreateProject))
        return []

    def create_project(self, state: AppState, msg: CreateProject) -> list[AnyCommand]:
        state.overlays.pop_resolved()
        manager = self.services.manager

        def run() -> Message:
            try:
                manager.create_project(msg.name)
            except ProjectError as e:
                return ProjectCreated(msg.name, error=str(e))
            return ProjectCreated(msg.name)

        return [Command(run=run, name="create_project")]

    def handle_project_created(self, state: AppState, msg: ProjectCreated) -> list[AnyCommand]:
        if msg.error:
            state.status.set(f"Create project: {msg.error}", is_error=True)
        else:
            state.status.set("Project created")
        return self.start_dashboard_load(state)

    def show_delete_project(self, state: AppState) -> list[AnyCommand]:
        if state.mode is not AppMode.DASHBOARD:
            return []
        project = state.dashboard.view.selected_project()
        if project is None:
            return []
        state.overlays.push(
            ConfirmOverlay(
                title="Delete project",
                prompt=f"Delete project {project.name} and all its worktrees? (y/n)",
                on_confirm=DeleteProject(project.name),
            )
        )
        return []

    def delete_project(self, state: AppState, msg: DeleteProject) -> list[AnyCommand]:
        """Step one: enumerate the project's resources so their panes can be torn down."""
        state.overlays.pop_resolved()
        manager = self.services.manager

        def run() -> Message:
            try:
                resources = manager.list_project_resources(msg.name)
            except (ProjectError, OSError) as e:
                return ProjectDeleted(msg.name, error=str(e))
            return ProjectTeardownReady(msg.name, resources)

        return [Command(run=run, name="collect_project_resources")]

    def handle_teardown_ready(self, state: AppState, msg: ProjectTeardownReady) -> list[AnyCommand]:
        """Step two: forget and kill the panes, then delete the project."""
        pane_ids: list[str] = []
        for resource in msg.resources:
            removed = self.services.tracker.unregister_all(ResourceKey.from_resource(resource))
            pane_ids.extend(pane.pane_id for pane in removed)
        manager = self.services.manager
        tmux = self.services.tmux

        def run() -> Message:
            kill_panes(tmux, pane_ids)
            try:
                manager.delete_project(msg.name)
            except ProjectError as e:
                return ProjectDeleted(msg.name, error=str(e))
            return ProjectDeleted(msg.name)

        return [Command(run=run, name="delete_project")]

    def handle_project_deleted(self, state: AppState, msg: ProjectDeleted) -> list[AnyCommand]:
        if msg.error:
            state.status.set(f"Delete project: {msg.error}", is_error=True)
        else:
            state.status.set("Project deleted")
        return self.start_dashboard_load(state)

    # --- repos ---

    def show_add_repo(self, state: AppState) -> list[AnyCommand]:
        detail = state.detail
        if state.mode is not AppMode.PROJECT_DETAIL or detail is None:
            return []
        present = {r.repo_name for r in detail.resources if r.kind is ResourceKind.REPO}
        try:
            available = [name for name in self.services.manager.list_workspace_repos() if name not in present]
        except OSError as e:
            state.status.set(f"List workspace repos: {e}", is_error=True)
            return []
        if not available:
            state.status.set("No repos available in workspace", is_error=True)
            return []
        project_name = detail.project_name
        state.overlays.push(PickerOverlay("Add repo", available, lambda repo: AddRepo(project_name, repo)))
        return []

    def add_repo(self, state: AppState, msg: AddRepo) -> list[AnyCommand]:
        state.overlays.pop_resolved()
        manager = self.services.manager

        def run() -> Message:
            try:
                manager.add_repo(msg.project_name, msg.repo_name)
            except ProjectError as e:
                return RepoAdded(msg.project_name, msg.repo_name, error=str(e))
            return RepoAdded(msg.project_name, msg.repo_name)

        return [Command(run=run, name="add_repo")]

    def handle_repo_added(self, state: AppState, msg: RepoAdded) -> list[AnyCommand]:
        if msg.error:
            state.status.set(f"Add repo: {msg.error}", is_error=True)
        else:
            state.status.set(f"Added {msg.repo_name} to {msg.project_name}")
        return self._reload_if_current(state, msg.project_name)

    def show_remove_repo(self, state: AppState) -> list[AnyCommand]:
        detail = state.detail
        if state.mode is not AppMode.PROJECT_DETAIL or detail is None:
            return []
        repos = [r.repo_name for r in detail.resources if r.kind is ResourceKind.REPO]
        if not repos:
            state.status.set("No repos in project", is_error=True)
            return []
        project_name = detail.project_name
        state.overlays.push(PickerOverlay("Remove repo", repos, lambda repo: RemoveRepo(project_name, repo)))
        return []

    def remove_repo(self, state: AppState, msg: RemoveRepo) -> list[AnyCommand]:
        state.overlays.pop_resolved()
        removed = self.services.tracker.unregister_all(ResourceKey.for_repo(msg.repo_name))
        pane_ids = [pane.pane_id for pane in removed]
        manager = self.services.manager
        tmux = self.services.tmux

        def run() -> Message:
            kill_panes(tmux, pane_ids)
            try:
                manager.remove_repo(msg.project_name, msg.repo_name)
            except ProjectError as e:
                return RepoRemoved(msg.project_name, msg.repo_name, error=str(e))
            return RepoRemoved(msg.project_name, msg.repo_name)

        return [Command(run=run, name="remove_repo")]

    def handle_repo_removed(self, state: AppState, msg: RepoRemoved) -> list[AnyCommand]:
        if msg.error:
            state.status.set(f"Remove repo: {msg.error}", is_error=True)
        else:
            state.status.set(f"Removed {msg.repo_name} from {msg.project_name}")
        return self._reload_if_current(state, msg.project_name)

    def _reload_if_current(self, state: AppState, project_name: str) -> list[AnyCommand]:
        if state.mode is AppMode.PROJECT_DETAIL and state.detail and state.detail.project_name == project_name:
            return self.start_detail_load(state)
        return []
