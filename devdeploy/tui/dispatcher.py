"""Central dispatcher: one message in, state mutated, commands out.

`Dispatcher.update` is the only code that mutates `AppState`. It is pure
with respect to I/O: anything slow is returned as a command for the front
end to run off the UI loop.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from typing import Callable, Optional, assert_never

from devdeploy.agent import ProgressEvent, TmuxAgentRunner
from devdeploy.beads import BeadSource
from devdeploy.config.schema import DevdeployConfig
from devdeploy.project.manager import ProjectManager
from devdeploy.session.tracker import SessionTracker
from devdeploy.tmux import TmuxDriver
from devdeploy.tui.commands import AnyCommand
from devdeploy.tui.keybind import KeyHandler, default_registry
from devdeploy.tui.loader import LoaderHandlersMixin
from devdeploy.tui.messages import (
    AddRepo,
    BeadsLoaded,
    CreateProject,
    DeleteProject,
    DetailPRsLoaded,
    DetailReposLoaded,
    DismissOverlay,
    FocusPane,
    HidePane,
    Key,
    LaunchAgent,
    LaunchRalph,
    Message,
    OpenShell,
    PaneOpened,
    ProjectCreated,
    ProjectDeleted,
    ProjectsEnriched,
    ProjectsLoaded,
    ProjectTeardownReady,
    Quit,
    Refresh,
    RefreshBeads,
    RemoveRepo,
    RemoveResource,
    RepoAdded,
    RepoRemoved,
    Resize,
    ResourceRemoved,
    RunAgent,
    SelectProject,
    ShowAddRepo,
    ShowCreateProject,
    ShowDeleteProject,
    ShowPane,
    ShowProjectSwitcher,
    ShowRemoveRepo,
    ShowRemoveResource,
    StatusReport,
    Tick,
)
from devdeploy.tui.panes import PaneHandlersMixin
from devdeploy.tui.projects import ProjectHandlersMixin
from devdeploy.tui.state import AppMode, AppState

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Collaborators the dispatcher hands to commands."""

    manager: ProjectManager
    beads: BeadSource
    tmux: TmuxDriver
    tracker: SessionTracker
    runner: TmuxAgentRunner
    config: DevdeployConfig = field(default_factory=DevdeployConfig)
    which: Callable[[str], Optional[str]] = shutil.which


class Dispatcher(LoaderHandlersMixin, PaneHandlersMixin, ProjectHandlersMixin):
    def __init__(self, services: Services, keys: KeyHandler | None = None) -> None:
        self.services = services
        self.keys = keys or KeyHandler(default_registry())

    def init(self, state: AppState) -> list[AnyCommand]:
        """Commands to run at startup: the dashboard load."""
        return self.start_dashboard_load(state)

    def update(self, state: AppState, msg: Message) -> list[AnyCommand]:
        if isinstance(msg, Resize):
            return self._resize(state, msg)

        top = state.overlays.peek()
        if top is not None:
            cmds = top.update(msg)
            if cmds:
                return cmds
            if isinstance(msg, Key):
                return []

        if isinstance(msg, Key):
            return self._key(state, msg)
        return self._handle(state, msg)

    # --- routing ---

    def _resize(self, state: AppState, msg: Resize) -> list[AnyCommand]:
        state.terminal_size = (msg.width, msg.height)
        if state.detail is not None:
            state.detail.view.resize(msg.width, msg.height)
        top = state.overlays.peek()
        if top is not None:
            top.update(msg)
        return []

    def _key(self, state: AppState, msg: Key) -> list[AnyCommand]:
        state.status.clear()
        detail = state.detail if state.mode is AppMode.PROJECT_DETAIL else None
        filtering = detail is not None and detail.view.is_filtering()

        if not filtering:
            consumed, action = self.keys.handle(msg.key)
            if action is not None:
                return self.update(state, action)
            if consumed:
                return []

        if detail is not None:
            if not filtering:
                if msg.key == "esc":
                    return self.back_to_dashboard(state)
                if msg.key == "enter":
                    return self.open_shell(state)
                if msg.key == "d":
                    return self.show_remove_resource(state)
            detail.view.handle_key(msg.key, msg.character)
            return []

        if msg.key == "enter":
            project = state.dashboard.view.selected_project()
            if project is not None:
                return self.update(state, SelectProject(project.name))
            return []
        state.dashboard.view.handle_key(msg.key)
        return []

    def _handle(self, state: AppState, msg: Message) -> list[AnyCommand]:
        match msg:
            case Key() | Resize():
                return []
            case Tick():
                return self.handle_tick(state)
            case ProjectsLoaded():
                return self.handle_projects_loaded(state, msg)
            case ProjectsEnriched():
                return self.handle_projects_enriched(state, msg)
            case DetailReposLoaded():
                return self.handle_detail_repos_loaded(state, msg)
            case DetailPRsLoaded():
                return self.handle_detail_prs_loaded(state, msg)
            case BeadsLoaded():
                return self.handle_beads_loaded(state, msg)
            case Quit():
                return self.quit(state)
            case Refresh():
                return self.handle_refresh(state)
            case RefreshBeads():
                return self.refresh_beads(state)
            case OpenShell():
                return self.open_shell(state)
            case LaunchAgent():
                return self.launch_agent(state)
            case LaunchRalph():
                return self.launch_ralph(state)
            case HidePane():
                return self.hide_pane(state)
            case ShowPane():
                return self.show_pane(state)
            case FocusPane():
                return self.focus_pane(state, msg)
            case RunAgent():
                return self.run_agent(state)
            case ShowCreateProject():
                return self.show_create_project(state)
            case ShowDeleteProject():
                return self.show_delete_project(state)
            case ShowAddRepo():
                return self.show_add_repo(state)
            case ShowRemoveRepo():
                return self.show_remove_repo(state)
            case ShowProjectSwitcher():
                return self.show_project_switcher(state)
            case ShowRemoveResource():
                return self.show_remove_resource(state)
            case DismissOverlay():
                return self.dismiss_overlay(state)
            case SelectProject():
                return self.select_project(state, msg)
            case CreateProject():
                return self.create_project(state, msg)
            case DeleteProject():
                return self.delete_project(state, msg)
            case AddRepo():
                return self.add_repo(state, msg)
            case RemoveRepo():
                return self.remove_repo(state, msg)
            case RemoveResource():
                return self.remove_resource(state, msg)
            case ProjectCreated():
                return self.handle_project_created(state, msg)
            case ProjectTeardownReady():
                return self.handle_teardown_ready(state, msg)
            case ProjectDeleted():
                return self.handle_project_deleted(state, msg)
            case RepoAdded():
                return self.handle_repo_added(state, msg)
            case RepoRemoved():
                return self.handle_repo_removed(state, msg)
            case ResourceRemoved():
                return self.handle_resource_removed(state, msg)
            case PaneOpened():
                return self.handle_pane_opened(state, msg)
            case StatusReport():
                state.status.set(msg.text, msg.is_error)
                return []
            case ProgressEvent():
                return self.handle_progress_event(state, msg)
            case _:
                assert_never(msg)

    def quit(self, state: AppState) -> list[AnyCommand]:
        """Stop reporting any agent run and ask the front end to exit."""
        if state.agent_cancel is not None:
            cancel = state.agent_cancel
            state.agent_cancel = None
            cancel()
        state.quit_requested = True
        logger.info("Quit requested")
        return []
