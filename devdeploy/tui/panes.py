"""Pane lifecycle handlers: open, hide, show, focus, remove, agent runs."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from devdeploy import launch
from devdeploy.agent import ProgressEvent
from devdeploy.constants import AGENT_DESIGN_FILE, AGENT_PLAN_FILE
from devdeploy.project.manager import ProjectError
from devdeploy.project.models import Resource
from devdeploy.session.tracker import PaneKind, ResourceKey, TrackedPane, pane_label
from devdeploy.tmux import TmuxDriver, TmuxError
from devdeploy.tui.commands import AnyCommand, Command, Post, StreamCommand
from devdeploy.tui.messages import (
    FocusPane,
    Message,
    PaneOpened,
    RemoveResource,
    ResourceRemoved,
    StatusReport,
)
from devdeploy.tui.overlay import ConfirmOverlay, ProgressOverlay
from devdeploy.tui.state import AppMode, AppState

if TYPE_CHECKING:
    from devdeploy.tui.dispatcher import Services

logger = logging.getLogger(__name__)

# Given the worktree path, returns (keys to type, success status).
KeysFor = Callable[[str], tuple[str, str]]


class PaneHandlersMixin:
    services: "Services"

    # --- helpers ---

    def _selected_resource(self, state: AppState) -> Resource | None:
        """Selected detail resource; sets the precondition status when missing."""
        if state.mode is not AppMode.PROJECT_DETAIL or state.detail is None:
            return None
        resource = state.detail.view.selected_resource()
        if resource is None:
            state.status.set("No resource selected", is_error=True)
        return resource

    def _check_branch(self, state: AppState, resource: Resource) -> bool:
        if resource.pr is not None and not resource.worktree_path and not resource.pr.head_ref_name:
            state.status.set(f"PR #{resource.pr.number} has no branch name", is_error=True)
            return False
        return True

    def _ensure_worktree(self, project_name: str, resource: Resource) -> str:
        """Worktree for a resource, creating the PR worktree on demand (worker thread)."""
        if resource.worktree_path:
            return resource.worktree_path
        if resource.pr is None:
            raise ProjectError(f"{resource.repo_name} has no worktree")
        path = self.services.manager.ensure_pr_worktree(
            project_name, resource.repo_name, resource.pr.number, resource.pr.head_ref_name
        )
        return str(path)

    def _open_pane(
        self,
        state: AppState,
        resource: Resource,
        kind: PaneKind,
        keys_for: KeysFor,
        error_prefix: str,
    ) -> list[AnyCommand]:
        """Command: ensure worktree, split a pane there, type the launch keys."""
        assert state.detail is not None
        project_name = state.detail.project_name
        key = ResourceKey.from_resource(resource)
        tmux = self.services.tmux

        def run() -> Message:
            try:
                workdir = self._ensure_worktree(project_name, resource)
                keys, status = keys_for(workdir)
                pane_id = tmux.split_pane(workdir)
                if keys:
                    tmux.send_keys(pane_id, keys)
            except (ProjectError, TmuxError) as e:
                return StatusReport(f"{error_prefix}: {e}", is_error=True)
            return PaneOpened(project_name, key, pane_id, kind, workdir, status)

        return [Command(run=run, name=f"open_{kind.value}_pane")]

    # --- launching ---

    def open_shell(self, state: AppState) -> list[AnyCommand]:
        resource = self._selected_resource(state)
        if resource is None or not self._check_branch(state, resource):
            return []
        return self._open_pane(state, resource, PaneKind.SHELL, lambda _dir: ("", ""), "Open shell")

    def launch_agent(self, state: AppState) -> list[AnyCommand]:
        resource = self._selected_resource(state)
        if resource is None or not self._check_branch(state, resource):
            return []
        keys = launch.agent_keys(self.services.config.agent_command)
        return self._open_pane(state, resource, PaneKind.AGENT, lambda _dir: (keys, ""), "Launch agent")

    def launch_ralph(self, state: AppState) -> list[AnyCommand]:
        resource = self._selected_resource(state)
        if resource is None:
            return []
        if not resource.beads:
            state.status.set("No open beads for this resource", is_error=True)
            return []
        if not self._check_branch(state, resource):
            return []
        assert state.detail is not None
        bead = state.detail.view.selected_bead()
        cfg = self.services.config
        ralph_path = self.services.which(cfg.ralph_binary)

        def keys_for(workdir: str) -> tuple[str, str]:
            if ralph_path:
                return launch.ralph_keys(ralph_path, workdir, cfg.ralph_max_parallel, bead), "Ralph loop launched"
            return (
                launch.ralph_fallback_keys(cfg.ralph_fallback_command, bead),
                "Ralph binary not found, using agent fallback",
            )

        return self._open_pane(state, resource, PaneKind.AGENT, keys_for, "Ralph")

    def handle_pane_opened(self, state: AppState, msg: PaneOpened) -> list[AnyCommand]:
        self.services.tracker.register(msg.key, msg.pane_id, msg.kind)
        detail = state.detail
        if detail is not None and detail.project_name == msg.project_name:
            for resource in detail.resources:
                if ResourceKey.from_resource(resource) == msg.key and not resource.worktree_path:
                    resource.worktree_path = msg.worktree_path
            self.refresh_panes(state)
        if msg.status:
            state.status.set(msg.status)
        return []

    # --- visibility ---

    def _latest_pane(self, resource: Resource) -> TrackedPane | None:
        self.prune_panes()
        panes = self.services.tracker.panes_for(ResourceKey.from_resource(resource))
        return max(panes, key=lambda p: p.created_at) if panes else None

    def _pane_command(self, name: str, action: Callable[[], None], error_prefix: str, success: str = "") -> Command:
        def run() -> Message | None:
            try:
                action()
            except TmuxError as e:
                return StatusReport(f"{error_prefix}: {e}", is_error=True)
            return StatusReport(success) if success else None

        return Command(run=run, name=name)

    def hide_pane(self, state: AppState) -> list[AnyCommand]:
        resource = self._selected_resource(state)
        if resource is None:
            return []
        pane = self._latest_pane(resource)
        if pane is None:
            state.status.set("No pane to hide")
            return []
        tmux = self.services.tmux
        return [self._pane_command("hide_pane", lambda: tmux.break_pane(pane.pane_id), "Hide pane")]

    def show_pane(self, state: AppState) -> list[AnyCommand]:
        resource = self._selected_resource(state)
        if resource is None:
            return []
        pane = self._latest_pane(resource)
        if pane is None:
            state.status.set("No pane to show")
            return []
        tmux = self.services.tmux
        return [self._pane_command("show_pane", lambda: tmux.join_pane(pane.pane_id), "Show pane")]

    def ordered_active_panes(self) -> list[TrackedPane]:
        """Quick-focus order after pruning: repo panes, then PR panes, oldest first, max 9."""
        self.prune_panes()
        return self.services.tracker.ordered_panes()

    def focus_pane(self, state: AppState, msg: FocusPane) -> list[AnyCommand]:
        panes = self.ordered_active_panes()
        if msg.index < 1 or msg.index > len(panes):
            state.status.set(f"Pane {msg.index} not available (1-{len(panes)})", is_error=True)
            return []
        pane = panes[msg.index - 1]
        tmux = self.services.tmux
        return [
            self._pane_command(
                "focus_pane",
                lambda: tmux.focus_pane_as_sidebar(pane.pane_id),
                "Focus pane",
                f"Focused pane {msg.index}: {pane_label(pane)}",
            )
        ]

    # --- removal ---

    def show_remove_resource(self, state: AppState) -> list[AnyCommand]:
        resource = self._selected_resource(state)
        if resource is None:
            return []
        assert state.detail is not None
        what = f"PR #{resource.pr.number} worktree ({resource.repo_name})" if resource.pr else resource.repo_name
        state.overlays.push(
            ConfirmOverlay(
                title="Remove resource",
                prompt=f"Remove {what}? (y/n)",
                on_confirm=RemoveResource(state.detail.project_name, resource),
            )
        )
        return []

    def remove_resource(self, state: AppState, msg: RemoveResource) -> list[AnyCommand]:
        state.overlays.pop_resolved()
        resource = msg.resource
        key = ResourceKey.from_resource(resource)
        removed = self.services.tracker.unregister_all(key)
        manager = self.services.manager
        tmux = self.services.tmux
        label = f"PR #{resource.pr.number} ({resource.repo_name})" if resource.pr else resource.repo_name

        def run() -> Message:
            kill_panes(tmux, [p.pane_id for p in removed])
            try:
                if resource.pr is not None:
                    manager.remove_pr_worktree(msg.project_name, resource.repo_name, resource.pr.number)
                else:
                    manager.remove_repo(msg.project_name, resource.repo_name)
            except ProjectError as e:
                return ResourceRemoved(msg.project_name, key, label, error=str(e))
            return ResourceRemoved(msg.project_name, key, label)

        return [Command(run=run, name="remove_resource")]

    def handle_resource_removed(self, state: AppState, msg: ResourceRemoved) -> list[AnyCommand]:
        if msg.error:
            state.status.set(f"Remove {msg.label}: {msg.error}", is_error=True)
        elif msg.key.is_pr:
            state.status.set(f"Removed {msg.label}")
        else:
            state.status.set(f"Removed {msg.label} from {msg.project_name}")
        if state.detail is not None and state.detail.project_name == msg.project_name:
            return self.start_detail_load(state)
        return []

    # --- agent runs ---

    def run_agent(self, state: AppState) -> list[AnyCommand]:
        if state.mode is not AppMode.PROJECT_DETAIL or state.detail is None:
            return []
        if state.agent_cancel is not None:
            state.status.set("Agent run already in progress", is_error=True)
            return []
        project_dir = self.services.manager.project_dir(state.detail.project_name)
        plan_path = str(Path(project_dir) / AGENT_PLAN_FILE)
        design_path = str(Path(project_dir) / AGENT_DESIGN_FILE)
        cancelled = threading.Event()
        state.agent_cancel = cancelled.set
        overlay = ProgressOverlay()
        width, height = state.terminal_size
        if width and height:
            overlay.width, overlay.height = max(width - 4, 40), max(height // 2 + 4, 12)
        state.overlays.push(overlay)
        runner = self.services.runner

        def run(post: Post) -> None:
            runner.run(str(project_dir), plan_path, design_path, post, cancelled)

        return [StreamCommand(run=run, name="agent_run")]

    def handle_progress_event(self, state: AppState, msg: ProgressEvent) -> list[AnyCommand]:
        if msg.is_final:
            state.agent_cancel = None
        return []

    def dismiss_overlay(self, state: AppState) -> list[AnyCommand]:
        """Pop the top overlay; a progress overlay with a live run is cancelled first."""
        top = state.overlays.peek()
        if isinstance(top, ProgressOverlay) and state.agent_cancel is not None:
            cancel = state.agent_cancel
            state.agent_cancel = None
            cancel()
            return []
        state.overlays.pop()
        return []


def kill_panes(tmux: TmuxDriver, pane_ids: list[str]) -> None:
    """Kill panes, ignoring ones that are already gone."""
    for pane_id in pane_ids:
        try:
            tmux.kill_pane(pane_id)
        except TmuxError as e:
            logger.debug("kill-pane %s skipped: %s", pane_id, e)
