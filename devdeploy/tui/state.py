"""Application state owned by the dispatcher.

One `AppState` exists per process. Only the dispatcher mutates it, on the
UI loop; background commands see copies and report back via messages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from devdeploy.project.models import ProjectSummary, Resource
from devdeploy.tui.overlay import OverlayStack
from devdeploy.tui.views import DashboardView, DetailView


class AppMode(str, Enum):
    DASHBOARD = "dashboard"
    PROJECT_DETAIL = "project_detail"


class LoadPhase(str, Enum):
    IDLE = "idle"
    PHASE1 = "phase1"
    PHASE2 = "phase2"
    PHASE3 = "phase3"


@dataclass
class DashboardState:
    """Project list; `generation` identifies the load whose results are accepted."""

    view: DashboardView = field(default_factory=DashboardView)
    phase: LoadPhase = LoadPhase.IDLE
    generation: int = 0

    @property
    def projects(self) -> list[ProjectSummary]:
        return self.view.projects


@dataclass
class DetailState:
    project_name: str
    view: DetailView = field(default_factory=DetailView)
    loading_prs: bool = False
    loading_beads: bool = False
    phase: LoadPhase = LoadPhase.IDLE
    generation: int = 0

    @property
    def resources(self) -> list[Resource]:
        return self.view.resources

    def has_worktrees(self) -> bool:
        return any(r.worktree_path for r in self.resources)


@dataclass
class Status:
    text: str = ""
    is_error: bool = False

    def set(self, text: str, is_error: bool = False) -> None:
        self.text = text
        self.is_error = is_error

    def clear(self) -> None:
        self.text = ""
        self.is_error = False


@dataclass
class AppState:
    mode: AppMode = AppMode.DASHBOARD
    dashboard: DashboardState = field(default_factory=DashboardState)
    detail: DetailState | None = None
    overlays: OverlayStack = field(default_factory=OverlayStack)
    status: Status = field(default_factory=Status)
    agent_cancel: Callable[[], None] | None = None
    terminal_size: tuple[int, int] = (0, 0)
    tick_active: bool = False
    quit_requested: bool = False
