"""Messages consumed by the dispatcher.

Every input the engine reacts to (keys, resizes, timer ticks, background
results, overlay outcomes) is one of the frozen dataclasses below. The
dispatcher matches on the closed `Message` union.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from devdeploy.agent import ProgressEvent
from devdeploy.project.models import BeadInfo, ProjectSummary, RepoPRs, Resource
from devdeploy.session.tracker import PaneKind, ResourceKey

# --- Terminal input ---


@dataclass(frozen=True)
class Key:
    """A key press in canonical form: "j", "esc", "enter", "ctrl+c", "SPC"."""

    key: str
    character: str | None = None


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class Tick:
    """Periodic resync timer."""


# --- Dashboard pipeline ---


@dataclass(frozen=True)
class ProjectsLoaded:
    generation: int
    projects: list[ProjectSummary]


@dataclass(frozen=True)
class ProjectsEnriched:
    generation: int
    projects: list[ProjectSummary]


# --- Detail pipeline ---


@dataclass(frozen=True)
class DetailReposLoaded:
    project_name: str
    generation: int
    resources: list[Resource]


@dataclass(frozen=True)
class DetailPRsLoaded:
    project_name: str
    generation: int
    prs_by_repo: list[RepoPRs]


@dataclass(frozen=True)
class BeadsLoaded:
    """Beads per resource index; indices that failed are absent."""

    project_name: str
    generation: int
    keys: tuple[ResourceKey, ...]
    beads_by_index: dict[int, list[BeadInfo]] = field(default_factory=dict)


# --- Actions (bound to keys) ---


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class RefreshBeads:
    pass


@dataclass(frozen=True)
class OpenShell:
    pass


@dataclass(frozen=True)
class LaunchAgent:
    pass


@dataclass(frozen=True)
class LaunchRalph:
    pass


@dataclass(frozen=True)
class HidePane:
    pass


@dataclass(frozen=True)
class ShowPane:
    pass


@dataclass(frozen=True)
class FocusPane:
    index: int


@dataclass(frozen=True)
class RunAgent:
    pass


@dataclass(frozen=True)
class ShowCreateProject:
    pass


@dataclass(frozen=True)
class ShowDeleteProject:
    pass


@dataclass(frozen=True)
class ShowAddRepo:
    pass


@dataclass(frozen=True)
class ShowRemoveRepo:
    pass


@dataclass(frozen=True)
class ShowProjectSwitcher:
    pass


@dataclass(frozen=True)
class ShowRemoveResource:
    pass


@dataclass(frozen=True)
class DismissOverlay:
    pass


# --- Overlay outcomes ---


@dataclass(frozen=True)
class SelectProject:
    name: str


@dataclass(frozen=True)
class CreateProject:
    name: str


@dataclass(frozen=True)
class DeleteProject:
    name: str


@dataclass(frozen=True)
class AddRepo:
    project_name: str
    repo_name: str


@dataclass(frozen=True)
class RemoveRepo:
    project_name: str
    repo_name: str


@dataclass(frozen=True)
class RemoveResource:
    project_name: str
    resource: Resource


# --- Background results ---


@dataclass(frozen=True)
class ProjectCreated:
    name: str
    error: str = ""


@dataclass(frozen=True)
class ProjectTeardownReady:
    """Resources of a project about to be deleted, for pane cleanup."""

    name: str
    resources: list[Resource]


@dataclass(frozen=True)
class ProjectDeleted:
    name: str
    error: str = ""


@dataclass(frozen=True)
class RepoAdded:
    project_name: str
    repo_name: str
    error: str = ""


@dataclass(frozen=True)
class RepoRemoved:
    project_name: str
    repo_name: str
    error: str = ""


@dataclass(frozen=True)
class ResourceRemoved:
    project_name: str
    key: ResourceKey
    label: str
    error: str = ""


@dataclass(frozen=True)
class PaneOpened:
    """A pane was split (and scripted) for a resource; register it."""

    project_name: str
    key: ResourceKey
    pane_id: str
    kind: PaneKind
    worktree_path: str
    status: str = ""


@dataclass(frozen=True)
class StatusReport:
    """Outcome of a background user action that only affects the status line."""

    text: str
    is_error: bool = False


Message = Union[
    Key,
    Resize,
    Tick,
    ProjectsLoaded,
    ProjectsEnriched,
    DetailReposLoaded,
    DetailPRsLoaded,
    BeadsLoaded,
    Quit,
    Refresh,
    RefreshBeads,
    OpenShell,
    LaunchAgent,
    LaunchRalph,
    HidePane,
    ShowPane,
    FocusPane,
    RunAgent,
    ShowCreateProject,
    ShowDeleteProject,
    ShowAddRepo,
    ShowRemoveRepo,
    ShowProjectSwitcher,
    ShowRemoveResource,
    DismissOverlay,
    SelectProject,
    CreateProject,
    DeleteProject,
    AddRepo,
    RemoveRepo,
    RemoveResource,
    ProjectCreated,
    ProjectTeardownReady,
    ProjectDeleted,
    RepoAdded,
    RepoRemoved,
    ResourceRemoved,
    PaneOpened,
    StatusReport,
    ProgressEvent,
]

