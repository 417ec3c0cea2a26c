"""Projects: repo worktrees, PR worktrees and the PR source."""

from devdeploy.project.manager import ProjectError, ProjectManager
from devdeploy.project.models import (
    BeadInfo,
    PaneInfo,
    PRInfo,
    ProjectInfo,
    ProjectOverview,
    ProjectSummary,
    RepoPRs,
    Resource,
    ResourceKind,
)

__all__ = [
    "BeadInfo",
    "PaneInfo",
    "PRInfo",
    "ProjectError",
    "ProjectInfo",
    "ProjectManager",
    "ProjectOverview",
    "ProjectSummary",
    "RepoPRs",
    "Resource",
    "ResourceKind",
]
