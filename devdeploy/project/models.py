"""Project resource models shared by the manager and the dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from devdeploy.constants import LOADING


class ResourceKind(str, Enum):
    REPO = "repo"
    PR = "pr"


@dataclass(frozen=True)
class PRInfo:
    """Minimal PR metadata from `gh pr list`."""

    number: int
    title: str
    state: str
    head_ref_name: str = ""
    merged_at: datetime | None = None

    @classmethod
    def from_json(cls, raw: dict[str, object]) -> "PRInfo":  # guard: loose-dict - gh JSON
        merged_raw = raw.get("mergedAt")
        merged_at = None
        if isinstance(merged_raw, str) and merged_raw:
            merged_at = datetime.fromisoformat(merged_raw.replace("Z", "+00:00"))
        return cls(
            number=int(raw.get("number", 0)),  # type: ignore[arg-type]
            title=str(raw.get("title", "")),
            state=str(raw.get("state", "")),
            head_ref_name=str(raw.get("headRefName") or ""),
            merged_at=merged_at,
        )


@dataclass(frozen=True)
class RepoPRs:
    """PRs of one repository, in the order the PR source returned them."""

    repo: str
    prs: list[PRInfo] = field(default_factory=list)


@dataclass(frozen=True)
class BeadInfo:
    """A bead as displayed under a resource."""

    id: str
    title: str
    status: str
    issue_type: str = ""
    is_child: bool = False


@dataclass(frozen=True)
class PaneInfo:
    """Display snapshot of a tracked tmux pane."""

    id: str
    is_agent: bool = False


@dataclass
class Resource:
    """A repo or a PR within a project.

    `pr` is set iff `kind` is PR. `worktree_path` stays empty until a
    worktree exists on disk. `panes` is a display-only copy of tracker state.
    """

    kind: ResourceKind
    repo_name: str
    pr: PRInfo | None = None
    worktree_path: str = ""
    beads: list[BeadInfo] = field(default_factory=list)
    panes: list[PaneInfo] = field(default_factory=list)

    def __post_init__(self) -> None:
        if (self.kind is ResourceKind.PR) != (self.pr is not None):
            raise ValueError(f"Resource kind {self.kind.value} inconsistent with pr={self.pr!r}")

    @classmethod
    def repo(cls, repo_name: str, worktree_path: str = "") -> "Resource":
        return cls(kind=ResourceKind.REPO, repo_name=repo_name, worktree_path=worktree_path)

    @classmethod
    def pull_request(cls, repo_name: str, pr: PRInfo, worktree_path: str = "") -> "Resource":
        return cls(kind=ResourceKind.PR, repo_name=repo_name, pr=pr, worktree_path=worktree_path)

    @property
    def is_pr(self) -> bool:
        return self.kind is ResourceKind.PR

    @property
    def label(self) -> str:
        if self.pr is not None:
            return f"{self.repo_name} #{self.pr.number}"
        return self.repo_name


@dataclass(frozen=True)
class ProjectInfo:
    """Minimal project metadata for listing (filesystem only)."""

    name: str
    repo_count: int
    dir: str


@dataclass(frozen=True)
class ProjectOverview:
    """Open PR count plus the resources (repos + open PRs) used for bead counting."""

    pr_count: int
    resources: list[Resource] = field(default_factory=list)


@dataclass(frozen=True)
class ProjectSummary:
    """Dashboard row. Counts are `LOADING` (-1) until enrichment lands."""

    name: str
    repo_count: int
    pr_count: int = LOADING
    bead_count: int = LOADING

    @property
    def is_loaded(self) -> bool:
        return self.pr_count != LOADING and self.bead_count != LOADING
