"""Read open beads (bd issues) from a worktree via `bd list --json`."""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from devdeploy.project.models import BeadInfo

logger = logging.getLogger(__name__)

STATUS_OPEN = "open"
STATUS_IN_PROGRESS = "in_progress"
STATUS_CLOSED = "closed"
ISSUE_TYPE_EPIC = "epic"
LABEL_PR_PREFIX = "pr:"
DEP_TYPE_PARENT_CHILD = "parent-child"

BdRunner = Callable[..., str]


class BeadsError(Exception):
    """`bd` failed or produced unparseable output."""


@dataclass(frozen=True)
class Bead:
    id: str
    title: str
    status: str
    priority: int = 0
    issue_type: str = ""
    parent_id: str = ""
    description: str = ""
    labels: tuple[str, ...] = field(default_factory=tuple)
    created_at: datetime | None = None

    def to_info(self) -> BeadInfo:
        return BeadInfo(
            id=self.id,
            title=self.title,
            status=self.status,
            issue_type=self.issue_type,
            is_child=bool(self.parent_id),
        )


def run_bd(cwd: str, *args: str) -> str:
    """Run `bd` in `cwd` and return stdout."""
    try:
        result = subprocess.run(["bd", *args], cwd=cwd, capture_output=True, text=True, check=True)
    except subprocess.CalledProcessError as e:
        raise BeadsError((e.stderr or "").strip() or str(e)) from e
    except (FileNotFoundError, NotADirectoryError) as e:
        raise BeadsError(str(e)) from e
    return result.stdout


def _parse_created_at(raw: object) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def _parent_id(deps: object) -> str:
    if not isinstance(deps, list):
        return ""
    for dep in deps:
        if isinstance(dep, dict) and dep.get("type") == DEP_TYPE_PARENT_CHILD:
            return str(dep.get("depends_on_id") or "")
    return ""


def parse_beads(output: str) -> list[Bead]:
    """Decode `bd list --json` output, dropping closed beads."""
    try:
        entries = json.loads(output or "[]")
    except json.JSONDecodeError as e:
        raise BeadsError(f"invalid bd output: {e}") from e
    if not isinstance(entries, list):
        raise BeadsError("bd output is not a list")

    beads: list[Bead] = []
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("status") == STATUS_CLOSED:
            continue
        beads.append(
            Bead(
                id=str(entry.get("id", "")),
                title=str(entry.get("title", "")),
                status=str(entry.get("status", "")),
                priority=int(entry.get("priority") or 0),
                issue_type=str(entry.get("issue_type") or ""),
                parent_id=_parent_id(entry.get("dependencies")),
                description=str(entry.get("description") or ""),
                labels=tuple(entry.get("labels") or ()),
                created_at=_parse_created_at(entry.get("created_at")),
            )
        )
    return beads


def _priority_key(bead: Bead) -> tuple[int, str]:
    return (bead.priority, bead.id)


def sort_hierarchically(beads: list[Bead]) -> list[Bead]:
    """Epics first, each followed by its children; then standalone beads.

    Children whose epic is not in the list are treated as standalone.
    Every group is ordered by priority, then id.
    """
    if len(beads) <= 1:
        return list(beads)

    epics: list[Bead] = []
    standalone: list[Bead] = []
    children_of: dict[str, list[Bead]] = {}
    for bead in beads:
        if bead.issue_type == ISSUE_TYPE_EPIC and not bead.parent_id:
            epics.append(bead)
        elif bead.parent_id:
            children_of.setdefault(bead.parent_id, []).append(bead)
        else:
            standalone.append(bead)

    ordered: list[Bead] = []
    for epic in sorted(epics, key=_priority_key):
        ordered.append(epic)
        ordered.extend(sorted(children_of.pop(epic.id, []), key=_priority_key))

    for orphans in children_of.values():
        standalone.extend(orphans)
    ordered.extend(sorted(standalone, key=_priority_key))
    return ordered


def has_pr_label(labels: tuple[str, ...]) -> bool:
    return any(label.startswith(LABEL_PR_PREFIX) for label in labels)


def list_for_repo(worktree_dir: str, runner: BdRunner = run_bd) -> list[Bead]:
    """Open beads of a repo worktree, excluding PR-labelled ones."""
    beads = parse_beads(runner(worktree_dir, "list", "--json", "--limit", "0"))
    return sort_hierarchically([b for b in beads if not has_pr_label(b.labels)])


def list_for_pr(worktree_dir: str, pr_number: int, runner: BdRunner = run_bd) -> list[Bead]:
    """Open beads labelled `pr:<number>` in a PR worktree."""
    out = runner(worktree_dir, "list", "--label", f"{LABEL_PR_PREFIX}{pr_number}", "--json", "--limit", "0")
    return sort_hierarchically(parse_beads(out))


class BeadSource:
    """Bead lookups for project resources, in display form."""

    def __init__(self, runner: BdRunner = run_bd) -> None:
        self._runner = runner

    def beads_for(self, worktree_dir: str, pr_number: int | None = None) -> list[BeadInfo]:
        """Raises BeadsError when bd is unavailable or fails."""
        if pr_number is None:
            beads = list_for_repo(worktree_dir, self._runner)
        else:
            beads = list_for_pr(worktree_dir, pr_number, self._runner)
        return [bead.to_info() for bead in beads]

