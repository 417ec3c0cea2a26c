"""Tracks live tmux panes per project resource.

The tracker outlives project switches (it belongs to the app, not the
detail view) and is safe to call from worker threads.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from devdeploy.constants import MAX_QUICK_FOCUS
from devdeploy.project.models import PaneInfo, Resource, ResourceKind

logger = logging.getLogger(__name__)

LivenessOracle = Callable[[], set[str]]

_PR_KEY_RE = re.compile(r"^pr:(?P<repo>[^:]+):#(?P<number>\d+)$")
_REPO_KEY_RE = re.compile(r"^repo:(?P<repo>[^:]+)$")


class PaneKind(str, Enum):
    SHELL = "shell"
    AGENT = "agent"


@dataclass(frozen=True)
class ResourceKey:
    """Identity joining a resource to its panes: repo name, plus PR number for PRs."""

    kind: ResourceKind
    repo_name: str
    pr_number: int = 0

    @classmethod
    def for_repo(cls, repo_name: str) -> "ResourceKey":
        return cls(ResourceKind.REPO, repo_name)

    @classmethod
    def for_pr(cls, repo_name: str, pr_number: int) -> "ResourceKey":
        return cls(ResourceKind.PR, repo_name, pr_number)

    @classmethod
    def from_resource(cls, resource: Resource) -> "ResourceKey":
        if resource.pr is not None:
            return cls.for_pr(resource.repo_name, resource.pr.number)
        return cls.for_repo(resource.repo_name)

    @classmethod
    def parse(cls, raw: str) -> "ResourceKey":
        """Parse `repo:<name>` or `pr:<repo>:#<n>`."""
        if match := _PR_KEY_RE.match(raw):
            return cls.for_pr(match.group("repo"), int(match.group("number")))
        if match := _REPO_KEY_RE.match(raw):
            return cls.for_repo(match.group("repo"))
        raise ValueError(f"invalid resource key: {raw!r}")

    @property
    def is_pr(self) -> bool:
        return self.kind is ResourceKind.PR

    def __str__(self) -> str:
        if self.is_pr:
            return f"pr:{self.repo_name}:#{self.pr_number}"
        return f"repo:{self.repo_name}"


@dataclass(frozen=True)
class TrackedPane:
    pane_id: str
    resource_key: ResourceKey
    kind: PaneKind
    created_at: float


def pane_label(pane: TrackedPane) -> str:
    """`"<repo>-pr-<n> (agent)"` or `"<repo> (shell)"`."""
    key = pane.resource_key
    name = f"{key.repo_name}-pr-{key.pr_number}" if key.is_pr else key.repo_name
    return f"{name} ({pane.kind.value})"


class SessionTracker:
    """Maps resource keys to their live panes."""

    def __init__(self, liveness: LivenessOracle | None = None, clock: Callable[[], float] = time.time) -> None:
        self._liveness = liveness
        self._clock = clock
        self._panes: dict[ResourceKey, list[TrackedPane]] = {}
        self._lock = threading.RLock()

    def register(self, key: ResourceKey, pane_id: str, kind: PaneKind) -> TrackedPane:
        pane = TrackedPane(pane_id=pane_id, resource_key=key, kind=kind, created_at=self._clock())
        with self._lock:
            self._panes.setdefault(key, []).append(pane)
        logger.debug("Registered %s pane %s for %s", kind.value, pane_id, key)
        return pane

    def unregister(self, pane_id: str) -> bool:
        """Forget one pane; returns whether it was tracked."""
        with self._lock:
            for key, panes in self._panes.items():
                for i, pane in enumerate(panes):
                    if pane.pane_id == pane_id:
                        del panes[i]
                        if not panes:
                            del self._panes[key]
                        return True
        return False

    def unregister_all(self, key: ResourceKey) -> list[TrackedPane]:
        """Forget every pane of a resource and return what was removed."""
        with self._lock:
            return self._panes.pop(key, [])

    def panes_for(self, key: ResourceKey) -> list[TrackedPane]:
        with self._lock:
            return list(self._panes.get(key, []))

    def all_panes(self) -> list[TrackedPane]:
        with self._lock:
            return [pane for panes in self._panes.values() for pane in panes]

    def count(self) -> int:
        with self._lock:
            return sum(len(panes) for panes in self._panes.values())

    def count_for(self, key: ResourceKey) -> tuple[int, int]:
        """Return (shells, agents) for a resource."""
        panes = self.panes_for(key)
        shells = sum(1 for pane in panes if pane.kind is PaneKind.SHELL)
        return shells, len(panes) - shells

    def prune(self) -> int:
        """Drop panes the liveness oracle no longer reports; returns how many.

        Without an oracle this is a no-op. Oracle errors propagate.
        """
        if self._liveness is None:
            return 0
        live = self._liveness()
        pruned = 0
        with self._lock:
            for key in list(self._panes):
                kept = [pane for pane in self._panes[key] if pane.pane_id in live]
                pruned += len(self._panes[key]) - len(kept)
                if kept:
                    self._panes[key] = kept
                else:
                    del self._panes[key]
        if pruned:
            logger.debug("Pruned %d dead panes", pruned)
        return pruned

    def ordered_panes(self, limit: int = MAX_QUICK_FOCUS) -> list[TrackedPane]:
        """Repo panes then PR panes, each oldest first, truncated to `limit`."""
        panes = self.all_panes()
        repo_panes = sorted((p for p in panes if not p.resource_key.is_pr), key=lambda p: (p.created_at, p.pane_id))
        pr_panes = sorted((p for p in panes if p.resource_key.is_pr), key=lambda p: (p.created_at, p.pane_id))
        return [*repo_panes, *pr_panes][:limit]

    def pane_infos(self, key: ResourceKey) -> list[PaneInfo]:
        """Display snapshot for a resource row."""
        return [PaneInfo(id=pane.pane_id, is_agent=pane.kind is PaneKind.AGENT) for pane in self.panes_for(key)]
