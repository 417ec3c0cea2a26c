"""In-memory collaborators and a synchronous command runner for dispatcher tests."""

from __future__ import annotations

import threading
from pathlib import Path

from devdeploy.beads import BeadsError
from devdeploy.config.schema import DevdeployConfig
from devdeploy.project.manager import ProjectManager
from devdeploy.project.models import BeadInfo, PRInfo
from devdeploy.session.tracker import SessionTracker
from devdeploy.tmux import TmuxError
from devdeploy.tui.commands import AnyCommand, Command
from devdeploy.tui.dispatcher import Dispatcher, Services
from devdeploy.tui.state import AppState


class FakePRSource:
    """PRs keyed by repo dir name; `state` is "open" or "merged"."""

    def __init__(self, prs: dict[str, list[PRInfo]] | None = None) -> None:
        self.prs = prs or {}
        self.cleared: list[str] = []

    def list_filtered(self, worktree_path: str, state: str, limit: int) -> list[PRInfo]:
        if state != "open":
            return []
        return list(self.prs.get(Path(worktree_path).name, []))[:limit]

    def clear(self, path_prefix: str = "") -> None:
        self.cleared.append(path_prefix)


class FakeBeadSource:
    def __init__(self, beads: dict[str, list[BeadInfo]] | None = None, failing: set[str] | None = None) -> None:
        self.beads = beads or {}
        self.failing = failing or set()
        self.calls: list[tuple[str, int | None]] = []
        self._lock = threading.Lock()

    def beads_for(self, worktree_dir: str, pr_number: int | None = None) -> list[BeadInfo]:
        with self._lock:
            self.calls.append((worktree_dir, pr_number))
        if worktree_dir in self.failing:
            raise BeadsError(f"bd failed in {worktree_dir}")
        return list(self.beads.get(worktree_dir, []))


class FakeTmux:
    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.live: set[str] = set()
        self.fail_on: set[str] = set()
        self._next = 1

    def _record(self, *call: str) -> None:
        if call[0] in self.fail_on:
            raise TmuxError(f"tmux {call[0]}: boom")
        self.calls.append(call)

    def split_pane(self, work_dir: str) -> str:
        self._record("split_pane", work_dir)
        pane_id = f"%{self._next}"
        self._next += 1
        self.live.add(pane_id)
        return pane_id

    def send_keys(self, pane_id: str, keys: str) -> None:
        self._record("send_keys", pane_id, keys)

    def kill_pane(self, pane_id: str) -> None:
        self._record("kill_pane", pane_id)
        self.live.discard(pane_id)

    def break_pane(self, pane_id: str) -> None:
        self._record("break_pane", pane_id)

    def join_pane(self, pane_id: str) -> None:
        self._record("join_pane", pane_id)

    def focus_pane_as_sidebar(self, pane_id: str) -> None:
        self._record("focus_pane_as_sidebar", pane_id)

    def list_pane_ids(self) -> set[str]:
        return set(self.live)


class FakeRunner:
    def __init__(self) -> None:
        self.runs: list[tuple[str, str, str]] = []

    def run(self, project_dir, plan_path, design_path, emit, cancelled) -> None:
        self.runs.append((project_dir, plan_path, design_path))


class Harness:
    """A dispatcher over a real ProjectManager rooted in a temp dir, with fake I/O."""

    def __init__(self, root: Path, prs: dict[str, list[PRInfo]] | None = None) -> None:
        self.projects_dir = root / "projects"
        self.workspace = root / "workspace"
        self.projects_dir.mkdir(parents=True, exist_ok=True)
        self.workspace.mkdir(parents=True, exist_ok=True)
        self.pr_source = FakePRSource(prs)
        self.beads = FakeBeadSource()
        self.tmux = FakeTmux()
        self.clock = iter(range(1000, 100000))
        self.tracker = SessionTracker(liveness=self.tmux.list_pane_ids, clock=lambda: float(next(self.clock)))
        self.runner = FakeRunner()
        self.manager = ProjectManager(self.projects_dir, self.workspace, self.pr_source)
        self.config = DevdeployConfig(projects_dir=str(self.projects_dir), workspace_dir=str(self.workspace))
        self.services = Services(
            manager=self.manager,
            beads=self.beads,
            tmux=self.tmux,
            tracker=self.tracker,
            runner=self.runner,
            config=self.config,
            which=lambda _name: None,
        )
        self.dispatcher = Dispatcher(self.services)
        self.state = AppState(terminal_size=(120, 40))
        self.deferred: list[AnyCommand] = []

    def add_project(self, name: str, repos: tuple[str, ...] = ()) -> Path:
        project_dir = self.projects_dir / name
        project_dir.mkdir(parents=True, exist_ok=True)
        for repo in repos:
            (project_dir / repo / ".git").mkdir(parents=True, exist_ok=True)
        return project_dir

    def send(self, msg) -> list[AnyCommand]:
        """Dispatch one message and return its commands without running them."""
        return self.dispatcher.update(self.state, msg)

    def drain(self, cmds: list[AnyCommand], max_steps: int = 100) -> None:
        """Run immediate commands to quiescence; delayed and streaming ones are deferred."""
        queue = list(cmds)
        steps = 0
        while queue:
            steps += 1
            assert steps <= max_steps, "command loop did not settle"
            cmd = queue.pop(0)
            if not isinstance(cmd, Command) or cmd.delay > 0:
                self.deferred.append(cmd)
                continue
            msg = cmd.run()
            if msg is not None:
                queue.extend(self.dispatcher.update(self.state, msg))

    def feed(self, msg) -> None:
        self.drain(self.send(msg))
