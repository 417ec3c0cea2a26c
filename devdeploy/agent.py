"""Agent runs with live progress reporting.

An agent run opens a tmux pane in the project directory, starts the agent
against the project's plan and design files, and reports progress until
the pane exits. Cancelling stops reporting only; the pane keeps running.
"""

from __future__ import annotations

import logging
import shlex
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

from devdeploy.constants import AGENT_POLL_INTERVAL_S
from devdeploy.tmux import TmuxDriver, TmuxError

logger = logging.getLogger(__name__)


class ProgressStatus(str, Enum):
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"
    ABORTED = "aborted"


@dataclass(frozen=True)
class ProgressEvent:
    message: str
    status: ProgressStatus = ProgressStatus.RUNNING
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def is_final(self) -> bool:
        return self.status is not ProgressStatus.RUNNING


Emit = Callable[[ProgressEvent], None]


def agent_prompt(plan_path: str, design_path: str) -> str:
    return (
        f"Read the plan in {plan_path} and the design in {design_path}. "
        "Implement the plan step by step, tracking work with bd. Follow the rules in .cursor/rules/."
    )


class TmuxAgentRunner:
    """Runs the agent CLI in a new tmux pane and watches the pane's lifetime."""

    def __init__(
        self,
        tmux: TmuxDriver,
        agent_command: str,
        poll_interval_s: float = AGENT_POLL_INTERVAL_S,
    ) -> None:
        self.tmux = tmux
        self.agent_command = agent_command
        self.poll_interval_s = poll_interval_s

    def run(self, project_dir: str, plan_path: str, design_path: str, emit: Emit, cancelled: threading.Event) -> None:
        """Blocking; emits events until the run finishes, fails or is cancelled."""
        emit(ProgressEvent(f"Agent run started: {Path(project_dir).name}"))
        missing = [p for p in (plan_path, design_path) if not Path(p).is_file()]
        if missing:
            emit(ProgressEvent(f"Missing artifacts: {', '.join(missing)}", ProgressStatus.ERROR))
            return

        try:
            pane_id = self.tmux.split_pane(project_dir)
            self.tmux.send_keys(pane_id, f"{self.agent_command} {shlex.quote(agent_prompt(plan_path, design_path))}\n")
        except TmuxError as e:
            emit(ProgressEvent(f"Launch failed: {e}", ProgressStatus.ERROR))
            return
        emit(ProgressEvent(f"Loading plan from {plan_path}", metadata={"pane": pane_id}))

        started = time.monotonic()
        while not cancelled.wait(self.poll_interval_s):
            try:
                alive = pane_id in self.tmux.list_pane_ids()
            except TmuxError as e:
                emit(ProgressEvent(f"Lost track of agent pane: {e}", ProgressStatus.ERROR))
                return
            if not alive:
                elapsed = int(time.monotonic() - started)
                emit(ProgressEvent("Agent run completed", ProgressStatus.DONE, metadata={"elapsed_s": str(elapsed)}))
                return
        emit(ProgressEvent("Aborted", ProgressStatus.ABORTED))
