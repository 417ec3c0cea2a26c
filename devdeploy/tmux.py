"""Thin tmux driver for devdeploy panes.

devdeploy runs inside tmux; every command targets the current session.
Pane IDs look like `%42` and stay valid across break/join.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


class TmuxError(Exception):
    """A tmux command failed; the message carries tmux's stderr."""


def in_tmux() -> bool:
    return bool(os.environ.get("TMUX"))


class TmuxDriver:
    """Pane operations used by the dashboard."""

    def __init__(self, tmux_binary: str = "tmux") -> None:
        self.tmux_binary = tmux_binary

    def _run_tmux(self, *args: str) -> str:
        """Run a tmux command and return stripped stdout.

        Raises:
            TmuxError: tmux exited non-zero or is not installed.
        """
        try:
            result = subprocess.run(
                [self.tmux_binary, *args],
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            msg = (e.stderr or e.stdout or "").strip()
            raise TmuxError(f"tmux {args[0]}: {msg or e}") from e
        except FileNotFoundError as e:
            raise TmuxError(f"{self.tmux_binary} not found") from e
        return result.stdout.strip()

    def split_pane(self, work_dir: str) -> str:
        """Split the current window with cwd `work_dir`; return the new pane ID."""
        return self._run_tmux("split-window", "-P", "-F", "#{pane_id}", "-c", work_dir)

    def send_keys(self, pane_id: str, keys: str) -> None:
        """Type `keys` literally into the pane; a trailing newline presses Enter."""
        self._run_tmux("send-keys", "-l", "-t", pane_id, keys)

    def kill_pane(self, pane_id: str) -> None:
        self._run_tmux("kill-pane", "-t", pane_id)

    def break_pane(self, pane_id: str) -> None:
        """Move the pane into a background window without switching to it."""
        self._run_tmux("break-pane", "-d", "-s", pane_id)

    def join_pane(self, pane_id: str) -> None:
        """Bring a pane back next to the dashboard pane, keeping focus on the dashboard."""
        self._run_tmux("join-pane", "-d", "-s", pane_id, "-t", ".")

    def focus_pane_as_sidebar(self, pane_id: str) -> None:
        """Show the pane beside the dashboard (joining it if hidden) and select it."""
        current_window = self._run_tmux("display-message", "-p", "#{window_id}")
        pane_window = self._run_tmux("display-message", "-p", "-t", pane_id, "#{window_id}")
        if pane_window != current_window:
            self._run_tmux("join-pane", "-h", "-s", pane_id, "-t", ".")
        self._run_tmux("select-pane", "-t", pane_id)

    def list_pane_ids(self) -> set[str]:
        """All live pane IDs across sessions; the tracker's liveness oracle."""
        out = self._run_tmux("list-panes", "-a", "-F", "#{pane_id}")
        return {line.strip() for line in out.splitlines() if line.strip()}
