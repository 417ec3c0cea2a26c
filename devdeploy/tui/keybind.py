"""Leader-key (SPC) command router.

Sequences use spacemacs notation: "SPC p c" is space, then p, then c.
Single keys ("q", "ctrl+c") are looked up directly outside leader mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from devdeploy.constants import LEADER, MAX_QUICK_FOCUS
from devdeploy.tui import messages as m
from devdeploy.tui.state import AppMode

SUBMENU_LABELS = {
    "p": "Project",
    "s": "Shell",
    "b": "Bead",
}


def normalize_seq(seq: str) -> str:
    return " ".join(LEADER if part in ("space", " ") else part for part in seq.split())


@dataclass(frozen=True)
class Binding:
    seq: str
    action: Callable[[], m.Message]
    description: str = ""
    modes: frozenset[AppMode] = frozenset()

    def applies_to(self, mode: AppMode) -> bool:
        return not self.modes or mode in self.modes


class KeybindRegistry:
    def __init__(self) -> None:
        self._bindings: dict[str, Binding] = {}

    def bind(
        self,
        seq: str,
        action: Callable[[], m.Message],
        description: str = "",
        modes: Iterable[AppMode] = (),
    ) -> None:
        """Register (or replace) a binding; `modes` empty means every mode."""
        n = normalize_seq(seq)
        self._bindings[n] = Binding(n, action, description, frozenset(modes))

    def lookup(self, seq: str) -> Binding | None:
        return self._bindings.get(normalize_seq(seq))

    def has_prefix(self, seq: str) -> bool:
        """True when some longer binding continues `seq`."""
        prefix = normalize_seq(seq) + " "
        return any(k.startswith(prefix) for k in self._bindings)

    def leader_hints(self, current_seq: str, mode: AppMode) -> dict[str, str]:
        """Next keys after `current_seq` (default: the leader) with their labels.

        A key that opens deeper bindings shows a submenu label instead of
        one of its leaves.
        """
        base = normalize_seq(current_seq) if current_seq else LEADER
        prefix = base + " "
        hints: dict[str, str] = {}
        for seq, binding in self._bindings.items():
            if not seq.startswith(prefix) or not binding.applies_to(mode):
                continue
            key = seq[len(prefix) :].split()[0]
            if self.has_prefix(f"{base} {key}"):
                hints[key] = SUBMENU_LABELS.get(key, f"{key}…")
            else:
                hints[key] = binding.description or seq
        return hints


class KeyHandler:
    """Tracks leader-waiting state and resolves keys to actions."""

    def __init__(self, registry: KeybindRegistry) -> None:
        self.registry = registry
        self.leader_waiting = False
        self.buffer: list[str] = []

    def reset(self) -> None:
        self.leader_waiting = False
        self.buffer = []

    @property
    def current_seq(self) -> str:
        return " ".join(self.buffer)

    def handle(self, key: str) -> tuple[bool, m.Message | None]:
        """Return (consumed, message-to-dispatch)."""
        part = LEADER if key in ("space", " ") else key
        if part == "esc":
            if self.leader_waiting:
                self.reset()
                return True, None
            return False, None

        if part == LEADER and not self.leader_waiting:
            self.leader_waiting = True
            self.buffer = [LEADER]
            return True, None

        if self.leader_waiting:
            self.buffer.append(part)
            seq = self.current_seq
            binding = self.registry.lookup(seq)
            if binding is not None:
                self.reset()
                return True, binding.action()
            if not self.registry.has_prefix(seq):
                self.reset()
            return True, None

        binding = self.registry.lookup(part)
        if binding is not None:
            return True, binding.action()
        return False, None


def default_registry() -> KeybindRegistry:
    """The dashboard's key map."""
    dash = (AppMode.DASHBOARD,)
    detail = (AppMode.PROJECT_DETAIL,)
    reg = KeybindRegistry()
    reg.bind("q", m.Quit, "Quit")
    reg.bind("ctrl+c", m.Quit, "Quit")
    reg.bind("SPC q", m.Quit, "Quit")
    reg.bind("SPC r", m.Refresh, "Refresh")

    reg.bind("SPC a a", m.RunAgent, "Agent run", detail)

    reg.bind("SPC p c", m.ShowCreateProject, "Create project", dash)
    reg.bind("SPC p d", m.ShowDeleteProject, "Delete project", dash)
    reg.bind("SPC p a", m.ShowAddRepo, "Add repo", detail)
    reg.bind("SPC p r", m.ShowRemoveRepo, "Remove repo", detail)
    reg.bind("SPC p p", m.ShowProjectSwitcher, "Switch project")

    reg.bind("SPC s s", m.OpenShell, "Open shell", detail)
    reg.bind("SPC s a", m.LaunchAgent, "Launch agent", detail)
    reg.bind("SPC s r", m.LaunchRalph, "Ralph loop", detail)
    reg.bind("SPC s h", m.HidePane, "Hide pane", detail)
    reg.bind("SPC s o", m.ShowPane, "Show pane", detail)

    reg.bind("SPC b r", m.RefreshBeads, "Refresh beads", detail)

    for i in range(1, MAX_QUICK_FOCUS + 1):
        reg.bind(f"SPC {i}", lambda i=i: m.FocusPane(i), f"Focus pane {i}", detail)
    return reg
