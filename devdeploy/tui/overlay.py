"""Modal overlays and the LIFO stack that owns them.

While the stack is non-empty the top overlay sees every message first.
Keys are always consumed by it; other messages fall through to the
dispatcher unless the overlay answers with a command.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable

from devdeploy.agent import ProgressEvent
from devdeploy.tui.commands import AnyCommand, emit
from devdeploy.tui.messages import DismissOverlay, Key, Message, Resize
from devdeploy.tui.views import DOWN_KEYS, UP_KEYS


class Overlay(ABC):
    """A modal view; `dismiss_key` closes it through `DismissOverlay`."""

    dismiss_key: str = "esc"
    resolved: bool = False

    @abstractmethod
    def update(self, msg: Message) -> list[AnyCommand] | None:
        """React to a message; a non-empty result consumes it."""

    def dismiss(self) -> list[AnyCommand]:
        return [emit(DismissOverlay())]

    def resolve(self, outcome: Message) -> list[AnyCommand] | None:
        """Deliver `outcome` once; later keys are swallowed until the overlay is popped."""
        if self.resolved:
            return None
        self.resolved = True
        return [emit(outcome)]


class OverlayStack:
    def __init__(self) -> None:
        self._items: list[Overlay] = []

    def push(self, overlay: Overlay) -> None:
        self._items.append(overlay)

    def pop(self) -> Overlay | None:
        return self._items.pop() if self._items else None

    def peek(self) -> Overlay | None:
        return self._items[-1] if self._items else None

    def pop_resolved(self) -> Overlay | None:
        """Pop the top overlay only if it delivered its outcome."""
        top = self.peek()
        if top is None or not top.resolved:
            return None
        return self._items.pop()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)


@dataclass
class ConfirmOverlay(Overlay):
    """Yes/no question; confirming delivers `on_confirm`."""

    title: str
    prompt: str
    on_confirm: Message

    def update(self, msg: Message) -> list[AnyCommand] | None:
        if not isinstance(msg, Key):
            return None
        if msg.key in ("y", "enter"):
            return self.resolve(self.on_confirm)
        if msg.key in ("n", self.dismiss_key):
            return self.dismiss()
        return None


@dataclass
class TextInputOverlay(Overlay):
    """Single-line prompt; enter delivers `submit(text)` for non-blank text."""

    title: str
    submit: Callable[[str], Message]
    text: str = ""

    def update(self, msg: Message) -> list[AnyCommand] | None:
        if not isinstance(msg, Key):
            return None
        if msg.key == self.dismiss_key:
            return self.dismiss()
        if msg.key == "enter":
            value = self.text.strip()
            return self.resolve(self.submit(value)) if value else None
        if msg.key == "backspace":
            self.text = self.text[:-1]
        elif msg.key == "SPC":
            self.text += " "
        elif msg.character and len(msg.character) == 1 and msg.character.isprintable():
            self.text += msg.character
        return None


@dataclass
class PickerOverlay(Overlay):
    """Pick one option with j/k and enter; enter delivers `choose(option)`."""

    title: str
    options: list[str]
    choose: Callable[[str], Message]
    cursor: int = 0

    def selected(self) -> str | None:
        if 0 <= self.cursor < len(self.options):
            return self.options[self.cursor]
        return None

    def update(self, msg: Message) -> list[AnyCommand] | None:
        if not isinstance(msg, Key):
            return None
        if msg.key == self.dismiss_key:
            return self.dismiss()
        if msg.key in DOWN_KEYS and self.options:
            self.cursor = min(self.cursor + 1, len(self.options) - 1)
        elif msg.key in UP_KEYS:
            self.cursor = max(self.cursor - 1, 0)
        elif msg.key == "enter":
            option = self.selected()
            return self.resolve(self.choose(option)) if option is not None else None
        return None


@dataclass
class ProgressOverlay(Overlay):
    """Live log of an agent run."""

    title: str = "Agent progress"
    events: list[ProgressEvent] = field(default_factory=list)
    width: int = 70
    height: int = 18

    def update(self, msg: Message) -> list[AnyCommand] | None:
        if isinstance(msg, ProgressEvent):
            self.events.append(msg)
            return None
        if isinstance(msg, Resize):
            self.width = max(msg.width - 4, 40)
            self.height = max(msg.height // 2 + 4, 12)
            return None
        if isinstance(msg, Key) and msg.key == self.dismiss_key:
            return self.dismiss()
        return None

    @property
    def finished(self) -> bool:
        return bool(self.events) and self.events[-1].is_final
