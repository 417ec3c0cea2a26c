"""Textual front end: feeds terminal events to the dispatcher and runs its commands."""

from __future__ import annotations

import logging
from typing import Callable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.events import Key as KeyEvent
from textual.events import Resize as ResizeEvent
from textual.widget import Widget

from devdeploy.tui import render
from devdeploy.tui.commands import AnyCommand, Command, StreamCommand
from devdeploy.tui.dispatcher import Dispatcher
from devdeploy.tui.messages import Key, Message, Quit, Resize
from devdeploy.tui.state import AppState

logger = logging.getLogger(__name__)

_KEY_NAMES = {
    "escape": "esc",
    "space": "SPC",
}


def normalize_key(key: str, character: str | None) -> str:
    """Map a Textual key name onto the dispatcher's key vocabulary."""
    if key in _KEY_NAMES:
        return _KEY_NAMES[key]
    if key.startswith("ctrl+"):
        return key
    if character and len(character) == 1 and character.isprintable():
        return character
    return key


class StateView(Widget):
    """Renders one slice of the app state through a render function."""

    DEFAULT_CSS = """
    StateView {
        width: 100%;
        height: auto;
    }
    """

    def __init__(self, renderer: Callable[[], Text], **kwargs: object) -> None:
        super().__init__(**kwargs)
        self._renderer = renderer

    def render(self) -> Text:
        return self._renderer()


class DevdeployApp(App[None]):
    """Full-screen dashboard; every state change goes through `Dispatcher.update`."""

    CSS = """
    Screen {
        layers: base overlay;
    }
    #main {
        height: 1fr;
        padding: 0 1;
    }
    #overlay {
        layer: overlay;
        dock: top;
        margin: 2 4;
        padding: 0 1;
        border: solid $accent;
        background: $surface;
        display: none;
    }
    #hints, #status {
        dock: bottom;
        height: 1;
        padding: 0 1;
    }
    """

    def __init__(self, dispatcher: Dispatcher, state: AppState | None = None) -> None:
        super().__init__()
        self.dispatcher = dispatcher
        self.state = state or AppState()

    def compose(self) -> ComposeResult:
        yield StateView(lambda: render.render_main(self.state), id="main")
        yield StateView(self._render_overlay, id="overlay")
        yield StateView(lambda: render.render_status(self.state.status), id="status")
        yield StateView(lambda: render.render_hints(self.dispatcher.keys, self.state.mode), id="hints")

    def on_mount(self) -> None:
        self._run_all(self.dispatcher.init(self.state))
        self._refresh_views()

    # --- input ---

    def on_key(self, event: KeyEvent) -> None:
        event.stop()
        event.prevent_default()
        self.dispatch_message(Key(normalize_key(event.key, event.character), event.character))

    def on_resize(self, event: ResizeEvent) -> None:
        self.dispatch_message(Resize(event.size.width, event.size.height))

    def action_help_quit(self) -> None:
        self.dispatch_message(Quit())

    def action_quit(self) -> None:
        self.dispatch_message(Quit())

    # --- dispatch loop ---

    def dispatch_message(self, msg: Message) -> None:
        """Feed one message through the dispatcher on the UI loop."""
        self._run_all(self.dispatcher.update(self.state, msg))
        self._refresh_views()
        if self.state.quit_requested:
            self.exit()

    def _run_all(self, cmds: list[AnyCommand]) -> None:
        for cmd in cmds:
            self._run(cmd)

    def _run(self, cmd: AnyCommand) -> None:
        if isinstance(cmd, StreamCommand):
            self.run_worker(lambda: self._stream(cmd), name=cmd.name, thread=True, exit_on_error=False)
        elif cmd.delay > 0:
            self.set_timer(cmd.delay, lambda: self._start(cmd), name=cmd.name)
        else:
            self._start(cmd)

    def _start(self, cmd: Command) -> None:
        self.run_worker(lambda: self._work(cmd), name=cmd.name, thread=True, exit_on_error=False)

    def _work(self, cmd: Command) -> None:
        try:
            msg = cmd.run()
        except Exception:
            logger.exception("Command %s failed", cmd.name)
            return
        if msg is not None:
            self._post(msg)

    def _stream(self, cmd: StreamCommand) -> None:
        try:
            cmd.run(self._post)
        except Exception:
            logger.exception("Stream %s failed", cmd.name)

    def _post(self, msg: Message) -> None:
        """Deliver a worker's message to the UI loop."""
        if self.state.quit_requested:
            return
        self.call_from_thread(self.dispatch_message, msg)

    # --- rendering ---

    def _render_overlay(self) -> Text:
        top = self.state.overlays.peek()
        return render.render_overlay(top) if top is not None else Text()

    def _refresh_views(self) -> None:
        overlay = self.query_one("#overlay", StateView)
        overlay.display = self.state.overlays.peek() is not None
        for view in self.query(StateView):
            view.refresh(layout=True)
