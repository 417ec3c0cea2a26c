"""Unit tests for overlays and the overlay stack."""

import pytest

from devdeploy.agent import ProgressEvent, ProgressStatus
from devdeploy.tui.messages import CreateProject, DeleteProject, DismissOverlay, Key, Resize, SelectProject, Tick
from devdeploy.tui.overlay import ConfirmOverlay, OverlayStack, PickerOverlay, ProgressOverlay, TextInputOverlay

pytestmark = pytest.mark.unit


def _delivered(cmds):
    assert cmds is not None and len(cmds) == 1
    return cmds[0].run()


def test_stack_is_lifo() -> None:
    stack = OverlayStack()
    first = ConfirmOverlay("a", "a?", DeleteProject("a"))
    second = TextInputOverlay("b", CreateProject)
    stack.push(first)
    stack.push(second)

    assert len(stack) == 2
    assert stack.peek() is second
    assert stack.pop() is second
    assert stack.pop() is first
    assert stack.pop() is None
    assert stack.peek() is None


def test_confirm_yes_delivers_message() -> None:
    overlay = ConfirmOverlay("Delete", "Delete demo?", DeleteProject("demo"))

    assert _delivered(overlay.update(Key("y"))) == DeleteProject("demo")


def test_confirm_no_dismisses() -> None:
    overlay = ConfirmOverlay("Delete", "Delete demo?", DeleteProject("demo"))

    assert _delivered(overlay.update(Key("n"))) == DismissOverlay()
    assert _delivered(overlay.update(Key("esc"))) == DismissOverlay()


def test_confirm_ignores_non_key_messages() -> None:
    overlay = ConfirmOverlay("Delete", "Delete demo?", DeleteProject("demo"))

    assert overlay.update(Tick()) is None
    assert overlay.update(Key("x")) is None


def test_text_input_collects_characters() -> None:
    overlay = TextInputOverlay("New project", CreateProject)
    for ch in "my":
        overlay.update(Key(ch, ch))
    overlay.update(Key("SPC", " "))
    for ch in "app!":
        overlay.update(Key(ch, ch))
    overlay.update(Key("backspace"))

    assert overlay.text == "my app"
    assert _delivered(overlay.update(Key("enter"))) == CreateProject("my app")


def test_text_input_ignores_blank_submit() -> None:
    overlay = TextInputOverlay("New project", CreateProject, text="   ")

    assert overlay.update(Key("enter")) is None


def test_picker_moves_and_chooses() -> None:
    overlay = PickerOverlay("Switch project", ["alpha", "beta", "gamma"], SelectProject)
    overlay.update(Key("j"))
    overlay.update(Key("down"))
    overlay.update(Key("j"))

    assert overlay.selected() == "gamma"
    overlay.update(Key("k"))
    assert _delivered(overlay.update(Key("enter"))) == SelectProject("beta")


def test_empty_picker_enter_is_noop() -> None:
    overlay = PickerOverlay("Add repo", [], SelectProject)

    assert overlay.update(Key("enter")) is None


def test_progress_overlay_records_events_without_consuming() -> None:
    overlay = ProgressOverlay()

    assert overlay.update(ProgressEvent("started")) is None
    assert not overlay.finished
    assert overlay.update(ProgressEvent("done", ProgressStatus.DONE)) is None
    assert overlay.finished
    assert [e.message for e in overlay.events] == ["started", "done"]


def test_progress_overlay_sizes_from_terminal() -> None:
    overlay = ProgressOverlay()
    overlay.update(Resize(100, 40))

    assert (overlay.width, overlay.height) == (96, 24)


def test_progress_overlay_esc_requests_dismissal() -> None:
    overlay = ProgressOverlay()

    assert _delivered(overlay.update(Key("esc"))) == DismissOverlay()


def test_confirm_delivers_only_once() -> None:
    overlay = ConfirmOverlay("Delete", "Delete demo?", DeleteProject("demo"))

    assert _delivered(overlay.update(Key("y"))) == DeleteProject("demo")
    assert overlay.update(Key("y")) is None
    assert overlay.update(Key("enter")) is None


def test_stack_pops_only_a_resolved_top() -> None:
    stack = OverlayStack()
    picker = PickerOverlay("Switch project", ["alpha"], SelectProject)
    stack.push(picker)

    assert stack.pop_resolved() is None
    picker.update(Key("enter"))
    assert stack.pop_resolved() is picker
    assert len(stack) == 0
