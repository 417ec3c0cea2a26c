"""Rich text rendering of the dashboard, project detail, overlays and hints."""

from __future__ import annotations

from rich.style import Style
from rich.text import Text

from devdeploy.agent import ProgressStatus
from devdeploy.constants import LOADING
from devdeploy.project.models import Resource
from devdeploy.tui.keybind import KeyHandler
from devdeploy.tui.overlay import ConfirmOverlay, Overlay, PickerOverlay, ProgressOverlay, TextInputOverlay
from devdeploy.tui.state import AppMode, AppState, DashboardState, DetailState, Status

SELECTED = Style(reverse=True)
DIM = Style(dim=True)
HEADER = Style(bold=True)
ERROR = Style(color="red", bold=True)
PR_STYLE = Style(color="cyan")
AGENT_STYLE = Style(color="magenta")

_PROGRESS_STYLES = {
    ProgressStatus.RUNNING: Style(),
    ProgressStatus.DONE: Style(color="green"),
    ProgressStatus.ERROR: ERROR,
    ProgressStatus.ABORTED: Style(color="yellow"),
}


def _titled(title: str, gap: str = "\n\n") -> Text:
    text = Text()
    text.append(title + gap, style=HEADER)
    return text


def _count(value: int) -> str:
    return "…" if value == LOADING else str(value)


def render_dashboard(dash: DashboardState) -> Text:
    text = _titled("Projects", gap="\n")
    if not dash.projects:
        text.append("No projects yet. SPC p c creates one.\n", style=DIM)
        return text
    width = max(len(p.name) for p in dash.projects)
    for i, project in enumerate(dash.projects):
        line = Text(f"  {project.name:<{width}}  ")
        line.append(f"repos {project.repo_count}  ", style=DIM)
        line.append(f"PRs {_count(project.pr_count)}  ", style=DIM)
        line.append(f"beads {_count(project.bead_count)}", style=DIM)
        if i == dash.view.selected:
            line.stylize(SELECTED)
        text.append_text(line)
        text.append("\n")
    return text


def _resource_line(resource: Resource) -> Text:
    line = Text()
    if resource.pr is not None:
        line.append(f"  #{resource.pr.number} ", style=PR_STYLE)
        line.append(resource.pr.title)
        if resource.pr.state and resource.pr.state != "OPEN":
            line.append(f" [{resource.pr.state.lower()}]", style=DIM)
    else:
        line.append(resource.repo_name, style=HEADER)
    if resource.panes:
        agents = sum(1 for p in resource.panes if p.is_agent)
        shells = len(resource.panes) - agents
        marks = []
        if shells:
            marks.append(f"{shells} shell")
        if agents:
            marks.append(f"{agents} agent")
        line.append(f"  ({', '.join(marks)})", style=AGENT_STYLE)
    if resource.pr is not None and not resource.worktree_path:
        line.append("  no worktree", style=DIM)
    return line


def render_detail(detail: DetailState) -> Text:
    text = _titled(detail.project_name, gap="\n")
    view = detail.view
    if not detail.resources:
        text.append("No repos. SPC p a adds one.\n", style=DIM)
    for row, item in enumerate(view.items):
        resource = detail.resources[item.resource_index]
        if item.bead_index is None:
            line = _resource_line(resource)
        else:
            bead = resource.beads[item.bead_index]
            indent = "      " if bead.is_child else "    "
            line = Text()
            line.append(f"{indent}{bead.id} ", style=DIM)
            line.append(bead.title)
            if bead.issue_type == "epic":
                line.append("  epic", style=DIM)
        if row == view.cursor:
            line.stylize(SELECTED)
        text.append_text(line)
        text.append("\n")
    if detail.loading_prs:
        text.append("Loading PRs…\n", style=DIM)
    elif detail.loading_beads:
        text.append("Loading beads…\n", style=DIM)
    if view.filtering or view.filter_text:
        text.append(f"/{view.filter_text}", style=HEADER if view.filtering else DIM)
        text.append("\n")
    return text


def render_status(status: Status) -> Text:
    return Text(status.text, style=ERROR if status.is_error else DIM)


def render_overlay(overlay: Overlay) -> Text:
    if isinstance(overlay, ConfirmOverlay):
        text = _titled(overlay.title)
        text.append(overlay.prompt)
        return text
    if isinstance(overlay, TextInputOverlay):
        text = _titled(overlay.title)
        text.append(f"> {overlay.text}▏")
        return text
    if isinstance(overlay, PickerOverlay):
        text = _titled(overlay.title)
        for i, option in enumerate(overlay.options):
            text.append(f"  {option}\n", style=SELECTED if i == overlay.cursor else None)
        return text
    if isinstance(overlay, ProgressOverlay):
        text = _titled(overlay.title)
        visible = max(overlay.height - 4, 1)
        for event in overlay.events[-visible:]:
            stamp = event.timestamp.strftime("%H:%M:%S")
            text.append(f"{stamp} ", style=DIM)
            text.append(f"{event.message}\n", style=_PROGRESS_STYLES[event.status])
        footer = "esc closes" if overlay.finished else "esc aborts"
        text.append(f"\n{footer}", style=DIM)
        return text
    return Text(type(overlay).__name__)


def render_hints(keys: KeyHandler, mode: AppMode) -> Text:
    """Which-key style hints while the leader is waiting; empty otherwise."""
    if not keys.leader_waiting:
        return Text()
    hints = keys.registry.leader_hints(keys.current_seq, mode)
    text = Text()
    text.append(f"{keys.current_seq} ", style=HEADER)
    for key, label in sorted(hints.items()):
        text.append(key, style=Style(bold=True))
        text.append(f" {label}  ", style=DIM)
    return text


def render_main(state: AppState) -> Text:
    if state.mode is AppMode.PROJECT_DETAIL and state.detail is not None:
        return render_detail(state.detail)
    return render_dashboard(state.dashboard)
