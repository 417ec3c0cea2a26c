"""Opening, hiding, showing and launching panes for the selected resource."""

import shlex

import pytest

from devdeploy.project.models import BeadInfo, PRInfo
from devdeploy.session.tracker import PaneKind, ResourceKey
from devdeploy.tui.messages import HidePane, LaunchAgent, LaunchRalph, OpenShell, PaneOpened, SelectProject, ShowPane
from tests.fakes import Harness

pytestmark = pytest.mark.integration


def _open_detail(tmp_path, prs=None, beads=None, repos=("svc",)) -> Harness:
    h = Harness(tmp_path, prs=prs)
    project_dir = h.add_project("demo", repos)
    for repo, repo_beads in (beads or {}).items():
        h.beads.beads[str(project_dir / repo)] = repo_beads
    h.feed(SelectProject("demo"))
    return h


def _run_one(h: Harness, msg):
    [cmd] = h.send(msg)
    return cmd.run()


def test_open_shell_splits_registers_and_shows_pane(tmp_path) -> None:
    h = _open_detail(tmp_path)
    workdir = str(h.projects_dir / "demo" / "svc")

    opened = _run_one(h, OpenShell())

    assert isinstance(opened, PaneOpened)
    assert opened.kind is PaneKind.SHELL
    assert h.tmux.calls == [("split_pane", workdir)]
    h.send(opened)
    assert [p.pane_id for p in h.tracker.panes_for(ResourceKey.for_repo("svc"))] == [opened.pane_id]
    assert [p.id for p in h.state.detail.resources[0].panes] == [opened.pane_id]


def test_launch_agent_types_agent_command(tmp_path) -> None:
    h = _open_detail(tmp_path)

    opened = _run_one(h, LaunchAgent())

    assert opened.kind is PaneKind.AGENT
    assert h.tmux.calls[-1] == ("send_keys", opened.pane_id, f"{h.config.agent_command}\n")


def test_no_resource_selected(tmp_path) -> None:
    h = _open_detail(tmp_path, repos=())

    assert h.send(OpenShell()) == []

    assert h.state.status.text == "No resource selected"
    assert h.state.status.is_error
    assert h.tmux.calls == []


def test_pr_without_branch_is_refused(tmp_path) -> None:
    h = _open_detail(tmp_path, prs={"svc": [PRInfo(3, "no branch", "OPEN", "")]})
    h.state.detail.view.cursor = 1

    assert h.send(OpenShell()) == []

    assert h.state.status.text == "PR #3 has no branch name"
    assert h.tmux.calls == []


def test_pr_worktree_failure_becomes_error_status(tmp_path) -> None:
    h = _open_detail(tmp_path, prs={"svc": [PRInfo(3, "feature", "OPEN", "feat")]})
    h.state.detail.view.cursor = 1

    report = _run_one(h, OpenShell())
    h.send(report)

    assert h.state.status.is_error
    assert h.state.status.text.startswith("Open shell: source repo")
    assert h.tmux.calls == []


def test_ralph_needs_open_beads(tmp_path) -> None:
    h = _open_detail(tmp_path)

    assert h.send(LaunchRalph()) == []

    assert h.state.status.text == "No open beads for this resource"


def test_ralph_falls_back_to_agent_without_binary(tmp_path) -> None:
    bead = BeadInfo("bd-7", "Fix login", "open", "task")
    h = _open_detail(tmp_path, beads={"svc": [bead]})
    h.state.detail.view.cursor = 1
    assert h.state.detail.view.selected_bead() == bead

    opened = _run_one(h, LaunchRalph())
    h.send(opened)

    keys = h.tmux.calls[-1][2]
    assert keys.startswith(h.config.ralph_fallback_command + " '")
    assert "bd show bd-7" in keys
    assert h.state.status.text == "Ralph binary not found, using agent fallback"


def test_ralph_uses_binary_when_found(tmp_path) -> None:
    bead = BeadInfo("bd-1", "Epic", "open", "epic")
    h = _open_detail(tmp_path, beads={"svc": [bead]})
    h.services.which = lambda name: f"/usr/local/bin/{name}"
    h.state.detail.view.cursor = 1
    workdir = str(h.projects_dir / "demo" / "svc")

    opened = _run_one(h, LaunchRalph())
    h.send(opened)

    expected = f"/usr/local/bin/ralph --workdir {shlex.quote(workdir)} --max-parallel 3 --epic bd-1\n"
    assert h.tmux.calls[-1][2] == expected
    assert h.state.status.text == "Ralph loop launched"


def test_hide_and_show_target_latest_pane(tmp_path) -> None:
    h = _open_detail(tmp_path)
    h.send(_run_one(h, OpenShell()))
    latest = _run_one(h, LaunchAgent())
    h.send(latest)

    assert _run_one(h, HidePane()) is None
    assert h.tmux.calls[-1] == ("break_pane", latest.pane_id)
    assert _run_one(h, ShowPane()) is None
    assert h.tmux.calls[-1] == ("join_pane", latest.pane_id)


def test_hide_without_pane_is_a_plain_status(tmp_path) -> None:
    h = _open_detail(tmp_path)

    assert h.send(HidePane()) == []
    assert h.state.status.text == "No pane to hide"
    assert not h.state.status.is_error

    assert h.send(ShowPane()) == []
    assert h.state.status.text == "No pane to show"


def test_tmux_failure_on_hide_reports_error(tmp_path) -> None:
    h = _open_detail(tmp_path)
    h.send(_run_one(h, OpenShell()))
    h.tmux.fail_on.add("break_pane")

    report = _run_one(h, HidePane())
    h.send(report)

    assert h.state.status.is_error
    assert h.state.status.text == "Hide pane: tmux break_pane: boom"
