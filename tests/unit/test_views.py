"""Unit tests for the dashboard and detail view models."""

import pytest

from devdeploy.project.models import BeadInfo, PRInfo, ProjectSummary, Resource
from devdeploy.tui.views import DashboardView, DetailItem, DetailView

pytestmark = pytest.mark.unit


def _detail() -> DetailView:
    svc = Resource.repo("svc", "/p/svc")
    svc.beads = [BeadInfo("bd-1", "Login bug", "open"), BeadInfo("bd-2", "Search", "open")]
    pr = Resource.pull_request("svc", PRInfo(8, "Add metrics", "OPEN", "metrics"))
    web = Resource.repo("web", "/p/web")
    view = DetailView()
    view.set_resources([svc, pr, web])
    return view


def test_dashboard_cursor_is_clamped() -> None:
    view = DashboardView()
    view.set_projects([ProjectSummary("a", 0), ProjectSummary("b", 1)])

    view.handle_key("k")
    assert view.selected == 0
    view.handle_key("G")
    view.handle_key("j")
    assert view.selected == 1
    assert view.selected_project().name == "b"


def test_dashboard_selection_resets_when_out_of_range() -> None:
    view = DashboardView()
    view.set_projects([ProjectSummary("a", 0), ProjectSummary("b", 0), ProjectSummary("c", 0)])
    view.selected = 2

    view.set_projects([ProjectSummary("a", 0)])

    assert view.selected == 0


def test_detail_rows_interleave_beads() -> None:
    view = _detail()

    assert view.items == [DetailItem(0), DetailItem(0, 0), DetailItem(0, 1), DetailItem(1), DetailItem(2)]


def test_detail_selection_on_bead_row_resolves_resource() -> None:
    view = _detail()
    view.handle_key("j")
    view.handle_key("j")

    assert view.selected_resource().repo_name == "svc"
    assert view.selected_bead().id == "bd-2"

    view.handle_key("j")
    assert view.selected_resource().pr.number == 8
    assert view.selected_bead() is None


def test_filter_matches_pr_titles_and_beads() -> None:
    view = _detail()
    view.handle_key("/")
    for ch in "metrics":
        view.handle_key(ch, ch)

    assert view.items == [DetailItem(1)]

    view.handle_key("esc")
    assert len(view.items) == 5


def test_filter_on_bead_keeps_parent_row() -> None:
    view = _detail()
    view.handle_key("/")
    for ch in "login":
        view.handle_key(ch, ch)
    view.handle_key("enter")

    assert not view.is_filtering()
    assert view.filter_text == "login"
    assert view.items == [DetailItem(0), DetailItem(0, 0)]


def test_filter_backspace_and_ignored_keys() -> None:
    view = _detail()
    view.handle_key("/")
    view.handle_key("w", "w")
    view.handle_key("x", "x")
    view.handle_key("backspace")
    view.handle_key("down")

    assert view.filter_text == "w"
    assert view.is_filtering()


def test_rebuild_keeps_cursor_on_same_row() -> None:
    view = _detail()
    view.handle_key("G")
    assert view.selected_resource().repo_name == "web"

    view.resources[0].beads = []
    view.rebuild()

    assert view.selected_resource().repo_name == "web"


def test_unhandled_key_reports_false() -> None:
    view = _detail()

    assert view.handle_key("x", "x") is False
    assert view.handle_key("j", "j") is True
