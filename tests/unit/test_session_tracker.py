"""Unit tests for the pane tracker."""

import pytest

from devdeploy.session.tracker import PaneKind, ResourceKey, SessionTracker, TrackedPane, pane_label

pytestmark = pytest.mark.unit


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        self.now += 1.0
        return self.now


def test_resource_key_round_trips_through_str() -> None:
    assert str(ResourceKey.for_repo("svc")) == "repo:svc"
    assert str(ResourceKey.for_pr("svc", 12)) == "pr:svc:#12"
    assert ResourceKey.parse("pr:svc:#12") == ResourceKey.for_pr("svc", 12)
    assert ResourceKey.parse("repo:svc") == ResourceKey.for_repo("svc")


def test_resource_key_parse_rejects_garbage() -> None:
    with pytest.raises(ValueError, match="invalid resource key"):
        ResourceKey.parse("branch:svc")


def test_pane_label_depends_only_on_key_and_kind() -> None:
    pr_pane = TrackedPane("%3", ResourceKey.for_pr("api", 42), PaneKind.AGENT, 1.0)
    repo_pane = TrackedPane("%4", ResourceKey.for_repo("api"), PaneKind.SHELL, 2.0)

    assert pane_label(pr_pane) == "api-pr-42 (agent)"
    assert pane_label(repo_pane) == "api (shell)"


def test_unregister_all_returns_removed_panes() -> None:
    tracker = SessionTracker(clock=_Clock())
    key = ResourceKey.for_repo("svc")
    tracker.register(key, "%1", PaneKind.SHELL)
    tracker.register(key, "%2", PaneKind.AGENT)
    tracker.register(ResourceKey.for_repo("web"), "%3", PaneKind.SHELL)

    removed = tracker.unregister_all(key)

    assert [p.pane_id for p in removed] == ["%1", "%2"]
    assert tracker.panes_for(key) == []
    assert tracker.count() == 1


def test_count_for_splits_shells_and_agents() -> None:
    tracker = SessionTracker(clock=_Clock())
    key = ResourceKey.for_pr("svc", 3)
    tracker.register(key, "%1", PaneKind.SHELL)
    tracker.register(key, "%2", PaneKind.AGENT)
    tracker.register(key, "%3", PaneKind.AGENT)

    assert tracker.count_for(key) == (1, 2)


def test_prune_drops_panes_the_oracle_no_longer_reports() -> None:
    live = {"%1", "%2"}
    tracker = SessionTracker(liveness=lambda: set(live), clock=_Clock())
    tracker.register(ResourceKey.for_repo("svc"), "%1", PaneKind.SHELL)
    tracker.register(ResourceKey.for_repo("svc"), "%2", PaneKind.AGENT)

    live.discard("%2")

    assert tracker.prune() == 1
    assert [p.pane_id for p in tracker.all_panes()] == ["%1"]


def test_prune_without_oracle_is_noop() -> None:
    tracker = SessionTracker(clock=_Clock())
    tracker.register(ResourceKey.for_repo("svc"), "%1", PaneKind.SHELL)

    assert tracker.prune() == 0
    assert tracker.count() == 1


def test_prune_propagates_oracle_errors() -> None:
    def broken() -> set[str]:
        raise RuntimeError("no server running")

    tracker = SessionTracker(liveness=broken, clock=_Clock())
    with pytest.raises(RuntimeError):
        tracker.prune()


def test_ordered_panes_puts_repos_before_prs_oldest_first() -> None:
    tracker = SessionTracker(clock=_Clock())
    tracker.register(ResourceKey.for_pr("svc", 1), "%pr-old", PaneKind.AGENT)
    tracker.register(ResourceKey.for_repo("web"), "%web", PaneKind.SHELL)
    tracker.register(ResourceKey.for_pr("svc", 2), "%pr-new", PaneKind.SHELL)
    tracker.register(ResourceKey.for_repo("api"), "%api", PaneKind.SHELL)

    ordered = [p.pane_id for p in tracker.ordered_panes()]

    assert ordered == ["%web", "%api", "%pr-old", "%pr-new"]
    assert [p.pane_id for p in tracker.ordered_panes()] == ordered


def test_ordered_panes_caps_at_nine() -> None:
    tracker = SessionTracker(clock=_Clock())
    for i in range(12):
        tracker.register(ResourceKey.for_repo(f"r{i}"), f"%{i}", PaneKind.SHELL)

    ordered = tracker.ordered_panes()

    assert len(ordered) == 9
    assert ordered[0].pane_id == "%0"
    assert ordered[-1].pane_id == "%8"


def test_pane_infos_mark_agents() -> None:
    tracker = SessionTracker(clock=_Clock())
    key = ResourceKey.for_repo("svc")
    tracker.register(key, "%1", PaneKind.SHELL)
    tracker.register(key, "%2", PaneKind.AGENT)

    infos = tracker.pane_infos(key)

    assert [(i.id, i.is_agent) for i in infos] == [("%1", False), ("%2", True)]
