"""Unit tests for the gh-backed PR source."""

import json
from unittest.mock import patch

import pytest

from devdeploy.project.github import GitHubError, PRSource, merge_prs
from devdeploy.project.models import PRInfo

pytestmark = pytest.mark.unit


def _pr(number: int, title: str = "") -> PRInfo:
    return PRInfo(number=number, title=title or f"PR {number}", state="OPEN")


def test_merge_prs_dedups_first_wins() -> None:
    merged = merge_prs([_pr(1, "mine"), _pr(2)], [_pr(1, "team"), _pr(3)])

    assert [(p.number, p.title) for p in merged] == [(1, "mine"), (2, "PR 2"), (3, "PR 3")]


def test_pr_info_from_gh_json() -> None:
    pr = PRInfo.from_json(
        {"number": 9, "title": "Fix", "state": "MERGED", "headRefName": "fix-9", "mergedAt": "2024-05-01T10:00:00Z"}
    )

    assert pr.number == 9
    assert pr.head_ref_name == "fix-9"
    assert pr.merged_at is not None and pr.merged_at.tzinfo is not None


def test_list_prs_builds_gh_arguments() -> None:
    source = PRSource()
    with patch.object(source, "_run_gh", return_value=json.dumps([{"number": 4, "title": "x"}])) as mock_gh:
        prs = source.list_prs("/wt", "merged", 5, "--author", "@me")

    assert [p.number for p in prs] == [4]
    assert mock_gh.call_args.args == (
        "/wt",
        "pr",
        "list",
        "--json",
        "number,title,state,headRefName,mergedAt",
        "--state",
        "merged",
        "--limit",
        "5",
        "--author",
        "@me",
    )


def test_list_filtered_merges_mine_and_team_and_caches() -> None:
    source = PRSource(review_team="core", ttl_s=60)

    def fake_list(path, state, limit, *extra):
        return [_pr(1), _pr(2)] if "--author" in extra else [_pr(2), _pr(3)]

    with (
        patch.object(source, "list_prs", side_effect=fake_list) as mock_list,
        patch.object(source, "repo_owner", return_value="acme"),
    ):
        first = source.list_filtered("/wt", "open", 30)
        second = source.list_filtered("/wt", "open", 30)

    assert [p.number for p in first] == [1, 2, 3]
    assert second == first
    assert mock_list.call_count == 2
    assert mock_list.call_args_list[1].args[-1] == "team-review-requested:acme/core"


def test_list_filtered_raises_only_when_both_queries_fail() -> None:
    source = PRSource(review_team="")
    with patch.object(source, "list_prs", side_effect=GitHubError("not logged in")):
        with pytest.raises(GitHubError, match="not logged in"):
            source.list_filtered("/wt", "open", 30)


def test_list_filtered_survives_failing_mine_query_when_team_succeeds() -> None:
    source = PRSource(review_team="core")

    def fake_list(path, state, limit, *extra):
        if "--author" in extra:
            raise GitHubError("rate limited")
        return [_pr(7)]

    with (
        patch.object(source, "list_prs", side_effect=fake_list),
        patch.object(source, "repo_owner", return_value="acme"),
    ):
        assert [p.number for p in source.list_filtered("/wt", "open", 30)] == [7]


def test_clear_by_prefix() -> None:
    source = PRSource(review_team="", ttl_s=60)
    with patch.object(source, "list_prs", return_value=[_pr(1)]) as mock_list:
        source.list_filtered("/p/demo/svc", "open", 30)
        source.list_filtered("/p/other/svc", "open", 30)
        source.clear("/p/demo")
        source.list_filtered("/p/demo/svc", "open", 30)
        source.list_filtered("/p/other/svc", "open", 30)

    assert mock_list.call_count == 3


@pytest.mark.parametrize(
    "payload",
    [
        [{"number": 3, "title": "x", "state": "MERGED", "mergedAt": "not-a-date"}],
        [{"number": None, "title": "x"}],
        ["not-an-object"],
    ],
)
def test_list_prs_reports_malformed_entries_as_gh_errors(payload) -> None:
    source = PRSource()
    with patch.object(source, "_run_gh", return_value=json.dumps(payload)):
        with pytest.raises(GitHubError, match="invalid PR data"):
            source.list_prs("/wt", "merged", 5)
