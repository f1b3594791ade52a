from review_app.core.graphql_client import map_workspace_node
from review_app.core.mappers import in_scope, map_raw_to_snapshot, resolve_pipeline_entered_at
from review_app.core.models import (
    EnteredAtSource,
    IssuePipelineSnapshot,
    ItemKind,
    PersistedState,
    RawTrackerItem,
    RepoRef,
)

NOW_ISO = "2025-10-23T11:49:51Z"
REPO = RepoRef("org", "repo")


def _raw(pipeline="Review", transfer=None, kind=ItemKind.ISSUE, number=7) -> RawTrackerItem:
    return RawTrackerItem(
        issue_number=number,
        repo=REPO,
        title="Fix login",
        pipeline=pipeline,
        assignees=["alice"],
        transfer_time=transfer,
        created_at="2025-10-18T01:47:51Z",
        kind=kind,
    )


def _state_with(pipeline: str, entered: str, number: int = 7) -> PersistedState:
    snap = IssuePipelineSnapshot(
        issue_number=number,
        repo=REPO,
        title="Fix login",
        assignees=("alice",),
        pipeline=pipeline,
        pipeline_entered_at=entered,
        updated_at="2025-10-22T00:00:00Z",
        created_at="2025-10-18T01:47:51Z",
    )
    return PersistedState(issues={snap.key: snap}, last_run="2025-10-22T00:00:00Z")


class DummyDrafts:
    def __init__(self, value):
        self.value = value
        self.calls = []

    def get_pull_request_draft(self, repo, number):
        self.calls.append((repo, number))
        return self.value


def test_transfer_time_wins_over_state_and_updated():
    state = _state_with("Review", "2025-10-01T00:00:00Z")
    resolved = resolve_pipeline_entered_at(_raw(transfer="2025-10-22T05:55:22Z"), state, NOW_ISO)
    assert resolved == ("2025-10-22T05:55:22Z", EnteredAtSource.TRANSFER)


def test_state_used_when_same_pipeline():
    state = _state_with("Review", "2025-10-01T00:00:00Z")
    resolved = resolve_pipeline_entered_at(_raw(), state, NOW_ISO)
    assert resolved == ("2025-10-01T00:00:00Z", EnteredAtSource.STATE)


def test_state_ignored_when_pipeline_changed():
    state = _state_with("QA", "2025-10-01T00:00:00Z")
    resolved = resolve_pipeline_entered_at(_raw(), state, NOW_ISO)
    assert resolved == (NOW_ISO, EnteredAtSource.NOW)


def test_now_when_no_state():
    assert resolve_pipeline_entered_at(_raw(), None, NOW_ISO) == (NOW_ISO, EnteredAtSource.NOW)
    assert resolve_pipeline_entered_at(_raw(), PersistedState(), NOW_ISO) == (NOW_ISO, EnteredAtSource.NOW)


def test_strict_mode_drops_without_transfer_time():
    state = _state_with("Review", "2025-10-01T00:00:00Z")
    assert resolve_pipeline_entered_at(_raw(), state, NOW_ISO, strict=True) is None
    snap = map_raw_to_snapshot(_raw(), target_pipelines={"Review"}, state=state, now_iso=NOW_ISO, strict=True)
    assert snap is None


def test_strict_mode_keeps_transfer_time():
    snap = map_raw_to_snapshot(
        _raw(transfer="2025-10-22T05:55:22Z"), target_pipelines={"Review"}, state=None, now_iso=NOW_ISO, strict=True
    )
    assert snap is not None
    assert snap.pipeline_entered_at == "2025-10-22T05:55:22Z"


def test_scope_filter_is_exact_and_case_sensitive():
    assert in_scope("Review", ["Review", "QA"])
    assert not in_scope("review", ["Review", "QA"])
    assert not in_scope("Review ", ["Review"])
    assert not in_scope(None, ["Review"])
    snap = map_raw_to_snapshot(
        _raw(pipeline="Backlog", transfer="2025-10-22T05:55:22Z"),
        target_pipelines={"Review"},
        state=None,
        now_iso=NOW_ISO,
    )
    assert snap is None


def test_snapshot_fields():
    snap = map_raw_to_snapshot(_raw(transfer="2025-10-22T05:55:22Z"), target_pipelines={"Review"}, state=None, now_iso=NOW_ISO)
    assert snap.key == "org/repo#7"
    assert snap.updated_at == NOW_ISO
    assert snap.assignees == ("alice",)
    assert snap.is_draft is None
    assert snap.type_display == "Issue"
    assert snap.draft_display == "N/A"


def test_pull_request_enriched_with_draft_flag():
    drafts = DummyDrafts(True)
    snap = map_raw_to_snapshot(
        _raw(kind=ItemKind.PULL_REQUEST, transfer="2025-10-22T05:55:22Z"),
        target_pipelines={"Review"},
        state=None,
        now_iso=NOW_ISO,
        github=drafts,
    )
    assert drafts.calls == [(REPO, 7)]
    assert snap.is_draft is True
    assert snap.type_display == "Draft Pull Request"
    assert snap.github_url == "https://github.com/org/repo/pull/7"


def test_pull_request_with_unknown_draft():
    snap = map_raw_to_snapshot(
        _raw(kind=ItemKind.PULL_REQUEST, transfer="2025-10-22T05:55:22Z"),
        target_pipelines={"Review"},
        state=None,
        now_iso=NOW_ISO,
        github=DummyDrafts(None),
    )
    assert snap.is_draft is None
    assert snap.draft_display == "Unknown"
    assert snap.type_display == "Pull Request"


def test_issues_are_not_enriched():
    drafts = DummyDrafts(True)
    map_raw_to_snapshot(_raw(), target_pipelines={"Review"}, state=None, now_iso=NOW_ISO, github=drafts)
    assert drafts.calls == []


def test_map_workspace_node():
    node = {
        "id": "Z_1",
        "number": 42,
        "title": "Add cache",
        "type": "GithubIssue",
        "state": "OPEN",
        "createdAt": "2025-01-01T00:00:00Z",
        "pullRequest": True,
        "repository": {"name": "repo", "owner": {"login": "org"}},
        "assignees": {"nodes": [{"login": "bob"}, {"login": "carol"}]},
        "pipelineIssue": {"pipeline": {"name": "Review"}, "latestTransferTime": None},
    }
    raw = map_workspace_node(node)
    assert raw.key == "org/repo#42"
    assert raw.pipeline == "Review"
    assert raw.transfer_time is None
    assert raw.assignees == ["bob", "carol"]
    assert raw.kind is ItemKind.PULL_REQUEST


def test_map_workspace_node_without_pipeline():
    node = {"number": 1, "title": "x", "repository": {"name": "r", "owner": {"login": "o"}}, "pipelineIssue": None}
    raw = map_workspace_node(node)
    assert raw.pipeline is None
    assert raw.assignees == []


def test_map_workspace_node_skips_null_assignees():
    node = {
        "number": 2,
        "title": "x",
        "repository": {"name": "r", "owner": {"login": "o"}},
        "assignees": {"nodes": [None, {"login": "erin"}, {"login": None}]},
    }
    assert map_workspace_node(node).assignees == ["erin"]
