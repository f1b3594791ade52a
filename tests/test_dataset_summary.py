import json
import logging
from datetime import UTC, datetime

import pandas as pd

from review_app.analytics.aggregations.summary import (
    aggregate_by_assignee,
    assignees_involved,
    log_run_summary,
    summarize,
)
from review_app.analytics.metrics.durations import resolve_durations
from review_app.core.models import IssuePipelineSnapshot, ItemKind, RepoRef
from review_app.output.dataset import write_dataset

NOW = datetime(2025, 1, 5, 15, 0, tzinfo=UTC)


def _snap(number, entered, assignees=("alice",), kind=ItemKind.ISSUE, is_draft=None):
    return IssuePipelineSnapshot(
        issue_number=number,
        repo=RepoRef("org", "repo"),
        title=f"Item {number}",
        assignees=tuple(assignees),
        pipeline="Review",
        pipeline_entered_at=entered,
        updated_at="2025-01-05T15:00:00Z",
        created_at="2025-01-01T00:00:00Z",
        kind=kind,
        is_draft=is_draft,
    )


def _sample_records():
    snaps = [
        _snap(1, "2025-01-05T10:00:00Z", ("alice", "bob")),
        _snap(2, "2025-01-02T15:00:00Z", ("bob",), ItemKind.PULL_REQUEST, True),
        _snap(3, "2025-01-04T15:00:00Z", (), ItemKind.PULL_REQUEST, False),
        _snap(4, "2025-01-05T14:00:00Z", (), ItemKind.PULL_REQUEST, None),
    ]
    return resolve_durations(snaps, NOW, {"Review"}, display_timezone="America/Santiago")


def test_summarize_counts():
    summary = summarize(_sample_records())
    assert (summary.issues, summary.pull_requests) == (1, 3)
    assert (summary.draft_prs, summary.ready_prs, summary.unknown_prs) == (1, 1, 1)
    assert (summary.assigned, summary.unassigned) == (2, 2)
    assert summary.type_line() == "1 issues, 3 pull requests (1 draft, 1 ready, 1 unknown)"
    assert summary.assignment_line() == "2 assigned, 2 unassigned"


def test_assignees_in_first_seen_order():
    assert assignees_involved(_sample_records()) == ["bob", "alice"]


def test_aggregate_by_assignee():
    agg = aggregate_by_assignee(_sample_records())
    assert agg.iloc[0]["assignee"] == "bob"
    assert int(agg.set_index("assignee").loc["bob", "items"]) == 2
    assert int(agg.set_index("assignee").loc["Unassigned", "items"]) == 2
    assert aggregate_by_assignee([]).empty


def test_log_run_summary(caplog):
    with caplog.at_level(logging.INFO):
        summary = log_run_summary(_sample_records(), "1 workspaces")
    assert summary.total == 4
    assert "Collected 4 issues across 1 workspaces." in caplog.text
    assert "Longest: org/repo#2" in caplog.text


def test_write_json_dataset(tmp_path):
    path = write_dataset(_sample_records(), tmp_path / "out" / "dataset.json")
    rows = json.loads(path.read_text(encoding="utf-8"))
    assert [r["issueNumber"] for r in rows] == [2, 3, 1, 4]
    assert rows[0]["typeDisplay"] == "Draft Pull Request"
    assert rows[0]["githubUrl"] == "https://github.com/org/repo/pull/2"
    assert rows[1]["assigneesDisplay"] == "Unassigned"
    assert rows[0]["pipelineEnteredLocal"].startswith("2025-01-02 12:00")


def test_write_csv_dataset(tmp_path):
    path = write_dataset(_sample_records(), tmp_path / "dataset.csv")
    df = pd.read_csv(path)
    assert list(df.columns[:3]) == ["key", "repo", "issueNumber"]
    assert len(df) == 4
