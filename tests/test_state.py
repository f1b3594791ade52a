import json

from review_app.core.config import CURRENT_STATE_SCHEMA_VERSION
from review_app.core.models import EnteredAtSource, IssuePipelineSnapshot, ItemKind, PersistedState, RepoRef
from review_app.core.state import StateStore, empty_state, find_existing, update_state


def _snap(number: int, pipeline: str = "Review", entered: str = "2025-01-01T00:00:00Z") -> IssuePipelineSnapshot:
    return IssuePipelineSnapshot(
        issue_number=number,
        repo=RepoRef("o", "r"),
        title="Test",
        assignees=(),
        pipeline=pipeline,
        pipeline_entered_at=entered,
        updated_at="2025-01-02T00:00:00Z",
        created_at="2024-12-31T00:00:00Z",
    )


def test_adds_snapshot_and_updates_last_run():
    prev = empty_state()
    nxt = update_state(prev, [_snap(1)])
    assert len(nxt.issues) == 1
    assert nxt.last_run is not None
    assert nxt.schema_version == CURRENT_STATE_SCHEMA_VERSION


def test_update_is_additive_and_pure():
    prev = update_state(empty_state(), [_snap(1), _snap(2)], now_iso="2025-01-01T00:00:00Z")
    nxt = update_state(prev, [_snap(3)], now_iso="2025-01-02T00:00:00Z")
    assert set(nxt.issues) == {"o/r#1", "o/r#2", "o/r#3"}
    assert len(prev.issues) == 2
    assert prev.last_run == "2025-01-01T00:00:00Z"
    assert nxt.last_run == "2025-01-02T00:00:00Z"


def test_update_overwrites_existing_key_without_growing():
    prev = update_state(empty_state(), [_snap(1, "Review")])
    nxt = update_state(prev, [_snap(1, "QA", "2025-02-01T00:00:00Z")])
    assert len(nxt.issues) == len(prev.issues)
    assert nxt.issues["o/r#1"].pipeline == "QA"
    assert prev.issues["o/r#1"].pipeline == "Review"


def test_find_existing():
    state = update_state(empty_state(), [_snap(5)])
    assert find_existing(state, RepoRef("o", "r"), 5).issue_number == 5
    assert find_existing(state, RepoRef("o", "r"), 6) is None
    assert find_existing(state, RepoRef("o", "other"), 5) is None


def test_load_missing_file_returns_empty(tmp_path):
    state = StateStore(tmp_path / "missing.json").load()
    assert state.issues == {}
    assert state.last_run is None


def test_save_then_load(tmp_path):
    store = StateStore(tmp_path / "nested" / "state.json")
    pr = IssuePipelineSnapshot(
        issue_number=9,
        repo=RepoRef("o", "r"),
        title="PR",
        assignees=("bob",),
        pipeline="QA",
        pipeline_entered_at="2025-01-03T00:00:00Z",
        updated_at="2025-01-04T00:00:00Z",
        created_at="2025-01-01T00:00:00Z",
        kind=ItemKind.PULL_REQUEST,
        is_draft=False,
        entered_at_source=EnteredAtSource.STATE,
    )
    state = update_state(empty_state(), [_snap(1), pr], now_iso="2025-01-04T00:00:00Z")
    store.save(state)

    raw = json.loads((tmp_path / "nested" / "state.json").read_text())
    assert set(raw) == {"issues", "lastRun", "schemaVersion"}
    assert raw["issues"]["o/r#9"]["isPullRequest"] is True

    loaded = store.load()
    assert loaded.last_run == "2025-01-04T00:00:00Z"
    assert loaded.issues["o/r#9"] == pr
    assert loaded.issues["o/r#1"] == _snap(1)
    assert not (tmp_path / "nested" / "state.json.tmp").exists()


def test_load_discards_other_schema_version(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"issues": {"o/r#1": _snap(1).to_dict()}, "lastRun": None, "schemaVersion": 99}))
    assert StateStore(path).load().issues == {}


def test_load_corrupt_file_returns_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json")
    state = StateStore(path).load()
    assert isinstance(state, PersistedState)
    assert state.issues == {}
