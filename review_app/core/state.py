"""Persisted cross-run state: last-known pipeline snapshot per issue key.

The store is read once at the start of a run and written once at the end.
Writes go through a temp file and ``os.replace`` so an interrupted run never
leaves a truncated state file behind.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from .config import CURRENT_STATE_SCHEMA_VERSION
from .models import IssuePipelineSnapshot, PersistedState, RepoRef, make_issue_key, to_iso_utc

logger = logging.getLogger(__name__)


def empty_state() -> PersistedState:
    return PersistedState(issues={}, last_run=None, schema_version=CURRENT_STATE_SCHEMA_VERSION)


def state_from_dict(data: dict) -> PersistedState:
    version = data.get("schemaVersion")
    if version != CURRENT_STATE_SCHEMA_VERSION:
        logger.warning("Discarding persisted state with schemaVersion=%s (expected %s)", version, CURRENT_STATE_SCHEMA_VERSION)
        return empty_state()
    issues: dict[str, IssuePipelineSnapshot] = {}
    for key, raw in (data.get("issues") or {}).items():
        try:
            issues[key] = IssuePipelineSnapshot.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping unreadable state entry %s: %s", key, exc)
    return PersistedState(issues=issues, last_run=data.get("lastRun"), schema_version=CURRENT_STATE_SCHEMA_VERSION)


def find_existing(state: PersistedState, repo: RepoRef, issue_number: int) -> IssuePipelineSnapshot | None:
    return state.issues.get(make_issue_key(repo, issue_number))


def update_state(
    prev: PersistedState,
    snapshots: Iterable[IssuePipelineSnapshot],
    *,
    now_iso: str | None = None,
) -> PersistedState:
    """Return a new state with ``snapshots`` overlaid on ``prev``.

    Keys absent from ``snapshots`` are carried over untouched; ``prev`` is not
    mutated.
    """
    issues = dict(prev.issues)
    for snap in snapshots:
        issues[snap.key] = snap
    last_run = now_iso or to_iso_utc(datetime.now(UTC))
    return PersistedState(issues=issues, last_run=last_run, schema_version=CURRENT_STATE_SCHEMA_VERSION)


class StateStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> PersistedState:
        if not self.path.exists():
            logger.info("No persisted state at %s; starting fresh", self.path)
            return empty_state()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Persisted state at %s is unreadable (%s); starting fresh", self.path, exc)
            return empty_state()
        if not isinstance(data, dict):
            logger.error("Persisted state at %s is not an object; starting fresh", self.path)
            return empty_state()
        state = state_from_dict(data)
        logger.info("Loaded persisted state with %s issues (last run %s)", len(state.issues), state.last_run)
        return state

    def save(self, state: PersistedState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(state.to_dict(), fh, indent=2, ensure_ascii=False)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except OSError:
            if tmp_path.exists():
                tmp_path.unlink()
            raise
        logger.info("Saved persisted state with %s issues to %s", len(state.issues), self.path)
