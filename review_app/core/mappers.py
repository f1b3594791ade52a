"""Mapping raw tracker records into IssuePipelineSnapshot instances."""

from __future__ import annotations

import logging
from collections.abc import Collection
from typing import Protocol

from .models import EnteredAtSource, IssuePipelineSnapshot, ItemKind, PersistedState, RawTrackerItem
from .state import find_existing

logger = logging.getLogger(__name__)


class DraftLookup(Protocol):
    def get_pull_request_draft(self, repo, number: int) -> bool | None: ...


def in_scope(pipeline: str | None, target_pipelines: Collection[str]) -> bool:
    """Exact, case-sensitive membership test against the configured stages."""
    return bool(pipeline) and pipeline in target_pipelines


def resolve_pipeline_entered_at(
    raw: RawTrackerItem,
    state: PersistedState | None,
    now_iso: str,
    *,
    strict: bool = False,
) -> tuple[str, EnteredAtSource] | None:
    """Best estimate of when ``raw`` entered its current pipeline.

    Priority: the tracker's own transfer time, then the previous run's
    snapshot when it recorded the same pipeline, then ``now_iso``. In strict
    mode only the tracker's transfer time is accepted; ``None`` means drop.
    """
    if raw.transfer_time:
        return raw.transfer_time, EnteredAtSource.TRANSFER
    if strict:
        return None
    previous = find_existing(state, raw.repo, raw.issue_number) if state is not None else None
    if previous is not None and previous.pipeline == raw.pipeline and previous.pipeline_entered_at:
        return previous.pipeline_entered_at, EnteredAtSource.STATE
    return now_iso, EnteredAtSource.NOW


def map_raw_to_snapshot(
    raw: RawTrackerItem,
    *,
    target_pipelines: Collection[str],
    state: PersistedState | None,
    now_iso: str,
    strict: bool = False,
    github: DraftLookup | None = None,
) -> IssuePipelineSnapshot | None:
    """Build a snapshot for one in-scope item, or None when it is filtered out."""
    if not in_scope(raw.pipeline, target_pipelines):
        logger.debug("Skipping %s - pipeline %r not targeted", raw.key, raw.pipeline)
        return None

    resolved = resolve_pipeline_entered_at(raw, state, now_iso, strict=strict)
    if resolved is None:
        logger.debug("Skipping %s - strict mode and no pipeline transfer timestamp", raw.key)
        return None
    entered_at, source = resolved
    if source is EnteredAtSource.TRANSFER:
        logger.info("%s entered pipeline %r at %s", raw.key, raw.pipeline, entered_at)
    elif source is EnteredAtSource.STATE:
        logger.info("%s has no transfer time; reusing %s from persisted state", raw.key, entered_at)
    else:
        logger.warning("No transfer time or prior state for %s in pipeline %r; using now", raw.key, raw.pipeline)

    is_draft: bool | None = None
    if raw.kind is ItemKind.PULL_REQUEST and github is not None:
        is_draft = github.get_pull_request_draft(raw.repo, raw.issue_number)

    return IssuePipelineSnapshot(
        issue_number=raw.issue_number,
        repo=raw.repo,
        title=raw.title,
        assignees=tuple(raw.assignees),
        pipeline=raw.pipeline,
        pipeline_entered_at=entered_at,
        updated_at=now_iso,
        created_at=raw.created_at or now_iso,
        state=raw.state,
        type=raw.type,
        kind=raw.kind,
        is_draft=is_draft,
        entered_at_source=source,
    )
