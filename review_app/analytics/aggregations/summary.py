"""Type, assignment, and assignee aggregations over duration records."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import pandas as pd

from review_app.analytics.metrics.durations import records_to_dataframe
from review_app.core.column_config import get_columns
from review_app.core.models import IssueDurationRecord, make_issue_key

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunSummary:
    issues: int = 0
    pull_requests: int = 0
    draft_prs: int = 0
    ready_prs: int = 0
    unknown_prs: int = 0
    assigned: int = 0
    unassigned: int = 0

    @property
    def total(self) -> int:
        return self.issues + self.pull_requests

    def type_line(self) -> str:
        pr = f"{self.pull_requests} pull requests ({self.draft_prs} draft, {self.ready_prs} ready"
        if self.unknown_prs:
            pr += f", {self.unknown_prs} unknown"
        return f"{self.issues} issues, {pr})"

    def assignment_line(self) -> str:
        return f"{self.assigned} assigned, {self.unassigned} unassigned"


def summarize(records: Sequence[IssueDurationRecord]) -> RunSummary:
    out = RunSummary()
    for r in records:
        s = r.snapshot
        if s.is_pull_request:
            out.pull_requests += 1
            if s.is_draft is True:
                out.draft_prs += 1
            elif s.is_draft is False:
                out.ready_prs += 1
            else:
                out.unknown_prs += 1
        else:
            out.issues += 1
        if s.assignees:
            out.assigned += 1
        else:
            out.unassigned += 1
    return out


def assignees_involved(records: Sequence[IssueDurationRecord]) -> list[str]:
    seen: dict[str, None] = {}
    for r in records:
        for a in r.snapshot.assignees:
            seen.setdefault(a, None)
    return list(seen)


def aggregate_by_assignee(records: Sequence[IssueDurationRecord]) -> pd.DataFrame:
    """Items and longest wait (hours) per assignee; unassigned rows grouped together."""
    if not records:
        return pd.DataFrame(columns=["assignee", "items", "max_hours"])
    rows = []
    for r in records:
        for a in r.snapshot.assignees or ("Unassigned",):
            rows.append({"assignee": a, "key": r.snapshot.key, "hours": r.duration_hours})
    df = pd.DataFrame(rows)
    agg = (
        df.groupby("assignee", dropna=False)
        .agg(items=("key", "count"), max_hours=("hours", "max"))
        .sort_values(by=["max_hours", "items"], ascending=False)
    )
    return agg.reset_index()


def log_run_summary(records: Sequence[IssueDurationRecord], scope: str) -> RunSummary:
    summary = summarize(records)
    logger.info("Collected %s issues across %s.", len(records), scope)
    if records:
        table = records_to_dataframe(records)
        cols = [c for c in get_columns("summary") if c in table.columns]
        logger.info("Items in target pipelines:\n%s", table[cols].to_string(index=False))
        top = records[0]
        logger.info(
            "Longest: %s (%s) in %s for %s (assigned: %s)",
            make_issue_key(top.snapshot.repo, top.snapshot.issue_number),
            top.snapshot.type_display,
            top.snapshot.pipeline,
            top.duration_human,
            top.snapshot.assignees_display,
        )
    logger.info("Type summary: %s", summary.type_line())
    logger.info("Assignment summary: %s", summary.assignment_line())
    if summary.assigned:
        logger.info("Assignees involved: %s", ", ".join(assignees_involved(records)))
        logger.debug("Per-assignee load:\n%s", aggregate_by_assignee(records).to_string(index=False))
    return summary
