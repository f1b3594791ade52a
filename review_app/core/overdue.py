"""Overdue review helpers: which records breach the deadline and how badly."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from .models import IssueDurationRecord


class Severity(str, Enum):
    LATE = "late"  # past the review deadline, below the warning threshold
    WARNING = "warning"
    URGENT = "urgent"

    @property
    def marker(self) -> str:
        return SEVERITY_MARKERS[self]


SEVERITY_MARKERS: dict[Severity, str] = {
    Severity.LATE: "\u26a0\ufe0f",
    Severity.WARNING: "\U0001f6a8",
    Severity.URGENT: "\U0001f631",
}


def classify_severity(duration_days: float, warning_days: float, urgent_days: float) -> Severity:
    if duration_days < warning_days:
        return Severity.LATE
    if duration_days < urgent_days:
        return Severity.WARNING
    return Severity.URGENT


def select_overdue(records: Iterable[IssueDurationRecord], deadline_days: float) -> list[IssueDurationRecord]:
    """Assigned, non-pull-request records at or past ``deadline_days``.

    Records with a clock-skewed or unparseable entry time never qualify.
    Input order is preserved.
    """
    return [
        r
        for r in records
        if r.data_quality == "ok"
        and not r.snapshot.is_pull_request
        and r.snapshot.assignees
        and r.duration_days >= deadline_days
    ]
