"""Domain data models for tracked items, pipeline snapshots, and persisted state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


@dataclass(frozen=True, slots=True)
class RepoRef:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(slots=True)
class TargetConfig:
    repository: RepoRef
    repo_id: int | None = None  # GitHub repository id, required by the REST board endpoints


def make_issue_key(repo: RepoRef, issue_number: int) -> str:
    return f"{repo.owner}/{repo.name}#{issue_number}"


class ItemKind(str, Enum):
    ISSUE = "issue"
    PULL_REQUEST = "pull_request"


class EnteredAtSource(str, Enum):
    """Which resolution step produced ``pipeline_entered_at``."""

    TRANSFER = "transfer"  # tracker-supplied transfer time or transition event
    STATE = "state"  # carried over from the previous run's snapshot
    NOW = "now"  # unknown; treated as just entered


@dataclass(slots=True)
class RawTrackerItem:
    """Tracker record normalized across the graph-query and REST adapters."""

    issue_number: int
    repo: RepoRef
    title: str
    pipeline: str | None
    assignees: list[str] = field(default_factory=list)
    transfer_time: str | None = None
    type: str = "ZenhubIssue"
    state: str = "OPEN"
    created_at: str | None = None
    kind: ItemKind = ItemKind.ISSUE

    @property
    def key(self) -> str:
        return make_issue_key(self.repo, self.issue_number)


@dataclass(frozen=True, slots=True)
class IssuePipelineSnapshot:
    issue_number: int
    repo: RepoRef
    title: str
    assignees: tuple[str, ...]
    pipeline: str
    pipeline_entered_at: str
    updated_at: str
    created_at: str
    state: str = "OPEN"
    type: str = "ZenhubIssue"
    kind: ItemKind = ItemKind.ISSUE
    is_draft: bool | None = None  # only meaningful for pull requests
    entered_at_source: EnteredAtSource = EnteredAtSource.TRANSFER

    @property
    def key(self) -> str:
        return make_issue_key(self.repo, self.issue_number)

    @property
    def is_pull_request(self) -> bool:
        return self.kind is ItemKind.PULL_REQUEST

    @property
    def type_display(self) -> str:
        if not self.is_pull_request:
            return "Issue"
        return "Draft Pull Request" if self.is_draft else "Pull Request"

    @property
    def draft_display(self) -> str:
        if not self.is_pull_request:
            return "N/A"
        if self.is_draft is True:
            return "Draft"
        if self.is_draft is False:
            return "Ready"
        return "Unknown"

    @property
    def assignees_display(self) -> str:
        return ", ".join(self.assignees) if self.assignees else "Unassigned"

    @property
    def github_url(self) -> str:
        segment = "pull" if self.is_pull_request else "issues"
        return f"https://github.com/{self.repo.owner}/{self.repo.name}/{segment}/{self.issue_number}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "issueNumber": self.issue_number,
            "repo": {"owner": self.repo.owner, "name": self.repo.name},
            "title": self.title,
            "assignees": list(self.assignees),
            "pipeline": self.pipeline,
            "pipelineEnteredAt": self.pipeline_entered_at,
            "updatedAt": self.updated_at,
            "createdAt": self.created_at,
            "state": self.state,
            "type": self.type,
            "isPullRequest": self.is_pull_request,
            "isDraft": self.is_draft,
            "enteredAtSource": self.entered_at_source.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IssuePipelineSnapshot:
        repo = data.get("repo") or {}
        source = data.get("enteredAtSource") or EnteredAtSource.TRANSFER.value
        return cls(
            issue_number=int(data["issueNumber"]),
            repo=RepoRef(owner=repo.get("owner", ""), name=repo.get("name", "")),
            title=data.get("title") or "",
            assignees=tuple(data.get("assignees") or ()),
            pipeline=data.get("pipeline") or "",
            pipeline_entered_at=data.get("pipelineEnteredAt") or "",
            updated_at=data.get("updatedAt") or "",
            created_at=data.get("createdAt") or "",
            state=data.get("state") or "OPEN",
            type=data.get("type") or "ZenhubIssue",
            kind=ItemKind.PULL_REQUEST if data.get("isPullRequest") else ItemKind.ISSUE,
            is_draft=data.get("isDraft"),
            entered_at_source=EnteredAtSource(source),
        )


@dataclass(frozen=True, slots=True)
class IssueDurationRecord:
    snapshot: IssuePipelineSnapshot
    duration_ms: float
    duration_minutes: float
    duration_hours: float
    duration_human: str
    data_quality: str = "ok"  # ok | clock_skew | invalid_timestamp
    pipeline_entered_local: str = ""

    @property
    def duration_days(self) -> float:
        return self.duration_hours / 24

    def to_row(self) -> dict[str, Any]:
        """Flatten into the output dataset row shape."""
        s = self.snapshot
        row = s.to_dict()
        row["repo"] = s.repo.full_name
        row["assignees"] = ", ".join(s.assignees)
        row.update(
            {
                "key": s.key,
                "durationMs": self.duration_ms,
                "durationMinutes": self.duration_minutes,
                "durationHours": self.duration_hours,
                "durationHuman": self.duration_human,
                "assigneesCount": len(s.assignees),
                "assigneesDisplay": s.assignees_display,
                "typeDisplay": s.type_display,
                "draftDisplay": s.draft_display,
                "githubUrl": s.github_url,
                "pipelineEnteredLocal": self.pipeline_entered_local,
                "dataQuality": self.data_quality,
            }
        )
        return row


@dataclass(slots=True)
class PersistedState:
    issues: dict[str, IssuePipelineSnapshot] = field(default_factory=dict)
    last_run: str | None = None
    schema_version: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "issues": {k: v.to_dict() for k, v in self.issues.items()},
            "lastRun": self.last_run,
            "schemaVersion": self.schema_version,
        }


def to_iso_utc(value: datetime) -> str:
    """ISO-8601 in UTC with a ``Z`` suffix; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")
