"""ZenHub REST client: repository boards and per-issue pipeline events."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

import requests

from .config import TRACKER_MAX_ATTEMPTS, USER_AGENT
from .http import RetryPolicy, decode_json, request_with_retry
from .models import RawTrackerItem, RepoRef

logger = logging.getLogger(__name__)

TRANSFER_EVENT_TYPES: frozenset[str] = frozenset({"transferIssue", "pipeline:transfer"})


class ZenHubREST:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        session: requests.Session | None = None,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.policy = policy or RetryPolicy(max_attempts=TRACKER_MAX_ATTEMPTS)
        self._sleep = sleep

    def _get(self, path: str) -> Any:
        response = request_with_retry(
            self.session,
            "GET",
            f"{self.base_url}{path}",
            policy=self.policy,
            sleep=self._sleep,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            },
        )
        return decode_json(response)

    def get_board(self, repo_id: int) -> dict[str, Any]:
        return self._get(f"/v2/repositories/{repo_id}/board")

    def list_issue_events(self, repo_id: int, issue_number: int) -> list[dict[str, Any]]:
        events = self._get(f"/v2/repositories/{repo_id}/issues/{issue_number}/events")
        return events if isinstance(events, list) else []

    def list_board_issues(self, repo: RepoRef, repo_id: int | None) -> list[RawTrackerItem]:
        if not repo_id:
            logger.warning("Missing repo_id for %s; returning empty issue list.", repo.full_name)
            return []
        return extract_issues_from_board(repo, self.get_board(repo_id))


def _assignee_login(value: Any) -> str | None:
    if isinstance(value, dict):
        return value.get("login") or value.get("username")
    if isinstance(value, str):
        return value
    return None


def extract_issues_from_board(repo: RepoRef, board: Any) -> list[RawTrackerItem]:
    """Flatten a board payload (pipelines -> issues) into raw tracker items.

    Entries without an integer issue number are dropped.
    """
    if not isinstance(board, dict) or not isinstance(board.get("pipelines"), list):
        return []
    out: list[RawTrackerItem] = []
    for pipe in board["pipelines"]:
        if not isinstance(pipe, dict):
            continue
        issues = pipe.get("issues")
        if not isinstance(issues, list):
            continue
        for iss in issues:
            if not isinstance(iss, dict):
                continue
            gh = iss.get("githubIssue")
            if not isinstance(gh, dict):
                gh = {}
            number = iss.get("number", iss.get("issue_number", gh.get("number")))
            if not isinstance(number, int) or isinstance(number, bool):
                continue
            raw_assignees = iss.get("assignees") or gh.get("assignees") or []
            assignees = [login for login in (_assignee_login(a) for a in raw_assignees) if login]
            out.append(
                RawTrackerItem(
                    issue_number=number,
                    repo=repo,
                    title=iss.get("title") or gh.get("title") or "Unknown",
                    pipeline=pipe.get("name"),
                    assignees=assignees,
                )
            )
    return out


def extract_pipeline_entered_at(events: Sequence[dict[str, Any]], target_pipeline: str) -> str | None:
    """Return the time of the latest transfer into ``target_pipeline``.

    Events arrive oldest-first, so the list is scanned from the end.
    """
    for ev in reversed(events):
        if not isinstance(ev, dict):
            continue
        is_transfer = ev.get("type") in TRANSFER_EVENT_TYPES or ev.get("event_type") == "transferIssue"
        if not is_transfer:
            continue
        destination = ev.get("toPipeline") or ev.get("to_pipeline") or ev.get("pipeline")
        if not isinstance(destination, dict):
            continue
        created = ev.get("createdAt") or ev.get("created_at")
        if destination.get("name") == target_pipeline and created:
            return created
    return None
