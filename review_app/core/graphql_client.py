"""ZenHub GraphQL client wrapper (read-only workspace queries + cursor pagination)."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from typing import Any

import requests

from .config import GRAPHQL_PAGE_SIZE, TRACKER_MAX_ATTEMPTS, USER_AGENT
from .errors import TrackerAPIError
from .http import RetryPolicy, decode_json, request_with_retry
from .models import ItemKind, RawTrackerItem, RepoRef

logger = logging.getLogger(__name__)

WORKSPACE_ISSUES_QUERY = """
  query WorkspaceIssues($workspaceId: ID!, $after: String, $first: Int) {
    workspace(id: $workspaceId) {
      id
      name
      issues(first: $first, after: $after) {
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          id
          number
          title
          type
          state
          createdAt
          updatedAt
          pullRequest
          repository {
            id
            ghId
            name
            owner {
              login
            }
          }
          assignees {
            nodes {
              ghId
              login
            }
          }
          pipelineIssue(workspaceId: $workspaceId) {
            pipeline {
              id
              name
            }
            latestTransferTime
          }
        }
      }
    }
  }
"""


class ZenHubGraphQL:
    def __init__(
        self,
        endpoint: str,
        token: str,
        *,
        session: requests.Session | None = None,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.endpoint = endpoint
        self.token = token
        self.session = session or requests.Session()
        self.policy = policy or RetryPolicy(max_attempts=TRACKER_MAX_ATTEMPTS)
        self._sleep = sleep

    def query(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        response = request_with_retry(
            self.session,
            "POST",
            self.endpoint,
            policy=self.policy,
            sleep=self._sleep,
            json={"query": query, "variables": variables},
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.token}",
                "User-Agent": USER_AGENT,
            },
        )
        payload = decode_json(response)
        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            messages = "; ".join(str(e.get("message", e)) for e in errors)
            raise TrackerAPIError(f"GraphQL errors: {messages}", url=self.endpoint, status=response.status_code)
        data = payload.get("data") if isinstance(payload, dict) else None
        if data is None:
            raise TrackerAPIError(
                f"GraphQL response missing data (status {response.status_code})",
                url=self.endpoint,
                status=response.status_code,
                body=response.text,
            )
        return data

    def iter_workspace_pages(self, workspace_id: str, page_size: int = GRAPHQL_PAGE_SIZE) -> Iterator[list[dict[str, Any]]]:
        """Yield pages of raw issue nodes until the workspace is exhausted.

        The caller may stop iterating early (e.g. once ``max_issues`` is reached);
        no further pages are requested in that case.
        """
        after: str | None = None
        while True:
            data = self.query(
                WORKSPACE_ISSUES_QUERY,
                {"workspaceId": workspace_id, "after": after, "first": page_size},
            )
            workspace = data.get("workspace")
            if not workspace:
                logger.warning("No workspace found for ID: %s", workspace_id)
                return
            issues = workspace.get("issues") or {}
            nodes = issues.get("nodes") or []
            logger.info(
                "Found workspace: %s (%s); processing %s issues",
                workspace.get("name"),
                workspace.get("id"),
                len(nodes),
            )
            yield nodes
            page_info = issues.get("pageInfo") or {}
            after = page_info.get("endCursor") if page_info.get("hasNextPage") else None
            if not after:
                return


def map_workspace_node(node: dict[str, Any]) -> RawTrackerItem:
    repository = node.get("repository") or {}
    owner = (repository.get("owner") or {}).get("login") or ""
    pipeline_issue = node.get("pipelineIssue") or {}
    pipeline = (pipeline_issue.get("pipeline") or {}).get("name")
    assignees = [
        a["login"] for a in (node.get("assignees") or {}).get("nodes") or [] if isinstance(a, dict) and a.get("login")
    ]
    return RawTrackerItem(
        issue_number=int(node["number"]),
        repo=RepoRef(owner=owner, name=repository.get("name") or ""),
        title=node.get("title") or "",
        pipeline=pipeline,
        assignees=assignees,
        transfer_time=pipeline_issue.get("latestTransferTime") or None,
        type=node.get("type") or "GithubIssue",
        state=node.get("state") or "OPEN",
        created_at=node.get("createdAt"),
        kind=ItemKind.PULL_REQUEST if node.get("pullRequest") else ItemKind.ISSUE,
    )
