"""GitHub REST client used for best-effort repository and pull request enrichment."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import requests

from .config import GITHUB_API_ENDPOINT, GITHUB_MAX_ATTEMPTS, USER_AGENT
from .errors import TrackerAPIError
from .http import RetryPolicy, decode_json, request_with_retry
from .models import RepoRef

logger = logging.getLogger(__name__)


class GitHubAPI:
    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = GITHUB_API_ENDPOINT,
        session: requests.Session | None = None,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.policy = policy or RetryPolicy(max_attempts=GITHUB_MAX_ATTEMPTS)
        self._sleep = sleep

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": USER_AGENT, "Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get(self, path: str) -> Any:
        response = request_with_retry(
            self.session,
            "GET",
            f"{self.base_url}{path}",
            policy=self.policy,
            sleep=self._sleep,
            headers=self._headers(),
        )
        return decode_json(response)

    def get_repo_id(self, repo: RepoRef) -> int | None:
        try:
            data = self._get(f"/repos/{repo.owner}/{repo.name}")
        except TrackerAPIError as exc:
            logger.warning(
                "Failed to resolve repo_id for %s (url=%s status=%s): %s", repo.full_name, exc.url, exc.status, exc
            )
            return None
        repo_id = data.get("id") if isinstance(data, dict) else None
        return repo_id if isinstance(repo_id, int) else None

    def get_pull_request_draft(self, repo: RepoRef, number: int) -> bool | None:
        """Draft flag of a pull request, or None when it cannot be determined."""
        try:
            data = self._get(f"/repos/{repo.owner}/{repo.name}/pulls/{number}")
        except TrackerAPIError as exc:
            logger.warning(
                "Failed to get draft status for %s#%s (url=%s status=%s): %s",
                repo.full_name,
                number,
                exc.url,
                exc.status,
                exc,
            )
            return None
        draft = data.get("draft") if isinstance(data, dict) else None
        return draft if isinstance(draft, bool) else None
