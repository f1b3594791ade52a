"""Bounded retry loop for rate-limited JSON APIs."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import requests

from .config import REQUEST_TIMEOUT_SECONDS, RETRY_BASE_DELAY_SECONDS, RETRY_MAX_DELAY_SECONDS
from .errors import RateLimitError, TrackerAPIError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 5
    base_delay: float = RETRY_BASE_DELAY_SECONDS
    max_delay: float = RETRY_MAX_DELAY_SECONDS

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def backoff(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


def _is_rate_limited(response: requests.Response) -> bool:
    if response.status_code == 429:
        return True
    # GitHub signals primary rate limits with 403 and an exhausted quota header
    return response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"


def rate_limit_wait(response: requests.Response, attempt: int, policy: RetryPolicy, *, now: float | None = None) -> float:
    """Seconds to wait before retrying, derived from the server hint when present."""
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return max(0.0, min(float(retry_after), policy.max_delay))
        except ValueError:
            pass
    reset = response.headers.get("X-RateLimit-Reset")
    if reset:
        try:
            current = time.time() if now is None else now
            return max(0.0, min(float(reset) - current, policy.max_delay))
        except ValueError:
            pass
    return policy.backoff(attempt)


def request_with_retry(
    session: requests.Session,
    method: str,
    url: str,
    *,
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
    timeout: float = REQUEST_TIMEOUT_SECONDS,
    **kwargs: Any,
) -> requests.Response:
    """Issue a request, retrying only on rate-limit responses.

    Returns the first 2xx response. Any other status raises
    :class:`TrackerAPIError`; an exhausted retry budget raises
    :class:`RateLimitError`. Transport failures are wrapped as
    :class:`TrackerAPIError` without retrying.
    """
    response: requests.Response
    for attempt in range(1, policy.max_attempts + 1):
        try:
            response = session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as exc:
            raise TrackerAPIError(f"{method} {url} failed: {exc}", url=url) from exc

        if not _is_rate_limited(response):
            break
        if attempt == policy.max_attempts:
            raise RateLimitError(
                f"{method} {url} still rate limited after {attempt} attempts",
                url=url,
                status=response.status_code,
                body=response.text,
            )
        wait = rate_limit_wait(response, attempt, policy)
        logger.warning("Rate limited by %s (attempt %s/%s); waiting %.1fs", url, attempt, policy.max_attempts, wait)
        if wait > 0:
            sleep(wait)

    if not 200 <= response.status_code < 300:
        raise TrackerAPIError(
            f"{method} {url} failed {response.status_code}: {response.text[:200]}",
            url=url,
            status=response.status_code,
            body=response.text,
        )
    return response


def decode_json(response: requests.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return {}
    try:
        return response.json()
    except ValueError as exc:
        raise TrackerAPIError(
            f"Response from {response.url} is not JSON", url=response.url, status=response.status_code, body=response.text
        ) from exc
