"""Central configuration, constants, defaults, and run settings."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytz
import yaml

from .errors import ConfigError
from .models import RepoRef, TargetConfig

logger = logging.getLogger(__name__)

# =============================================================================
# Tracker / Source-Control Endpoints
# =============================================================================
ZENHUB_GRAPHQL_ENDPOINT = "https://api.zenhub.com/public/graphql"
ZENHUB_REST_ENDPOINT = "https://api.zenhub.com"
GITHUB_API_ENDPOINT = "https://api.github.com"
USER_AGENT = "review-monitor"

# =============================================================================
# Collection Defaults
# =============================================================================
DEFAULT_MAX_ISSUES: int = 100
GRAPHQL_PAGE_SIZE: int = 50
REQUEST_TIMEOUT_SECONDS: float = 30.0

# Retry tuning. Tracker calls get more attempts than enrichment calls because a
# failed listing aborts the run while a failed enrichment only degrades one item.
TRACKER_MAX_ATTEMPTS: int = 5
GITHUB_MAX_ATTEMPTS: int = 3
RETRY_BASE_DELAY_SECONDS: float = 2.0
RETRY_MAX_DELAY_SECONDS: float = 30.0

# =============================================================================
# Review Thresholds (days)
# =============================================================================
DEFAULT_REVIEW_DEADLINE_DAYS: float = 3
DEFAULT_WARNING_THRESHOLD_DAYS: float = 5
DEFAULT_URGENT_THRESHOLD_DAYS: float = 7

# =============================================================================
# Persistence / Output
# =============================================================================
CURRENT_STATE_SCHEMA_VERSION: int = 1
DEFAULT_STATE_PATH = ".review_state/state.json"
DEFAULT_OUTPUT_PATH = "review_dataset.json"
DEFAULT_DISPLAY_TIMEZONE = "UTC"

# Environment variables consulted when the config file leaves a secret out
SECRET_ENV_VARS: dict[str, str] = {
    "zenhub_token": "ZENHUB_TOKEN",
    "github_token": "GITHUB_TOKEN",
    "slack_webhook_url": "SLACK_WEBHOOK_URL",
}


@dataclass(slots=True)
class RunConfig:
    zenhub_token: str
    target_pipelines: list[str]
    use_graphql: bool = False
    workspace_ids: list[str] = field(default_factory=list)
    targets: list[TargetConfig] = field(default_factory=list)
    graphql_endpoint: str = ZENHUB_GRAPHQL_ENDPOINT
    rest_endpoint: str = ZENHUB_REST_ENDPOINT
    github_api: str = GITHUB_API_ENDPOINT
    max_issues: int = DEFAULT_MAX_ISSUES
    strict_pipeline_timestamp: bool = False
    github_token: str | None = None
    slack_webhook_url: str | None = None
    send_empty_report: bool = True
    review_deadline_days: float = DEFAULT_REVIEW_DEADLINE_DAYS
    warning_threshold_days: float = DEFAULT_WARNING_THRESHOLD_DAYS
    urgent_threshold_days: float = DEFAULT_URGENT_THRESHOLD_DAYS
    state_path: str = DEFAULT_STATE_PATH
    output_path: str = DEFAULT_OUTPUT_PATH
    display_timezone: str = DEFAULT_DISPLAY_TIMEZONE
    log_level: str = "INFO"

    @property
    def scope_description(self) -> str:
        if self.use_graphql:
            return f"{len(self.workspace_ids)} workspaces"
        return f"{len(self.targets)} targets"


def parse_target(value: Any) -> TargetConfig:
    """Parse one ``targets`` entry.

    Accepts ``"owner/name"`` strings or mappings shaped like
    ``{"repository": {"owner": ..., "name": ...}, "repo_id": 123}``.
    """
    if isinstance(value, str):
        parts = value.split("/")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ConfigError(f"Invalid target format: {value}. Expected owner/name")
        return TargetConfig(repository=RepoRef(owner=parts[0], name=parts[1]))
    if isinstance(value, Mapping):
        repo = value.get("repository") or {}
        owner = repo.get("owner") if isinstance(repo, Mapping) else None
        name = repo.get("name") if isinstance(repo, Mapping) else None
        if not owner or not name:
            raise ConfigError(f"Target is missing repository owner/name: {value!r}")
        repo_id = value.get("repo_id", value.get("repoId"))
        if repo_id is not None and not isinstance(repo_id, int):
            raise ConfigError(f"repo_id must be an integer for {owner}/{name}")
        return TargetConfig(repository=RepoRef(owner=str(owner), name=str(name)), repo_id=repo_id)
    raise ConfigError(f"Unsupported target entry: {value!r}")


def _non_empty_str_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if not isinstance(value, Sequence) or isinstance(value, str) or len(value) == 0:
        raise ConfigError(f"{key} must be a non-empty list")
    return [str(v) for v in value]


def _days(data: Mapping[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number of days")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number of days, got {value!r}") from exc


def config_from_mapping(data: Mapping[str, Any]) -> RunConfig:
    """Validate a raw mapping and build a :class:`RunConfig`.

    Raises
    ------
    ConfigError
        When a required value is missing or thresholds are inconsistent.
    """
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration must be a mapping")

    known = set(RunConfig.__dataclass_fields__)
    for key in data:
        if key not in known:
            logger.warning("Ignoring unknown configuration key: %s", key)

    token = data.get("zenhub_token")
    if not token or not isinstance(token, str):
        raise ConfigError("Missing zenhub_token")

    use_graphql = bool(data.get("use_graphql", False))
    workspace_ids: list[str] = []
    targets: list[TargetConfig] = []
    if use_graphql:
        workspace_ids = _non_empty_str_list(data, "workspace_ids")
    else:
        raw_targets = data.get("targets")
        if not isinstance(raw_targets, Sequence) or isinstance(raw_targets, str) or not raw_targets:
            raise ConfigError("targets must be a non-empty list when use_graphql is false")
        targets = [parse_target(t) for t in raw_targets]

    pipelines = _non_empty_str_list(data, "target_pipelines")

    max_issues = data.get("max_issues", DEFAULT_MAX_ISSUES)
    if isinstance(max_issues, bool) or not isinstance(max_issues, int) or max_issues <= 0:
        raise ConfigError("max_issues must be a positive integer")

    review = _days(data, "review_deadline_days", DEFAULT_REVIEW_DEADLINE_DAYS)
    warning = _days(data, "warning_threshold_days", DEFAULT_WARNING_THRESHOLD_DAYS)
    urgent = _days(data, "urgent_threshold_days", DEFAULT_URGENT_THRESHOLD_DAYS)
    if not review <= warning <= urgent:
        raise ConfigError(
            "Thresholds must satisfy review_deadline_days <= warning_threshold_days <= urgent_threshold_days"
        )

    tz_name = str(data.get("display_timezone", DEFAULT_DISPLAY_TIMEZONE))
    try:
        pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError as exc:
        raise ConfigError(f"Unknown display_timezone: {tz_name}") from exc

    return RunConfig(
        zenhub_token=token,
        target_pipelines=pipelines,
        use_graphql=use_graphql,
        workspace_ids=workspace_ids,
        targets=targets,
        graphql_endpoint=str(data.get("graphql_endpoint") or ZENHUB_GRAPHQL_ENDPOINT),
        rest_endpoint=str(data.get("rest_endpoint") or ZENHUB_REST_ENDPOINT),
        github_api=str(data.get("github_api") or GITHUB_API_ENDPOINT),
        max_issues=max_issues,
        strict_pipeline_timestamp=bool(data.get("strict_pipeline_timestamp", False)),
        github_token=data.get("github_token") or None,
        slack_webhook_url=data.get("slack_webhook_url") or None,
        send_empty_report=bool(data.get("send_empty_report", True)),
        review_deadline_days=review,
        warning_threshold_days=warning,
        urgent_threshold_days=urgent,
        state_path=str(data.get("state_path") or DEFAULT_STATE_PATH),
        output_path=str(data.get("output_path") or DEFAULT_OUTPUT_PATH),
        display_timezone=tz_name,
        log_level=str(data.get("log_level") or "INFO").upper(),
    )


def load_config(path: str | Path, env: Mapping[str, str] | None = None) -> RunConfig:
    """Load YAML configuration, fill secrets from the environment, and validate."""
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {config_path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    env = os.environ if env is None else env
    for key, var in SECRET_ENV_VARS.items():
        if not data.get(key) and env.get(var):
            data[key] = env[var]
    return config_from_mapping(data)
