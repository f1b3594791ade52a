"""ReviewService: orchestrates collection, duration resolution, reporting, and state."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import requests

from review_app.analytics.aggregations.summary import RunSummary, log_run_summary
from review_app.analytics.metrics.durations import resolve_durations
from review_app.notify.slack import AlertThresholds, compose_message, send_webhook
from review_app.output.dataset import write_dataset

from .config import RunConfig
from .errors import TrackerAPIError
from .github_client import GitHubAPI
from .graphql_client import ZenHubGraphQL, map_workspace_node
from .mappers import in_scope, map_raw_to_snapshot
from .models import IssueDurationRecord, IssuePipelineSnapshot, PersistedState, TargetConfig, to_iso_utc
from .state import StateStore, update_state
from .zenhub_client import ZenHubREST, extract_pipeline_entered_at

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunResult:
    records: list[IssueDurationRecord]
    state: PersistedState
    summary: RunSummary
    dataset_path: Path
    notified: bool = False


class ReviewService:
    def __init__(
        self,
        config: RunConfig,
        *,
        session: requests.Session | None = None,
        state_store: StateStore | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.session = session or requests.Session()
        self.state_store = state_store or StateStore(config.state_path)
        self.graphql = ZenHubGraphQL(
            config.graphql_endpoint, config.zenhub_token, session=self.session, sleep=sleep
        )
        self.zenhub = ZenHubREST(config.rest_endpoint, config.zenhub_token, session=self.session, sleep=sleep)
        self.github = GitHubAPI(config.github_token, base_url=config.github_api, session=self.session, sleep=sleep)

    # ------------------ Collection ------------------
    def collect_snapshots(self, state: PersistedState, now_iso: str) -> list[IssuePipelineSnapshot]:
        snapshots: list[IssuePipelineSnapshot] = []
        if self.config.use_graphql:
            for workspace_id in self.config.workspace_ids:
                snapshots.extend(self._collect_workspace(workspace_id, state, now_iso))
        else:
            for target in self.config.targets:
                snapshots.extend(self._collect_target(target, state, now_iso))
        return snapshots

    def _collect_workspace(self, workspace_id: str, state: PersistedState, now_iso: str) -> list[IssuePipelineSnapshot]:
        cfg = self.config
        out: list[IssuePipelineSnapshot] = []
        for nodes in self.graphql.iter_workspace_pages(workspace_id):
            for node in nodes:
                raw = map_workspace_node(node)
                snap = map_raw_to_snapshot(
                    raw,
                    target_pipelines=cfg.target_pipelines,
                    state=state,
                    now_iso=now_iso,
                    strict=cfg.strict_pipeline_timestamp,
                    github=self.github,
                )
                if snap is None:
                    continue
                logger.info(
                    "%s (%s, state: %s) assignees: %s",
                    snap.key,
                    snap.type_display,
                    snap.state,
                    snap.assignees_display,
                )
                out.append(snap)
                if len(out) >= cfg.max_issues:
                    logger.info("Reached max_issues=%s for workspace %s", cfg.max_issues, workspace_id)
                    return out
        return out

    def _collect_target(self, target: TargetConfig, state: PersistedState, now_iso: str) -> list[IssuePipelineSnapshot]:
        cfg = self.config
        repo = target.repository
        repo_id = target.repo_id or self.github.get_repo_id(repo)
        out: list[IssuePipelineSnapshot] = []
        for raw in self.zenhub.list_board_issues(repo, repo_id):
            if not in_scope(raw.pipeline, cfg.target_pipelines):
                continue
            try:
                events = self.zenhub.list_issue_events(repo_id, raw.issue_number)
                raw.transfer_time = extract_pipeline_entered_at(events, raw.pipeline)
            except TrackerAPIError as exc:
                logger.warning(
                    "Events fetch failed for %s (url=%s status=%s): %s", raw.key, exc.url, exc.status, exc
                )
            snap = map_raw_to_snapshot(
                raw,
                target_pipelines=cfg.target_pipelines,
                state=state,
                now_iso=now_iso,
                strict=cfg.strict_pipeline_timestamp,
                github=self.github,
            )
            if snap is None:
                continue
            out.append(snap)
            if len(out) >= cfg.max_issues:
                logger.info("Reached max_issues=%s for %s", cfg.max_issues, repo.full_name)
                break
        return out

    # ------------------ Reporting ------------------
    def notify(self, records: list[IssueDurationRecord]) -> bool:
        cfg = self.config
        if not cfg.slack_webhook_url:
            logger.info("No webhook configured - skipping notification")
            return False
        text = compose_message(
            records,
            AlertThresholds(
                review_deadline_days=cfg.review_deadline_days,
                warning_threshold_days=cfg.warning_threshold_days,
                urgent_threshold_days=cfg.urgent_threshold_days,
            ),
            send_empty_report=cfg.send_empty_report,
        )
        if text is None:
            return False
        logger.info("Sending results to webhook")
        logger.debug("Webhook payload text:\n%s", text)
        return send_webhook(cfg.slack_webhook_url, text, session=self.session)

    # ------------------ Run ------------------
    def run(self, now: datetime | None = None) -> RunResult:
        """Execute one scan. Listing and configuration failures propagate."""
        now = now or datetime.now(UTC)
        now_iso = to_iso_utc(now)
        cfg = self.config

        state = self.state_store.load()
        snapshots = self.collect_snapshots(state, now_iso)
        records = resolve_durations(
            snapshots, now, cfg.target_pipelines, display_timezone=cfg.display_timezone
        )
        dataset_path = write_dataset(records, cfg.output_path)
        summary = log_run_summary(records, cfg.scope_description)
        notified = self.notify(records)

        new_state = update_state(state, snapshots, now_iso=now_iso)
        self.state_store.save(new_state)
        return RunResult(
            records=records,
            state=new_state,
            summary=summary,
            dataset_path=dataset_path,
            notified=notified,
        )
