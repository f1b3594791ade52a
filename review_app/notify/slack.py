"""Slack-compatible webhook summary: composition and best-effort delivery."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import requests

from review_app.core.config import REQUEST_TIMEOUT_SECONDS
from review_app.core.models import IssueDurationRecord
from review_app.core.overdue import classify_severity, select_overdue

logger = logging.getLogger(__name__)

ALL_CLEAR_MESSAGE = "✅ Great work! All reviews are on track. \U0001f389"
DIVIDER = "   " + "─" * 33


@dataclass(slots=True)
class AlertThresholds:
    review_deadline_days: float = 3
    warning_threshold_days: float = 5
    urgent_threshold_days: float = 7


def compose_message(
    records: Sequence[IssueDurationRecord],
    thresholds: AlertThresholds,
    *,
    send_empty_report: bool = True,
) -> str | None:
    """Build the alert body, or None when nothing should be sent."""
    overdue = select_overdue(records, thresholds.review_deadline_days)
    if not overdue:
        if not send_empty_report:
            logger.info("No issues to report and send_empty_report is false - skipping notification")
            return None
        return ALL_CLEAR_MESSAGE

    name_width = max(len(r.snapshot.assignees_display) for r in overdue)
    duration_width = max(len(r.duration_human) for r in overdue)
    logger.info("Preparing notification with %s overdue issues", len(overdue))

    lines: list[str] = []
    for idx, r in enumerate(overdue):
        severity = classify_severity(r.duration_days, thresholds.warning_threshold_days, thresholds.urgent_threshold_days)
        logger.info(
            "  %s: %s (%.2fh, %.2f days) -> %s",
            r.snapshot.key,
            r.duration_human,
            r.duration_hours,
            r.duration_days,
            severity.value,
        )
        name = r.snapshot.assignees_display.ljust(name_width)
        duration = r.duration_human.ljust(duration_width)
        lines.append(f"{severity.marker} {name}  {duration}")
        lines.append(f"   {r.snapshot.github_url}")
        lines.append(f"   {r.snapshot.title}")
        if idx < len(overdue) - 1:
            lines.append(DIVIDER)
        lines.append("")

    deadline = f"{thresholds.review_deadline_days:g}"
    lines.append("")
    lines.append(f"Every PR should be reviewed within {deadline} days.")
    lines.append(
        "Please look to your assigned issues and comment in the thread if there's any blocker or reason for the delay."
    )
    return "\n".join(lines)


def send_webhook(url: str, text: str, *, session: requests.Session | None = None) -> bool:
    """POST ``{"text": text}`` once. Failures are logged, never raised."""
    http = session or requests.Session()
    try:
        response = http.request("POST", url, json={"text": text}, timeout=REQUEST_TIMEOUT_SECONDS)
    except requests.RequestException as exc:
        logger.error("Failed to send results to webhook: %s", exc)
        return False
    if not 200 <= response.status_code < 300:
        logger.error(
            "Webhook request failed with status %s: %s", response.status_code, (response.text or "")[:200]
        )
        return False
    logger.info("Successfully sent summary to webhook")
    return True
