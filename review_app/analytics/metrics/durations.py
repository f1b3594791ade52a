"""Time-in-pipeline durations, human formatting, and ranking.

Every record's duration is ``now - pipeline_entered_at``. Values are not
clamped: a clock skew produces a negative duration and an unparseable
timestamp produces ``NaN``. Both are kept in the output and tagged through
``data_quality`` so they can be told apart from healthy rows.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Collection, Iterable, Sequence
from datetime import UTC, datetime

import pandas as pd
import pytz

from review_app.core.column_config import get_columns
from review_app.core.models import IssueDurationRecord, IssuePipelineSnapshot

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60_000
MS_PER_HOUR = 3_600_000
MINUTES_PER_DAY = 24 * 60


def ms_to_minutes(ms: float) -> float:
    if math.isnan(ms):
        return math.nan
    return math.floor(ms / MS_PER_MINUTE)


def ms_to_hours(ms: float) -> float:
    return ms / MS_PER_HOUR


def human_duration(ms: float) -> str:
    """Format milliseconds as ``"{d}d {h}h {m}m"``.

    Zero days/hours are omitted; minutes are always shown.

    Examples
    --------
    >>> human_duration(17 * 60000)
    '17m'
    >>> human_duration(2 * 3600000 + 5 * 60000)
    '2h 5m'
    """
    if math.isnan(ms):
        return "unknown"
    if ms < 0:
        return "-" + human_duration(-ms)
    total_minutes = math.floor(ms / MS_PER_MINUTE)
    days, rem = divmod(total_minutes, MINUTES_PER_DAY)
    hours, minutes = divmod(rem, 60)
    parts: list[str] = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    parts.append(f"{minutes}m")
    return " ".join(parts)


def parse_timestamp(value) -> pd.Timestamp | None:
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts


def _as_utc(now: datetime) -> pd.Timestamp:
    ts = pd.Timestamp(now)
    if ts.tzinfo is None:
        return ts.tz_localize(UTC)
    return ts.tz_convert(UTC)


def build_duration_record(
    snapshot: IssuePipelineSnapshot,
    now: datetime,
    *,
    tz=pytz.UTC,
) -> IssueDurationRecord:
    entered = parse_timestamp(snapshot.pipeline_entered_at)
    if entered is None:
        duration_ms = math.nan
        quality = "invalid_timestamp"
        entered_local = ""
        logger.warning("Unparseable pipelineEnteredAt %r for %s", snapshot.pipeline_entered_at, snapshot.key)
    else:
        duration_ms = (_as_utc(now) - entered).total_seconds() * 1000.0
        quality = "ok" if duration_ms >= 0 else "clock_skew"
        entered_local = entered.tz_convert(tz).strftime("%Y-%m-%d %H:%M %Z")
        if quality == "clock_skew":
            logger.warning("Negative duration for %s (entered %s is in the future)", snapshot.key, snapshot.pipeline_entered_at)

    hours = ms_to_hours(duration_ms)
    return IssueDurationRecord(
        snapshot=snapshot,
        duration_ms=duration_ms,
        duration_minutes=ms_to_minutes(duration_ms),
        duration_hours=hours if math.isnan(hours) else round(hours, 2),
        duration_human=human_duration(duration_ms),
        data_quality=quality,
        pipeline_entered_local=entered_local,
    )


def _rank_key(record: IssueDurationRecord) -> tuple[bool, float]:
    if math.isnan(record.duration_ms):
        return True, 0.0
    return False, -record.duration_ms


def rank_records(records: Iterable[IssueDurationRecord]) -> list[IssueDurationRecord]:
    """Longest-waiting first; ties keep encounter order; NaN durations last."""
    return sorted(records, key=_rank_key)


def resolve_durations(
    snapshots: Sequence[IssuePipelineSnapshot],
    now: datetime,
    target_pipelines: Collection[str] | None = None,
    *,
    display_timezone: str = "UTC",
) -> list[IssueDurationRecord]:
    """Compute and rank duration records for every snapshot.

    ``target_pipelines`` is informational here; scope filtering happens when
    snapshots are mapped.
    """
    tz = pytz.timezone(display_timezone)
    if target_pipelines:
        logger.debug("Resolving durations for %s snapshots in %s", len(snapshots), sorted(target_pipelines))
    return rank_records(build_duration_record(s, now, tz=tz) for s in snapshots)


def records_to_dataframe(records: Sequence[IssueDurationRecord]) -> pd.DataFrame:
    """Tabular view of the ranked records, columns ordered for the dataset."""
    columns = get_columns("dataset")
    if not records:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame([r.to_row() for r in records])
    ordered = [c for c in columns if c in df.columns]
    extra = [c for c in df.columns if c not in ordered]
    return df[ordered + extra]
