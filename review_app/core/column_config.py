"""Load and expose dataset column order from YAML (with fallbacks)."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DATASET_COLUMNS: tuple[str, ...] = (
    "key",
    "repo",
    "issueNumber",
    "title",
    "pipeline",
    "pipelineEnteredAt",
    "pipelineEnteredLocal",
    "enteredAtSource",
    "durationMs",
    "durationMinutes",
    "durationHours",
    "durationHuman",
    "dataQuality",
    "assignees",
    "assigneesCount",
    "assigneesDisplay",
    "typeDisplay",
    "isPullRequest",
    "isDraft",
    "draftDisplay",
    "type",
    "state",
    "createdAt",
    "updatedAt",
    "githubUrl",
)

SUMMARY_COLUMNS: tuple[str, ...] = (
    "key",
    "typeDisplay",
    "pipeline",
    "durationHuman",
    "assigneesDisplay",
    "githubUrl",
)

_CACHE: dict[str, list[str]] | None = None


def _defaults() -> dict[str, list[str]]:
    return {"dataset": list(DATASET_COLUMNS), "summary": list(SUMMARY_COLUMNS)}


def load_column_sets(base_path: str | Path | None = None, *, reload: bool = False) -> dict[str, list[str]]:
    global _CACHE
    if _CACHE is not None and not reload:
        return _CACHE
    base = Path(base_path or Path(__file__).resolve().parent.parent)
    yaml_path = base / "columns.yaml"
    if not yaml_path.exists():
        _CACHE = _defaults()
        return _CACHE
    try:
        data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read %s (%s); using built-in column order", yaml_path, exc)
        _CACHE = _defaults()
        return _CACHE
    sets = data.get("sets", {}) if isinstance(data, dict) else {}
    _CACHE = {
        "dataset": list(sets.get("dataset") or DATASET_COLUMNS),
        "summary": list(sets.get("summary") or SUMMARY_COLUMNS),
    }
    return _CACHE


def get_columns(set_name: str) -> list[str]:
    sets = load_column_sets()
    return list(sets.get(set_name, []))
