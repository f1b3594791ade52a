"""Write the ranked duration records as the run's output dataset."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from review_app.analytics.metrics.durations import records_to_dataframe
from review_app.core.models import IssueDurationRecord

logger = logging.getLogger(__name__)


def write_dataset(records: Sequence[IssueDurationRecord], path: str | Path) -> Path:
    """Persist every record in ranked order (CSV for ``.csv``, JSON records otherwise)."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    df = records_to_dataframe(records)
    if out_path.suffix.lower() == ".csv":
        df.to_csv(out_path, index=False, encoding="utf-8")
    else:
        df.to_json(out_path, orient="records", indent=2, force_ascii=False)
    logger.info("Wrote %s records to %s", len(df), out_path)
    return out_path
