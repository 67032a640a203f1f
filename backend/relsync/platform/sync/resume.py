"""Resume planning from persisted job counters.

Counters only advance after a whole batch is accounted for, so a
`processed_records` value that is a multiple of the batch size marks a batch
boundary that is safe to restart from. Anything else (a partial final batch,
a changed batch size) restarts from zero; re-processing is harmless because
point ids are deterministic.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ResumePlan:
    """Where a job should start."""

    should_resume: bool
    offset: int
    start_batch_index: int
    progress_percent: float
    reason: str


def plan_resume(
    processed_records: int,
    total_records: Optional[int],
    batch_size: int,
) -> ResumePlan:
    """Decide whether a job can continue from its counters.

    Args:
        processed_records: Records already accounted for
        total_records: Known total, or None if unknown
        batch_size: Batch size of the run about to start

    Returns:
        ResumePlan; offset is 0 whenever resuming is not safe
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")

    processed = processed_records or 0
    if processed <= 0:
        return ResumePlan(False, 0, 0, 0.0, "no progress recorded")

    if processed % batch_size != 0:
        return ResumePlan(
            False,
            0,
            0,
            0.0,
            f"processed_records={processed} is not a multiple of batch_size={batch_size}",
        )

    if total_records is not None and processed >= total_records:
        return ResumePlan(
            False, 0, 0, 0.0, f"processed_records={processed} already reached total={total_records}"
        )

    percent = round(processed / total_records * 100, 2) if total_records else 0.0
    return ResumePlan(
        True,
        processed,
        processed // batch_size,
        percent,
        f"resuming at offset {processed} (batch {processed // batch_size})",
    )


def config_fingerprint(query_template: str, field_mapping: Dict[str, Any]) -> str:
    """Hash of the parts of a datasource that change what a row offset means."""
    raw = json.dumps(
        {"query_template": query_template, "field_mapping": field_mapping}, sort_keys=True
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]
