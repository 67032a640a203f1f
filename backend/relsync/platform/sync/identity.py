"""Deterministic point ids for source records.

A source primary key always maps to the same UUID, so re-syncing a row
overwrites its point instead of duplicating it. All sync modes share this
scheme, which is what lets a webhook delete a point written by a full sync.
"""

import re
import time
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from relsync.core.logging import ContextualLogger
from relsync.core.logging import logger as default_logger
from relsync.platform.sync.exceptions import IdentityError

NAMESPACE = uuid.UUID("b3c3e1c0-4d3e-4b3a-9c3e-1c0d3e4b3a9c")

_CANONICAL_UUID = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)


@dataclass(frozen=True)
class PointIdentity:
    """Point id derived from a source key."""

    point_id: str
    source_key: str
    deterministic: bool = True


def normalize_key(value: Any) -> str:
    """Trim a source key to its string form; None becomes empty."""
    if value is None:
        return ""
    return str(value).strip()


def point_id_for(key: str) -> str:
    """UUIDv5 of a non-empty, already normalized key."""
    return str(uuid.uuid5(NAMESPACE, key))


def map_identity(
    value: Any,
    position: int = 0,
    logger: Optional[ContextualLogger] = None,
) -> PointIdentity:
    """Map a source key to a point id.

    Empty keys get a synthetic `fallback-<epoch ms>-<position>` key; the
    resulting id is unique but not stable across runs.

    Args:
        value: Raw value of the id column
        position: Row position inside the batch
        logger: Logger carrying the job's dimensions

    Returns:
        PointIdentity
    """
    key = normalize_key(value)
    if key:
        return PointIdentity(point_id=point_id_for(key), source_key=key)

    fallback = f"fallback-{int(time.time() * 1000)}-{position}"
    (logger or default_logger).warning(
        f"Record at position {position} has an empty key; using non-deterministic id {fallback}"
    )
    return PointIdentity(point_id=point_id_for(fallback), source_key=fallback, deterministic=False)


def is_canonical_uuid(value: str) -> bool:
    """Whether a string is a lowercase 8-4-4-4-12 hex UUID."""
    return bool(_CANONICAL_UUID.match(value or ""))


def validate_point_ids(point_ids, record_ids=None) -> None:
    """Raise IdentityError if any id is not a canonical UUID.

    Args:
        point_ids: Ids about to be written
        record_ids: Source keys of the batch, attached to the error
    """
    invalid = [pid for pid in point_ids if not is_canonical_uuid(pid)]
    if invalid:
        raise IdentityError(
            f"{len(invalid)} invalid point id(s), first: {invalid[0]!r}",
            record_ids=record_ids,
        )
