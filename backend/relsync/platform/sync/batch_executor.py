"""Batch executor: turns source rows into vector points.

One call handles one batch end to end: text building, embedding, identity
mapping, upsert and a single atomic counter update. Failures inside a batch
are recorded as SyncErrors and never propagate; the caller moves on to the
next batch.
"""

import base64
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from relsync.core.shared_models import SyncErrorType
from relsync.platform.destinations._base import VectorPoint
from relsync.platform.destinations.qdrant import CollectionNotFoundError
from relsync.platform.sync.context import SyncContext
from relsync.platform.sync.exceptions import BatchProcessingError, EmbeddingError
from relsync.platform.sync.identity import (
    PointIdentity,
    map_identity,
    normalize_key,
    point_id_for,
    validate_point_ids,
)
from relsync.platform.temporal.prometheus_metrics import record_batch_outcome, record_failure

DEFAULT_DISTANCE = "Cosine"


@dataclass
class BatchResult:
    """Outcome of one batch."""

    processed: int = 0
    successful: int = 0
    failed: int = 0


def json_safe(value: Any) -> Any:
    """Convert driver values (datetimes, decimals, UUIDs, bytes) to JSON types."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [json_safe(v) for v in value]
    return str(value)


class BatchExecutor:
    """Executes batches for one sync job."""

    def __init__(self, context: SyncContext):
        """Initialize with the job's context."""
        self.context = context
        self.datasource = context.datasource
        self.logger = context.logger

    def build_text(self, row: Dict[str, Any]) -> str:
        """Join the row's non-empty embedding fields with single spaces."""
        parts = []
        for field in self.datasource.embedding_fields:
            value = row.get(field)
            if value is None:
                continue
            text = str(value).strip()
            if text:
                parts.append(text)
        return " ".join(parts)

    def build_payload(self, row: Dict[str, Any], source_key: str) -> Dict[str, Any]:
        """Apply the field mapping; unmapped datasources keep every column."""
        mapping = self.datasource.field_mapping
        if mapping:
            payload = {
                target: json_safe(row.get(column))
                for column, target in mapping.items()
                if column in row
            }
        else:
            payload = {column: json_safe(value) for column, value in row.items()}
        payload["_original_id"] = source_key
        return payload

    async def _upsert(self, points: List[VectorPoint]) -> None:
        """Upsert, creating the collection once if it is missing."""
        collection = self.datasource.collection
        try:
            await self.context.vector_store.upsert(collection, points)
        except CollectionNotFoundError:
            self.logger.warning(f"Collection '{collection}' missing; creating it")
            await self.context.vector_store.ensure_collection(
                collection, self.context.embedder.VECTOR_DIMENSIONS, DEFAULT_DISTANCE
            )
            await self.context.vector_store.upsert(collection, points)

    async def _embed(self, texts: List[str], record_ids: List[str]) -> List[List[float]]:
        try:
            vectors = await self.context.embedder.embed_many(texts, self.logger)
        except BatchProcessingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Embedding failed: {e}", record_ids=record_ids) from e
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Embedding service returned {len(vectors)} vectors for {len(texts)} texts",
                record_ids=record_ids,
            )
        return vectors

    async def _record_failure(
        self,
        category: SyncErrorType,
        message: str,
        record_identifier: Optional[str] = None,
        record_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        record_failure(self.context.sync_type, category.value)
        await self.context.job_service.record_error(
            self.context.sync_job_id,
            category,
            message,
            record_identifier=record_identifier,
            record_data=record_data,
        )

    async def execute(self, rows: List[Dict[str, Any]], batch_index: int) -> BatchResult:
        """Process one batch and update the job counters once.

        Args:
            rows: Source rows of the batch
            batch_index: Zero-based batch number, for logs and error snapshots

        Returns:
            BatchResult with processed == successful + failed == len(rows)
        """
        result = BatchResult(processed=len(rows))
        candidates: List[Tuple[PointIdentity, Dict[str, Any], str]] = []

        for position, row in enumerate(rows):
            identity = map_identity(row.get(self.datasource.id_column), position, self.logger)
            text = self.build_text(row)
            if not text:
                result.failed += 1
                await self._record_failure(
                    SyncErrorType.EMBEDDING_ERROR,
                    "Record has no embeddable text",
                    record_identifier=identity.source_key,
                    record_data=json_safe(row),
                )
                continue
            candidates.append((identity, row, text))

        if candidates:
            record_ids = [identity.source_key for identity, _, _ in candidates]
            try:
                vectors = await self._embed([text for _, _, text in candidates], record_ids)
                points = [
                    VectorPoint(
                        id=identity.point_id,
                        vector=vector,
                        payload=self.build_payload(row, identity.source_key),
                    )
                    for (identity, row, _), vector in zip(candidates, vectors)
                ]
                validate_point_ids([p.id for p in points], record_ids)
                await self._upsert(points)
                result.successful += len(candidates)
            except BatchProcessingError as e:
                result.failed += len(candidates)
                self.logger.error(f"Batch {batch_index} failed ({e.category.value}): {e.message}")
                await self._record_failure(
                    e.category,
                    e.message,
                    record_data={"record_ids": record_ids, "batch_index": batch_index},
                )
            except Exception as e:
                result.failed += len(candidates)
                self.logger.error(f"Batch {batch_index} failed unexpectedly: {e}", exc_info=True)
                await self._record_failure(
                    SyncErrorType.BATCH_ERROR,
                    str(e),
                    record_data={"record_ids": record_ids, "batch_index": batch_index},
                )

        await self.context.job_service.increment_progress(
            self.context.sync_job_id, result.processed, result.successful, result.failed
        )
        record_batch_outcome(self.context.sync_type, result.successful, result.failed)
        self.logger.info(
            f"Batch {batch_index}: {result.successful} succeeded, {result.failed} failed"
        )
        return result

    async def sync_record(self, code: str, row: Dict[str, Any]) -> bool:
        """Embed and upsert a single record.

        Counters are not touched; the caller accounts for the outcome.

        Returns:
            True on success, False if the failure was recorded
        """
        key = normalize_key(row.get(self.datasource.id_column)) or normalize_key(code)
        try:
            text = self.build_text(row)
            if not text:
                raise EmbeddingError("Record has no embeddable text", record_ids=[code])
            vector = (await self._embed([text], [code]))[0]
            point = VectorPoint(
                id=point_id_for(key), vector=vector, payload=self.build_payload(row, key)
            )
            validate_point_ids([point.id], [code])
            await self._upsert([point])
            return True
        except BatchProcessingError as e:
            self.logger.error(f"Record {code} failed ({e.category.value}): {e.message}")
            await self._record_failure(
                e.category, e.message, record_identifier=code, record_data=json_safe(row)
            )
        except Exception as e:
            self.logger.error(f"Record {code} failed unexpectedly: {e}", exc_info=True)
            await self._record_failure(
                SyncErrorType.BATCH_ERROR,
                str(e),
                record_identifier=code,
                record_data=json_safe(row),
            )
        return False

    async def delete_record(self, code: str) -> bool:
        """Delete the point of a record that no longer exists at the source.

        Returns:
            True on success (including an already absent point)
        """
        key = normalize_key(code)
        try:
            await self.context.vector_store.delete(self.datasource.collection, [point_id_for(key)])
            self.logger.info(f"Record {code} no longer exists at the source; point deleted")
            return True
        except BatchProcessingError as e:
            self.logger.error(f"Delete of {code} failed: {e.message}")
            await self._record_failure(e.category, e.message, record_identifier=code)
        except Exception as e:
            self.logger.error(f"Delete of {code} failed unexpectedly: {e}", exc_info=True)
            await self._record_failure(SyncErrorType.BATCH_ERROR, str(e), record_identifier=code)
        return False
