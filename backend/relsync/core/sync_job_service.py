"""Service for managing sync job status and progress.

This is the only writer of SyncJob rows besides the reaper. Every status write
is conditional on the current status so a late processor cannot overwrite a
cancel or a reaper timeout.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from relsync import crud, schemas
from relsync.core.datetime_utils import utc_now_naive
from relsync.core.logging import logger
from relsync.core.shared_models import SyncErrorType, SyncJobStatus
from relsync.db.session import get_db_context


class SyncJobService:
    """Service for managing sync job status updates."""

    async def create_job(
        self,
        datasource_id: UUID,
        job_type: str,
        total_records: Optional[int] = None,
        job_metadata: Optional[Dict[str, Any]] = None,
    ) -> schemas.SyncJob:
        """Insert a pending job.

        Args:
            datasource_id: Owning datasource
            job_type: Sync mode
            total_records: Known total (webhook jobs)
            job_metadata: Metadata stored on the job

        Returns:
            The created job
        """
        async with get_db_context() as db:
            db_job = await crud.sync_job.create(
                db,
                datasource_id=datasource_id,
                type=job_type,
                total_records=total_records,
                job_metadata=job_metadata,
            )
            return schemas.SyncJob.model_validate(db_job)

    async def get(self, sync_job_id: UUID) -> Optional[schemas.SyncJob]:
        """Read a job, or None if it does not exist."""
        async with get_db_context() as db:
            db_job = await crud.sync_job.get(db, id=sync_job_id)
            return schemas.SyncJob.model_validate(db_job) if db_job else None

    async def get_status(self, sync_job_id: UUID) -> Optional[SyncJobStatus]:
        """Current status of a job, or None if it was deleted."""
        job = await self.get(sync_job_id)
        return SyncJobStatus(job.status) if job else None

    async def mark_running(self, sync_job_id: UUID, started_at: datetime) -> bool:
        """Move a pending job to running.

        A job that is already running (a re-dispatched attempt) stays running and
        gets a fresh `started_at`.

        Returns:
            False if the job was cancelled or already terminal
        """
        async with get_db_context() as db:
            moved = await crud.sync_job.transition(
                db,
                id=sync_job_id,
                to_status=SyncJobStatus.RUNNING,
                from_statuses=[SyncJobStatus.PENDING, SyncJobStatus.RUNNING],
                values={"started_at": started_at},
            )
        if moved:
            logger.info(f"Sync job {sync_job_id} is running")
        else:
            logger.warning(f"Sync job {sync_job_id} could not be started; status changed")
        return moved

    async def complete(self, sync_job_id: UUID) -> bool:
        """Mark a running job completed.

        Returns:
            False if the job was no longer running
        """
        async with get_db_context() as db:
            moved = await crud.sync_job.transition(
                db,
                id=sync_job_id,
                to_status=SyncJobStatus.COMPLETED,
                from_statuses=[SyncJobStatus.RUNNING],
                values={"completed_at": utc_now_naive()},
            )
        if moved:
            logger.info(f"Sync job {sync_job_id} completed")
        else:
            logger.warning(f"Sync job {sync_job_id} finished but is no longer running")
        return moved

    async def fail(self, sync_job_id: UUID, error: str) -> bool:
        """Mark a pending or running job failed with an error message.

        Returns:
            False if the job was already terminal
        """
        async with get_db_context() as db:
            moved = await crud.sync_job.transition(
                db,
                id=sync_job_id,
                to_status=SyncJobStatus.FAILED,
                from_statuses=[SyncJobStatus.PENDING, SyncJobStatus.RUNNING],
                values={"completed_at": utc_now_naive(), "error": error},
            )
        if moved:
            logger.error(f"Sync job {sync_job_id} failed: {error}")
        return moved

    async def cancel(self, sync_job_id: UUID) -> bool:
        """Mark a pending or running job cancelled.

        Returns:
            False if the job was already terminal
        """
        async with get_db_context() as db:
            return await crud.sync_job.transition(
                db,
                id=sync_job_id,
                to_status=SyncJobStatus.CANCELLED,
                from_statuses=[SyncJobStatus.PENDING, SyncJobStatus.RUNNING],
                values={"completed_at": utc_now_naive()},
            )

    async def increment_progress(
        self, sync_job_id: UUID, processed: int, successful: int, failed: int
    ) -> None:
        """Atomically add a batch's outcome to the job counters.

        Args:
            sync_job_id: Job to update
            processed: Rows attempted in the batch
            successful: Rows upserted or deleted
            failed: Rows that failed
        """
        if successful + failed != processed:
            raise ValueError(
                f"Counter mismatch: successful ({successful}) + failed ({failed}) "
                f"!= processed ({processed})"
            )
        if processed == 0:
            return
        async with get_db_context() as db:
            await crud.sync_job.increment_counters(
                db, id=sync_job_id, processed=processed, successful=successful, failed=failed
            )

    async def set_total_records(self, sync_job_id: UUID, total_records: Optional[int]) -> None:
        """Store the counted total."""
        async with get_db_context() as db:
            await crud.sync_job.update_fields(
                db, id=sync_job_id, values={"total_records": total_records}
            )

    async def update_metadata(self, sync_job_id: UUID, updates: Dict[str, Any]) -> None:
        """Merge keys into the job's metadata."""
        async with get_db_context() as db:
            db_job = await crud.sync_job.get(db, id=sync_job_id)
            if not db_job:
                return
            merged = {**(db_job.job_metadata or {}), **updates}
            await crud.sync_job.update_fields(db, id=sync_job_id, values={"job_metadata": merged})

    async def advance_watermark(self, datasource_id: UUID, last_synced_at: datetime) -> None:
        """Move a datasource's incremental watermark forward."""
        async with get_db_context() as db:
            await crud.datasource.update_last_synced_at(
                db, id=datasource_id, last_synced_at=last_synced_at
            )

    async def record_error(
        self,
        sync_job_id: UUID,
        error_type: SyncErrorType,
        error_message: str,
        record_identifier: Optional[str] = None,
        record_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Persist a SyncError.

        Failures to write the error are logged and not raised; the caller's own
        accounting already reflects the failure.
        """
        try:
            async with get_db_context() as db:
                await crud.sync_error.create(
                    db,
                    obj_in=schemas.SyncErrorCreate(
                        sync_job_id=sync_job_id,
                        error_type=error_type.value,
                        error_message=error_message,
                        record_identifier=record_identifier,
                        record_data=record_data,
                    ),
                )
        except Exception as e:
            logger.error(f"Failed to record sync error for job {sync_job_id}: {e}")

    async def get_errors(
        self, sync_job_id: UUID, unresolved_only: bool = False
    ) -> List[schemas.SyncError]:
        """List a job's errors."""
        async with get_db_context() as db:
            errors = await crud.sync_error.get_by_job(
                db, sync_job_id=sync_job_id, unresolved_only=unresolved_only
            )
            return [schemas.SyncError.model_validate(e) for e in errors]

    async def bump_error_retry_count(self, error_ids: List[UUID]) -> None:
        """Increment `retry_count` on errors being retried."""
        async with get_db_context() as db:
            await crud.sync_error.bump_retry_count(db, ids=error_ids)


# Singleton instance
sync_job_service = SyncJobService()
