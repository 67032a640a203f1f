"""Sync service: creates sync jobs and hands them to the work queue.

The service never runs a sync itself. It persists a pending job, enqueues a
work descriptor for it and returns; a worker picks the job up later.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from relsync import crud, schemas
from relsync.core.config import settings
from relsync.core.exceptions import (
    InvalidInputException,
    InvalidStateException,
    NotFoundException,
)
from relsync.core.logging import logger
from relsync.core.shared_models import DatasourceStatus, SyncJobStatus, SyncJobType
from relsync.core.sync_job_service import sync_job_service
from relsync.core.temporal_service import temporal_service
from relsync.db.session import get_db_context


class SyncService:
    """Job orchestrator for full, incremental and webhook syncs."""

    async def _get_datasource(self, datasource_id: UUID) -> schemas.Datasource:
        async with get_db_context() as db:
            db_datasource = await crud.datasource.get(db, id=datasource_id)
            if db_datasource is None:
                raise NotFoundException(f"Datasource {datasource_id} not found")
            return schemas.Datasource.model_validate(db_datasource)

    async def _dispatch(
        self, sync_job: schemas.SyncJob, codes: Optional[List[str]] = None
    ) -> schemas.SyncJob:
        """Enqueue a pending job; a job that cannot be enqueued is marked failed."""
        dispatch = schemas.SyncJobDispatch(
            job_id=sync_job.id,
            datasource_id=sync_job.datasource_id,
            type=sync_job.type,
            codes=codes,
        )
        try:
            await temporal_service.start_sync_job_workflow(dispatch)
        except Exception as e:
            logger.error(f"Failed to enqueue sync job {sync_job.id}: {e}")
            await sync_job_service.fail(sync_job.id, f"Failed to enqueue job: {e}")
            raise
        return sync_job

    async def _trigger(
        self,
        datasource_id: UUID,
        job_type: SyncJobType,
        started_by: str,
    ) -> schemas.SyncJob:
        datasource = await self._get_datasource(datasource_id)
        sync_job = await sync_job_service.create_job(
            datasource.id,
            job_type.value,
            job_metadata={"started_by": started_by, "datasource_name": datasource.name},
        )
        logger.info(
            f"Queued {job_type.value} sync job {sync_job.id} for datasource "
            f"'{datasource.name}' ({datasource.id})"
        )
        return await self._dispatch(sync_job)

    async def trigger_full(self, datasource_id: UUID, started_by: str = "api") -> schemas.SyncJob:
        """Queue a full sync of a datasource.

        Args:
            datasource_id: Datasource to sync
            started_by: Who requested the sync, stored in job metadata

        Returns:
            The pending job

        Raises:
            NotFoundException: Unknown datasource
        """
        return await self._trigger(datasource_id, SyncJobType.FULL, started_by)

    async def trigger_incremental(
        self, datasource_id: UUID, started_by: str = "api"
    ) -> schemas.SyncJob:
        """Queue an incremental sync of a datasource.

        Args:
            datasource_id: Datasource to sync
            started_by: Who requested the sync, stored in job metadata

        Returns:
            The pending job

        Raises:
            NotFoundException: Unknown datasource
        """
        return await self._trigger(datasource_id, SyncJobType.INCREMENTAL, started_by)

    async def trigger_webhook(
        self,
        datasource_id: UUID,
        codes: List[str],
        started_by: str = "webhook",
        extra_metadata: Optional[Dict[str, Any]] = None,
    ) -> schemas.SyncJob:
        """Queue a targeted sync of specific records.

        Args:
            datasource_id: Datasource the records belong to
            codes: Source primary keys; blanks and duplicates are dropped
            started_by: Who requested the sync, stored in job metadata
            extra_metadata: Additional job metadata

        Returns:
            The pending job

        Raises:
            NotFoundException: Unknown datasource
            InvalidInputException: No usable codes, or more than the maximum
        """
        cleaned = list(dict.fromkeys(str(c).strip() for c in codes if str(c).strip()))
        if not cleaned:
            raise InvalidInputException("At least one record code is required")
        if len(cleaned) > settings.WEBHOOK_MAX_CODES:
            raise InvalidInputException(
                f"At most {settings.WEBHOOK_MAX_CODES} codes can be synced at once "
                f"(got {len(cleaned)})"
            )

        datasource = await self._get_datasource(datasource_id)
        metadata = {"started_by": started_by, "datasource_name": datasource.name}
        metadata.update(extra_metadata or {})
        sync_job = await sync_job_service.create_job(
            datasource.id,
            SyncJobType.WEBHOOK.value,
            total_records=len(cleaned),
            job_metadata=metadata,
        )
        logger.info(
            f"Queued webhook sync job {sync_job.id} for {len(cleaned)} records of "
            f"datasource '{datasource.name}'"
        )
        return await self._dispatch(sync_job, cleaned)

    async def cancel(self, sync_job_id: UUID) -> schemas.SyncJob:
        """Cancel a pending or running job.

        A running job stops before its next batch; the batch in flight finishes.

        Raises:
            NotFoundException: Unknown job
            InvalidStateException: The job is already finished
        """
        sync_job = await self.get_job(sync_job_id)
        if SyncJobStatus(sync_job.status).is_terminal:
            raise InvalidStateException(
                f"Sync job {sync_job_id} is {sync_job.status} and cannot be cancelled"
            )

        if not await sync_job_service.cancel(sync_job_id):
            current = await self.get_job(sync_job_id)
            raise InvalidStateException(
                f"Sync job {sync_job_id} is {current.status} and cannot be cancelled"
            )
        logger.info(f"Cancelled sync job {sync_job_id}")

        if sync_job.status == SyncJobStatus.PENDING.value:
            try:
                await temporal_service.cancel_sync_job_workflow(sync_job_id)
            except Exception as e:
                logger.warning(f"Could not cancel queued work for job {sync_job_id}: {e}")

        return await self.get_job(sync_job_id)

    async def retry_errors(self, sync_job_id: UUID) -> schemas.RetryErrorsResponse:
        """Re-sync the records behind a job's unresolved errors as a webhook job.

        Raises:
            NotFoundException: Unknown job
            InvalidInputException: No retryable records, or too many of them
        """
        sync_job = await self.get_job(sync_job_id)
        errors = await sync_job_service.get_errors(sync_job_id, unresolved_only=True)

        codes: List[str] = []
        for error in errors:
            if error.record_identifier:
                codes.append(error.record_identifier)
            snapshot = error.record_data or {}
            if isinstance(snapshot.get("record_ids"), list):
                codes.extend(str(c) for c in snapshot["record_ids"])
        codes = list(dict.fromkeys(c for c in codes if c.strip()))

        if not codes:
            raise InvalidInputException(f"Sync job {sync_job_id} has no records to retry")
        if len(codes) > settings.WEBHOOK_MAX_CODES:
            raise InvalidInputException(
                f"Sync job {sync_job_id} has {len(codes)} failed records; at most "
                f"{settings.WEBHOOK_MAX_CODES} can be retried at once"
            )

        await sync_job_service.bump_error_retry_count([e.id for e in errors])
        retry_job = await self.trigger_webhook(
            sync_job.datasource_id,
            codes,
            started_by="retry",
            extra_metadata={"retry_of": str(sync_job_id)},
        )
        return schemas.RetryErrorsResponse(job_id=retry_job.id, retry_of=sync_job_id, codes=codes)

    async def list_jobs(
        self, datasource_id: Optional[UUID] = None, limit: int = 50
    ) -> List[schemas.SyncJob]:
        """List jobs, newest first."""
        async with get_db_context() as db:
            jobs = await crud.sync_job.get_multi(db, datasource_id=datasource_id, limit=limit)
            return [schemas.SyncJob.model_validate(j) for j in jobs]

    async def get_job(self, sync_job_id: UUID) -> schemas.SyncJob:
        """Read a job.

        Raises:
            NotFoundException: Unknown job
        """
        sync_job = await sync_job_service.get(sync_job_id)
        if sync_job is None:
            raise NotFoundException(f"Sync job {sync_job_id} not found")
        return sync_job

    async def get_job_errors(self, sync_job_id: UUID) -> List[schemas.SyncError]:
        """List a job's errors.

        Raises:
            NotFoundException: Unknown job
        """
        await self.get_job(sync_job_id)
        return await sync_job_service.get_errors(sync_job_id)

    async def create_scheduled_job(self, datasource_id: UUID) -> Optional[schemas.SyncJob]:
        """Create the pending full-sync job of a scheduled run.

        The run is skipped when the datasource is gone or inactive, or when it
        already has a pending or running job.

        Returns:
            The created job, or None if the run was skipped
        """
        async with get_db_context() as db:
            db_datasource = await crud.datasource.get(db, id=datasource_id)
            if db_datasource is None:
                logger.warning(f"Scheduled sync skipped: datasource {datasource_id} not found")
                return None
            datasource = schemas.Datasource.model_validate(db_datasource)
            if datasource.status != DatasourceStatus.ACTIVE.value:
                logger.info(
                    f"Scheduled sync skipped: datasource '{datasource.name}' is {datasource.status}"
                )
                return None
            active = await crud.sync_job.get_active_by_datasource(db, datasource_id=datasource_id)
            if active:
                logger.info(
                    f"Scheduled sync skipped: datasource '{datasource.name}' already has "
                    f"{len(active)} active job(s)"
                )
                return None

        sync_job = await sync_job_service.create_job(
            datasource.id,
            SyncJobType.FULL.value,
            job_metadata={"started_by": "schedule", "datasource_name": datasource.name},
        )
        logger.info(f"Created scheduled full sync job {sync_job.id} for '{datasource.name}'")
        return sync_job


sync_service = SyncService()
