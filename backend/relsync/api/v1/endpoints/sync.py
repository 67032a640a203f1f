"""Sync job API endpoints."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from relsync import schemas
from relsync.api import deps
from relsync.core.logging import ContextualLogger
from relsync.core.sync_service import sync_service

router = APIRouter()


@router.post(
    "/full/{datasource_id}",
    status_code=202,
    response_model=schemas.SyncJobTriggerResponse,
)
async def trigger_full_sync(
    *,
    datasource_id: UUID,
    logger: ContextualLogger = Depends(deps.get_logger),
) -> schemas.SyncJobTriggerResponse:
    """Queue a full sync of a datasource."""
    sync_job = await sync_service.trigger_full(datasource_id, started_by="api")
    logger.info(f"Full sync {sync_job.id} queued for datasource {datasource_id}")
    return schemas.SyncJobTriggerResponse(
        job_id=sync_job.id, message="Full sync queued for processing"
    )


@router.post(
    "/incremental/{datasource_id}",
    status_code=202,
    response_model=schemas.SyncJobTriggerResponse,
)
async def trigger_incremental_sync(
    *,
    datasource_id: UUID,
    logger: ContextualLogger = Depends(deps.get_logger),
) -> schemas.SyncJobTriggerResponse:
    """Queue an incremental sync of a datasource."""
    sync_job = await sync_service.trigger_incremental(datasource_id, started_by="api")
    logger.info(f"Incremental sync {sync_job.id} queued for datasource {datasource_id}")
    return schemas.SyncJobTriggerResponse(
        job_id=sync_job.id, message="Incremental sync queued for processing"
    )


@router.get("/jobs", response_model=List[schemas.SyncJob])
async def list_sync_jobs(
    *,
    datasource_id: Optional[UUID] = None,
    limit: int = Query(50, ge=1, le=500),
) -> List[schemas.SyncJob]:
    """List sync jobs, newest first."""
    return await sync_service.list_jobs(datasource_id=datasource_id, limit=limit)


@router.get("/jobs/{job_id}", response_model=schemas.SyncJob)
async def get_sync_job(*, job_id: UUID) -> schemas.SyncJob:
    """Get a sync job with its progress counters."""
    return await sync_service.get_job(job_id)


@router.post("/jobs/{job_id}/cancel", response_model=schemas.SyncJob)
async def cancel_sync_job(
    *,
    job_id: UUID,
    logger: ContextualLogger = Depends(deps.get_logger),
) -> schemas.SyncJob:
    """Cancel a pending or running sync job.

    A running job stops before its next batch.
    """
    sync_job = await sync_service.cancel(job_id)
    logger.info(f"Sync job {job_id} cancelled via API")
    return sync_job


@router.get("/errors/{job_id}", response_model=List[schemas.SyncError])
async def get_sync_errors(*, job_id: UUID) -> List[schemas.SyncError]:
    """List the errors recorded for a sync job."""
    return await sync_service.get_job_errors(job_id)


@router.post("/errors/{job_id}/retry", status_code=202, response_model=schemas.RetryErrorsResponse)
async def retry_sync_errors(
    *,
    job_id: UUID,
    logger: ContextualLogger = Depends(deps.get_logger),
) -> schemas.RetryErrorsResponse:
    """Re-sync the records behind a job's unresolved errors."""
    response = await sync_service.retry_errors(job_id)
    logger.info(f"Retrying {len(response.codes)} records of job {job_id} as job {response.job_id}")
    return response
