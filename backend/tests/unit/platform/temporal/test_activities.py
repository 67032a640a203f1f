"""Tests for the sync and cleanup activities.

Processors are mocked unless setup itself is exercised; the job store is the
in-memory test database.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID, uuid4

import pytest
from sqlalchemy import update
from temporalio.exceptions import ApplicationError

from relsync.core.shared_models import SyncErrorType, SyncJobStatus
from relsync.core.sync_job_service import sync_job_service
from relsync.models import Datasource
from relsync.platform.sync.exceptions import SyncFailureError
from relsync.platform.sync.factory import SyncFactory
from relsync.platform.sync.processors import SyncRunResult
from relsync.platform.temporal.activities import (
    cleanup_old_sync_jobs_activity,
    cleanup_stuck_sync_jobs_activity,
    create_sync_job_activity,
    run_sync_job_activity,
)


@pytest.fixture(autouse=True)
def heartbeat():
    with patch("temporalio.activity.heartbeat") as mock_heartbeat:
        yield mock_heartbeat


def _dispatch(job) -> dict:
    return {"job_id": str(job.id), "datasource_id": str(job.datasource_id), "type": job.type}


def _processor(run):
    processor = MagicMock()
    processor.run = run
    return processor


@pytest.mark.asyncio
async def test_run_returns_summary(make_datasource):
    datasource = await make_datasource()
    job = await sync_job_service.create_job(datasource.id, "full")
    result = SyncRunResult(
        status=SyncJobStatus.COMPLETED, batches=2, processed=3, successful=3, failed=0
    )
    processor = _processor(AsyncMock(return_value=result))

    with patch.object(SyncFactory, "create_processor", AsyncMock(return_value=processor)):
        summary = await run_sync_job_activity(_dispatch(job))

    assert summary == {
        "status": "completed",
        "batches": 2,
        "processed": 3,
        "successful": 3,
        "failed": 0,
    }


@pytest.mark.asyncio
async def test_job_failure_is_non_retryable(make_datasource):
    datasource = await make_datasource()
    job = await sync_job_service.create_job(datasource.id, "full")
    failure = SyncFailureError("Connection refused", SyncErrorType.CONNECTION_ERROR)
    processor = _processor(AsyncMock(side_effect=failure))

    with patch.object(SyncFactory, "create_processor", AsyncMock(return_value=processor)):
        with pytest.raises(ApplicationError) as exc_info:
            await run_sync_job_activity(_dispatch(job))

    assert exc_info.value.non_retryable is True
    assert exc_info.value.type == "SyncFailureError"
    assert exc_info.value.details == ("connection_error",)


@pytest.mark.asyncio
async def test_setup_failure_fails_the_job(make_datasource):
    datasource = await make_datasource()
    job = await sync_job_service.create_job(datasource.id, "full")
    failure = SyncFailureError(f"Datasource {datasource.id} not found")

    with patch.object(SyncFactory, "create_processor", AsyncMock(side_effect=failure)):
        with pytest.raises(ApplicationError):
            await run_sync_job_activity(_dispatch(job))

    stored = await sync_job_service.get(job.id)
    assert stored.status == "failed"
    errors = await sync_job_service.get_errors(job.id)
    assert [e.error_type for e in errors] == ["job_error"]


@pytest.mark.asyncio
async def test_unsupported_source_type_fails_the_pending_job(db, make_datasource):
    datasource = await make_datasource()
    await db.execute(
        update(Datasource).where(Datasource.id == datasource.id).values(type="oracle")
    )
    await db.commit()
    job = await sync_job_service.create_job(datasource.id, "full")

    with pytest.raises(ApplicationError) as exc_info:
        await run_sync_job_activity(_dispatch(job))

    assert exc_info.value.non_retryable is True
    stored = await sync_job_service.get(job.id)
    assert stored.status == "failed"
    assert "oracle" in stored.error
    errors = await sync_job_service.get_errors(job.id)
    assert [e.error_type for e in errors] == ["job_error"]


@pytest.mark.asyncio
async def test_unexpected_error_is_retryable(make_datasource):
    datasource = await make_datasource()
    job = await sync_job_service.create_job(datasource.id, "webhook")
    processor = _processor(AsyncMock(side_effect=RuntimeError("worker lost")))

    with patch.object(SyncFactory, "create_processor", AsyncMock(return_value=processor)):
        with pytest.raises(RuntimeError):
            await run_sync_job_activity(_dispatch(job))


@pytest.mark.asyncio
async def test_create_sync_job_activity_returns_dispatch(make_datasource):
    datasource = await make_datasource()

    dispatch = await create_sync_job_activity(str(datasource.id))

    assert dispatch["datasource_id"] == str(datasource.id)
    assert dispatch["type"] == "full"
    job = await sync_job_service.get(UUID(dispatch["job_id"]))
    assert job.status == "pending"


@pytest.mark.asyncio
async def test_create_sync_job_activity_skips_unknown_datasource(db_engine):
    assert await create_sync_job_activity(str(uuid4())) is None


@pytest.mark.asyncio
async def test_cleanup_activities_delegate_to_cleanup_service():
    with patch("relsync.core.cleanup_service.cleanup_service") as service:
        service.mark_stale_jobs_failed = AsyncMock(return_value=2)
        service.delete_old_jobs = AsyncMock(return_value=5)

        assert await cleanup_stuck_sync_jobs_activity() == 2
        assert await cleanup_old_sync_jobs_activity() == 5
