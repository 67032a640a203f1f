"""Tests for the sync orchestrator.

The work queue is mocked; jobs and errors live in the in-memory job store.
"""

from datetime import datetime
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
import pytest_asyncio

from relsync.core.exceptions import (
    InvalidInputException,
    InvalidStateException,
    NotFoundException,
)
from relsync.core.shared_models import SyncErrorType, SyncJobStatus
from relsync.core.sync_job_service import sync_job_service
from relsync.core.sync_service import sync_service


@pytest_asyncio.fixture
async def queue():
    """Mocked Temporal dispatch."""
    with patch("relsync.core.sync_service.temporal_service") as mock_service:
        mock_service.start_sync_job_workflow = AsyncMock()
        mock_service.cancel_sync_job_workflow = AsyncMock(return_value=True)
        yield mock_service


@pytest.mark.asyncio
async def test_trigger_full_persists_pending_job_and_enqueues(make_datasource, queue):
    datasource = await make_datasource(name="catalog")

    job = await sync_service.trigger_full(datasource.id, started_by="tester")

    assert job.type == "full"
    assert job.status == SyncJobStatus.PENDING.value
    assert job.job_metadata == {"started_by": "tester", "datasource_name": "catalog"}
    dispatch = queue.start_sync_job_workflow.await_args.args[0]
    assert dispatch.job_id == job.id
    assert dispatch.datasource_id == datasource.id
    assert dispatch.codes is None


@pytest.mark.asyncio
async def test_trigger_incremental_unknown_datasource(db_engine, queue):
    with pytest.raises(NotFoundException):
        await sync_service.trigger_incremental(uuid4())
    queue.start_sync_job_workflow.assert_not_awaited()


@pytest.mark.asyncio
async def test_enqueue_failure_marks_job_failed(make_datasource, queue):
    datasource = await make_datasource()
    queue.start_sync_job_workflow.side_effect = RuntimeError("temporal down")

    with pytest.raises(RuntimeError):
        await sync_service.trigger_full(datasource.id)

    jobs = await sync_service.list_jobs(datasource_id=datasource.id)
    assert len(jobs) == 1
    assert jobs[0].status == SyncJobStatus.FAILED.value
    assert "temporal down" in jobs[0].error


@pytest.mark.asyncio
async def test_trigger_webhook_dedupes_codes(make_datasource, queue):
    datasource = await make_datasource()

    job = await sync_service.trigger_webhook(datasource.id, [" P1 ", "P2", "P1", ""])

    assert job.type == "webhook"
    assert job.total_records == 2
    dispatch = queue.start_sync_job_workflow.await_args.args[0]
    assert dispatch.codes == ["P1", "P2"]


@pytest.mark.asyncio
@pytest.mark.parametrize("codes", [[], ["  "], [f"C{i}" for i in range(501)]])
async def test_trigger_webhook_rejects_bad_code_counts(make_datasource, queue, codes):
    datasource = await make_datasource()

    with pytest.raises(InvalidInputException):
        await sync_service.trigger_webhook(datasource.id, codes)
    queue.start_sync_job_workflow.assert_not_awaited()


@pytest.mark.asyncio
async def test_trigger_webhook_accepts_exactly_500_codes(make_datasource, queue):
    datasource = await make_datasource()

    job = await sync_service.trigger_webhook(datasource.id, [f"C{i}" for i in range(500)])

    assert job.total_records == 500


@pytest.mark.asyncio
async def test_cancel_pending_job_also_cancels_queued_work(make_datasource, queue):
    datasource = await make_datasource()
    job = await sync_service.trigger_full(datasource.id)

    cancelled = await sync_service.cancel(job.id)

    assert cancelled.status == SyncJobStatus.CANCELLED.value
    assert cancelled.completed_at is not None
    queue.cancel_sync_job_workflow.assert_awaited_once_with(job.id)


@pytest.mark.asyncio
async def test_cancel_running_job_leaves_workflow_alone(make_datasource, queue):
    datasource = await make_datasource()
    job = await sync_service.trigger_full(datasource.id)
    await sync_job_service.mark_running(job.id, datetime(2024, 1, 1))

    cancelled = await sync_service.cancel(job.id)

    assert cancelled.status == SyncJobStatus.CANCELLED.value
    queue.cancel_sync_job_workflow.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_finished_job_is_rejected(make_datasource, queue):
    datasource = await make_datasource()
    job = await sync_service.trigger_full(datasource.id)
    await sync_job_service.mark_running(job.id, datetime(2024, 1, 1))
    await sync_job_service.complete(job.id)

    with pytest.raises(InvalidStateException):
        await sync_service.cancel(job.id)


@pytest.mark.asyncio
async def test_retry_errors_collects_record_and_batch_identifiers(make_datasource, queue):
    datasource = await make_datasource()
    job = await sync_service.trigger_full(datasource.id)
    await sync_job_service.record_error(
        job.id, SyncErrorType.EMBEDDING_ERROR, "no text", record_identifier="P1"
    )
    await sync_job_service.record_error(
        job.id,
        SyncErrorType.VECTOR_STORE_ERROR,
        "upsert failed",
        record_data={"record_ids": ["P2", "P3", "P1"], "batch_index": 1},
    )
    queue.start_sync_job_workflow.reset_mock()

    response = await sync_service.retry_errors(job.id)

    assert response.retry_of == job.id
    assert sorted(response.codes) == ["P1", "P2", "P3"]
    retry_job = await sync_service.get_job(response.job_id)
    assert retry_job.type == "webhook"
    assert retry_job.job_metadata["retry_of"] == str(job.id)
    assert all(e.retry_count == 1 for e in await sync_service.get_job_errors(job.id))
    assert queue.start_sync_job_workflow.await_args.args[0].codes == response.codes


@pytest.mark.asyncio
async def test_retry_errors_without_errors_is_rejected(make_datasource, queue):
    datasource = await make_datasource()
    job = await sync_service.trigger_full(datasource.id)

    with pytest.raises(InvalidInputException):
        await sync_service.retry_errors(job.id)


@pytest.mark.asyncio
async def test_get_job_unknown(db_engine):
    with pytest.raises(NotFoundException):
        await sync_service.get_job(uuid4())


@pytest.mark.asyncio
async def test_create_scheduled_job_skips_when_job_active(make_datasource, queue):
    datasource = await make_datasource()
    first = await sync_service.create_scheduled_job(datasource.id)
    assert first is not None
    assert first.type == "full"
    assert first.job_metadata["started_by"] == "schedule"

    assert await sync_service.create_scheduled_job(datasource.id) is None


@pytest.mark.asyncio
async def test_create_scheduled_job_skips_inactive_datasource(make_datasource, queue):
    datasource = await make_datasource(status="paused")

    assert await sync_service.create_scheduled_job(datasource.id) is None


@pytest.mark.asyncio
async def test_retry_errors_rejects_more_than_500_records(make_datasource, queue):
    datasource = await make_datasource()
    job = await sync_service.trigger_full(datasource.id)
    await sync_job_service.record_error(
        job.id,
        SyncErrorType.VECTOR_STORE_ERROR,
        "upsert failed",
        record_data={"record_ids": [f"C{i}" for i in range(501)], "batch_index": 0},
    )

    with pytest.raises(InvalidInputException):
        await sync_service.retry_errors(job.id)
