"""Tests for the incremental sync processor."""

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest

from relsync import crud, schemas
from relsync.core.shared_models import SyncJobStatus
from relsync.core.sync_job_service import sync_job_service
from relsync.db.session import get_db_context
from relsync.platform.sync.identity import point_id_for
from relsync.platform.sync.processors import IncrementalSyncProcessor


async def _reload(datasource_id) -> schemas.Datasource:
    async with get_db_context() as db:
        return schemas.Datasource.model_validate(await crud.datasource.get(db, id=datasource_id))


async def _run(make_context, datasource, embedder, vector_store, started_at=None):
    job = await sync_job_service.create_job(datasource.id, "incremental")
    if started_at is not None:
        await sync_job_service.mark_running(job.id, started_at)
    context = await make_context(job, datasource, embedder, vector_store)
    return job, await IncrementalSyncProcessor(context).run()


@pytest.mark.asyncio
async def test_first_run_indexes_everything_and_sets_watermark(
    source, source_datasource, make_context, embedder, vector_store
):
    await source.insert("A", "B", "C")
    datasource = await source_datasource()

    job, result = await _run(make_context, datasource, embedder, vector_store)

    assert result.status == SyncJobStatus.COMPLETED
    assert result.processed == 3
    stored = await sync_job_service.get(job.id)
    reloaded = await _reload(datasource.id)
    assert reloaded.last_synced_at == stored.started_at


@pytest.mark.asyncio
async def test_only_rows_changed_after_watermark_are_synced(
    source, source_datasource, make_context, embedder, vector_store
):
    await source.insert(
        {"code": "OLD", "updated_at": "2024-01-01 00:00:00"},
        {"code": "NEW", "updated_at": "2024-07-01 08:00:00"},
    )
    datasource = await source_datasource()
    await sync_job_service.advance_watermark(datasource.id, datetime(2024, 6, 1))
    datasource = await _reload(datasource.id)

    job, result = await _run(make_context, datasource, embedder, vector_store)

    assert result.processed == 1
    assert list(vector_store.points()) == [point_id_for("NEW")]
    assert (await sync_job_service.get(job.id)).total_records == 1


@pytest.mark.asyncio
async def test_no_changes_completes_without_batches(
    source, source_datasource, make_context, embedder, vector_store
):
    await source.insert({"code": "OLD", "updated_at": "2024-01-01 00:00:00"})
    datasource = await source_datasource()
    await sync_job_service.advance_watermark(datasource.id, datetime(2024, 6, 1))
    datasource = await _reload(datasource.id)

    job, result = await _run(make_context, datasource, embedder, vector_store)

    assert result.status == SyncJobStatus.COMPLETED
    assert result.batches == 0
    assert embedder.calls == []
    assert (await sync_job_service.get(job.id)).total_records == 0


@pytest.mark.asyncio
async def test_watermark_never_moves_backwards(
    source, source_datasource, make_context, embedder, vector_store
):
    datasource = await source_datasource()
    await sync_job_service.advance_watermark(datasource.id, datetime(2030, 1, 1))
    datasource = await _reload(datasource.id)

    _, result = await _run(
        make_context, datasource, embedder, vector_store, started_at=datetime(2025, 1, 1)
    )

    assert result.status == SyncJobStatus.COMPLETED
    assert (await _reload(datasource.id)).last_synced_at == datetime(2030, 1, 1)


@pytest.mark.asyncio
async def test_rows_changed_during_run_are_picked_up_next_time(
    source, source_datasource, make_context, embedder, vector_store
):
    await source.insert({"code": "A", "updated_at": "2024-03-01 00:00:00"})
    datasource = await source_datasource()

    await _run(
        make_context, datasource, embedder, vector_store, started_at=datetime(2024, 3, 1, 0, 0, 5)
    )
    # Changed after the first job started but before it finished
    await source.update("A", updated_at="2024-03-01 00:00:10", name="Changed")
    datasource = await _reload(datasource.id)
    _, result = await _run(
        make_context, datasource, embedder, vector_store, started_at=datetime(2024, 3, 2)
    )

    assert result.processed == 1
    assert vector_store.points()[point_id_for("A")].payload["title"] == "Changed"
    assert (await _reload(datasource.id)).last_synced_at == datetime(2024, 3, 2)


@pytest.mark.asyncio
async def test_incremental_sync_pauses_between_batches(
    source, source_datasource, make_context, embedder, vector_store
):
    await source.insert("A", "B", "C", "D", "E")
    datasource = await source_datasource(batch_delay_ms=250)
    job = await sync_job_service.create_job(datasource.id, "incremental")
    context = await make_context(job, datasource, embedder, vector_store)

    with patch(
        "relsync.platform.sync.processors.incremental.asyncio.sleep", new_callable=AsyncMock
    ) as sleep:
        result = await IncrementalSyncProcessor(context).run()

    assert result.batches == 3
    assert [c.args[0] for c in sleep.await_args_list] == [0.25, 0.25]
