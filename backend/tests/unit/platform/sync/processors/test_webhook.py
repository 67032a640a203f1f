"""Tests for the webhook sync processor."""

from unittest.mock import patch

import pytest

from relsync.core.shared_models import SyncJobStatus
from relsync.core.sync_job_service import sync_job_service
from relsync.platform.destinations._base import VectorPoint
from relsync.platform.sync.identity import point_id_for
from relsync.platform.sync.processors import FullSyncProcessor, WebhookSyncProcessor


async def _run(make_context, datasource, embedder, vector_store, codes):
    job = await sync_job_service.create_job(datasource.id, "webhook", total_records=len(codes))
    context = await make_context(job, datasource, embedder, vector_store, codes=codes)
    return job, await WebhookSyncProcessor(context).run()


@pytest.mark.asyncio
async def test_existing_codes_upserted_missing_codes_deleted(
    source, source_datasource, make_context, embedder, vector_store
):
    await source.insert({"code": "A", "name": "Alpha"})
    vector_store.points()[point_id_for("GONE")] = VectorPoint(
        id=point_id_for("GONE"), vector=[0.0, 0.0, 0.0, 1.0], payload={"_original_id": "GONE"}
    )
    datasource = await source_datasource()

    job, result = await _run(make_context, datasource, embedder, vector_store, ["A", "GONE"])

    assert result.status == SyncJobStatus.COMPLETED
    assert (result.processed, result.successful, result.failed) == (2, 2, 0)
    assert list(vector_store.points()) == [point_id_for("A")]
    assert vector_store.points()[point_id_for("A")].payload["title"] == "Alpha"
    stored = await sync_job_service.get(job.id)
    assert (stored.total_records, stored.processed_records, stored.successful_records) == (2, 2, 2)


@pytest.mark.asyncio
async def test_webhook_point_matches_full_sync_point(
    source, source_datasource, make_context, embedder, vector_store
):
    await source.insert("A")
    datasource = await source_datasource()

    await _run(make_context, datasource, embedder, vector_store, ["A"])

    assert vector_store.points()[point_id_for("A")].payload["_original_id"] == "A"


@pytest.mark.asyncio
async def test_record_failure_is_isolated_to_its_code(
    source, source_datasource, make_context, embedder, vector_store
):
    await source.insert("A", {"code": "B", "name": ""})
    datasource = await source_datasource()

    job, result = await _run(make_context, datasource, embedder, vector_store, ["A", "B"])

    assert result.status == SyncJobStatus.COMPLETED
    assert (result.successful, result.failed) == (1, 1)
    errors = await sync_job_service.get_errors(job.id)
    assert [(e.error_type, e.record_identifier) for e in errors] == [("embedding_error", "B")]


@pytest.mark.asyncio
async def test_lookup_failures_are_recorded_per_code(
    source, source_datasource, make_context, embedder, vector_store
):
    datasource = await source_datasource(
        query_template="SELECT code, name FROM missing ORDER BY code "
        "LIMIT {{limit}} OFFSET {{offset}}"
    )

    job, result = await _run(make_context, datasource, embedder, vector_store, ["A", "B"])

    assert result.status == SyncJobStatus.COMPLETED
    assert result.failed == 2
    errors = await sync_job_service.get_errors(job.id)
    assert {e.record_identifier for e in errors} == {"A", "B"}
    assert {e.error_type for e in errors} == {"query_error"}


@pytest.mark.asyncio
async def test_codes_are_processed_in_chunks(
    source, source_datasource, make_context, embedder, vector_store
):
    await source.insert("A", "B", "C")
    datasource = await source_datasource()

    with patch("relsync.platform.sync.processors.webhook.settings") as mock_settings:
        mock_settings.WEBHOOK_CHUNK_SIZE = 2
        job, result = await _run(make_context, datasource, embedder, vector_store, ["A", "B", "C"])

    assert result.batches == 2
    assert (await sync_job_service.get(job.id)).processed_records == 3


@pytest.mark.asyncio
async def test_qualified_id_field_gives_full_and_webhook_the_same_points(
    source, source_datasource, make_context, embedder, vector_store
):
    await source.insert("A", "B")
    datasource = await source_datasource(
        query_template=(
            "SELECT p.code, p.name, p.description, p.price FROM products p "
            "ORDER BY p.code LIMIT {{limit}} OFFSET {{offset}}"
        ),
        id_field="p.code",
    )
    full_job = await sync_job_service.create_job(datasource.id, "full")
    context = await make_context(full_job, datasource, embedder, vector_store)
    await FullSyncProcessor(context).run()

    points = vector_store.points()
    assert set(points) == {point_id_for("A"), point_id_for("B")}
    assert sorted(p.payload["_original_id"] for p in points.values()) == ["A", "B"]

    await source.delete("A")
    _, result = await _run(make_context, datasource, embedder, vector_store, ["A", "B"])

    assert result.status == SyncJobStatus.COMPLETED
    assert list(vector_store.points()) == [point_id_for("B")]
