"""Tests for the worker's Prometheus metrics."""

from relsync.platform.temporal.prometheus_metrics import (
    get_prometheus_metrics,
    record_batch_outcome,
    record_failure,
    update_worker_metrics,
    worker_registry,
)


def _value(name, labels):
    return worker_registry.get_sample_value(name, labels) or 0.0


def test_update_worker_metrics_basic():
    """Worker gauges are exported under the relsync prefix."""
    update_worker_metrics(
        worker_id="worker-1", status="running", uptime_seconds=100.0, task_queue="test-queue"
    )

    metrics_str = get_prometheus_metrics().decode("utf-8")

    assert "relsync_worker_status" in metrics_str
    assert "relsync_worker_uptime_seconds" in metrics_str
    assert _value("relsync_worker_status", {"worker_id": "worker-1"}) == 1
    assert _value("relsync_worker_uptime_seconds", {"worker_id": "worker-1"}) == 100.0


def test_worker_status_values():
    """Draining and stopped map to 2 and 0."""
    update_worker_metrics("worker-2", "draining", 1.0, "test-queue")
    assert _value("relsync_worker_status", {"worker_id": "worker-2"}) == 2

    update_worker_metrics("worker-2", "stopped", 2.0, "test-queue")
    assert _value("relsync_worker_status", {"worker_id": "worker-2"}) == 0


def test_record_batch_outcome_counts_by_outcome():
    labels_ok = {"sync_type": "full", "outcome": "success"}
    labels_failed = {"sync_type": "full", "outcome": "failure"}
    before_ok = _value("relsync_records_processed_total", labels_ok)
    before_failed = _value("relsync_records_processed_total", labels_failed)

    record_batch_outcome("full", successful=8, failed=2)
    record_batch_outcome("full", successful=0, failed=0)

    assert _value("relsync_records_processed_total", labels_ok) == before_ok + 8
    assert _value("relsync_records_processed_total", labels_failed) == before_failed + 2


def test_record_failure_counts_by_category():
    labels = {"sync_type": "webhook", "category": "embedding_error"}
    before = _value("relsync_failed_batches_total", labels)

    record_failure("webhook", "embedding_error")

    assert _value("relsync_failed_batches_total", labels) == before + 1
