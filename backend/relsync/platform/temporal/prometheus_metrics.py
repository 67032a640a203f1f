"""Prometheus metrics for sync workers."""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Info,
    ProcessCollector,
    generate_latest,
)

# Custom registry for worker metrics
worker_registry = CollectorRegistry()

# Process metrics (memory, CPU, file descriptors)
ProcessCollector(registry=worker_registry, namespace="relsync_worker")

worker_info = Info(
    "relsync_worker",
    "Static information about this Temporal worker",
    registry=worker_registry,
)

worker_uptime_seconds = Gauge(
    "relsync_worker_uptime_seconds",
    "Worker uptime in seconds since start",
    ["worker_id"],
    registry=worker_registry,
)

# 0=stopped, 1=running, 2=draining
worker_status = Gauge(
    "relsync_worker_status",
    "Worker status: 0=stopped, 1=running, 2=draining",
    ["worker_id"],
    registry=worker_registry,
)

active_sync_jobs = Gauge(
    "relsync_active_sync_jobs",
    "Number of sync jobs currently executing in this worker",
    ["sync_type"],
    registry=worker_registry,
)

records_processed_total = Counter(
    "relsync_records_processed_total",
    "Source records processed, by outcome",
    ["sync_type", "outcome"],
    registry=worker_registry,
)

failed_batches_total = Counter(
    "relsync_failed_batches_total",
    "Batches (or single records) that failed, by error category",
    ["sync_type", "category"],
    registry=worker_registry,
)


def record_batch_outcome(sync_type: str, successful: int, failed: int) -> None:
    """Count a batch's records by outcome."""
    if successful:
        records_processed_total.labels(sync_type=sync_type, outcome="success").inc(successful)
    if failed:
        records_processed_total.labels(sync_type=sync_type, outcome="failure").inc(failed)


def record_failure(sync_type: str, category: str) -> None:
    """Count a failed batch or record."""
    failed_batches_total.labels(sync_type=sync_type, category=category).inc()


def update_worker_metrics(
    worker_id: str, status: str, uptime_seconds: float, task_queue: str
) -> None:
    """Update worker-level gauges.

    Args:
        worker_id: Unique identifier for the worker
        status: "running", "draining" or "stopped"
        uptime_seconds: Worker uptime in seconds
        task_queue: Task queue the worker polls
    """
    worker_info.info({"worker_id": worker_id, "task_queue": task_queue})
    status_value = {"stopped": 0, "running": 1, "draining": 2}.get(status, 0)
    worker_uptime_seconds.labels(worker_id=worker_id).set(uptime_seconds)
    worker_status.labels(worker_id=worker_id).set(status_value)


def get_prometheus_metrics() -> bytes:
    """Generate Prometheus metrics in text format."""
    return generate_latest(worker_registry)
