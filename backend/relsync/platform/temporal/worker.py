"""Temporal worker for relsync."""

import asyncio
import signal
import socket
import time
from datetime import timedelta
from typing import Any

from aiohttp import web
from temporalio.worker import Worker

from relsync.core.config import settings
from relsync.core.logging import logger
from relsync.platform.destinations.qdrant import close_vector_stores
from relsync.platform.sources.sql import close_source_connectors
from relsync.platform.temporal.client import temporal_client
from relsync.platform.temporal.prometheus_metrics import (
    get_prometheus_metrics,
    update_worker_metrics,
)
from relsync.platform.temporal.schedule_service import schedule_registry


class TemporalWorker:
    """Temporal worker for processing workflows and activities."""

    def __init__(self) -> None:
        """Initialize the Temporal worker."""
        self.worker: Worker | None = None
        self.running = False
        self.draining = False
        self.metrics_server = None
        self.worker_id = socket.gethostname()
        self.started_at = time.monotonic()

    async def start(self) -> None:
        """Start the Temporal worker."""
        try:
            try:
                await self._start_control_server()
            except Exception as e:
                logger.warning(f"Failed to start control server (metrics unavailable): {e}")

            client = await temporal_client.get_client()
            task_queue = settings.TEMPORAL_TASK_QUEUE
            logger.info(f"Starting Temporal worker on task queue: {task_queue}")

            await self._register_schedules()

            from relsync.platform.temporal.activities import (
                cleanup_old_sync_jobs_activity,
                cleanup_stuck_sync_jobs_activity,
                create_sync_job_activity,
                run_sync_job_activity,
            )
            from relsync.platform.temporal.workflows import (
                CleanupOldSyncJobsWorkflow,
                CleanupStuckSyncJobsWorkflow,
                RunSyncJobWorkflow,
                ScheduledSyncWorkflow,
            )

            self.worker = Worker(
                client,
                task_queue=task_queue,
                workflows=[
                    RunSyncJobWorkflow,
                    ScheduledSyncWorkflow,
                    CleanupStuckSyncJobsWorkflow,
                    CleanupOldSyncJobsWorkflow,
                ],
                activities=[
                    run_sync_job_activity,
                    create_sync_job_activity,
                    cleanup_stuck_sync_jobs_activity,
                    cleanup_old_sync_jobs_activity,
                ],
                workflow_runner=self._get_sandbox_config(),
                max_concurrent_activities=settings.TEMPORAL_MAX_CONCURRENT_ACTIVITIES,
                # Speed up cancel delivery by flushing heartbeats frequently
                default_heartbeat_throttle_interval=timedelta(seconds=2),
                max_heartbeat_throttle_interval=timedelta(seconds=2),
                graceful_shutdown_timeout=timedelta(
                    seconds=settings.TEMPORAL_GRACEFUL_SHUTDOWN_TIMEOUT
                ),
            )

            self.running = True
            logger.info(
                f"Worker started with graceful shutdown timeout: "
                f"{settings.TEMPORAL_GRACEFUL_SHUTDOWN_TIMEOUT}s"
            )
            await self.worker.run()

        except Exception as e:
            logger.error(f"Error starting Temporal worker: {e}")
            raise

    async def stop(self) -> None:
        """Stop the Temporal worker."""
        if self.worker and self.running:
            logger.info("Stopping worker gracefully")
            self.running = False
            await self.worker.shutdown()

        if self.metrics_server:
            try:
                await self.metrics_server.cleanup()
            except Exception as e:
                logger.warning(f"Metrics server cleanup skipped: {e}")

        await close_source_connectors()
        await close_vector_stores()
        await temporal_client.close()

    async def _register_schedules(self) -> None:
        """Create the reaper schedules and one schedule per scheduled datasource."""
        try:
            await schedule_registry.ensure_reaper_schedules()
            await schedule_registry.sync_all_from_db()
        except Exception as e:
            logger.error(f"Failed to register schedules: {e}", exc_info=True)

    async def _start_control_server(self):
        """Start HTTP server for drain control, health and metrics."""
        app = web.Application()
        app.router.add_post("/drain", self._handle_drain)
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/metrics", self._handle_prometheus_metrics)

        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, "0.0.0.0", settings.WORKER_METRICS_PORT)
        await site.start()
        self.metrics_server = runner
        logger.info(
            f"Control server started on 0.0.0.0:{settings.WORKER_METRICS_PORT} "
            f"(endpoints: /health, /metrics, /drain)"
        )

    async def _handle_drain(self, request):
        """Stop polling for new work; running activities finish."""
        logger.warning("DRAIN: Initiating graceful worker shutdown")
        self.draining = True
        if self.worker:
            asyncio.create_task(self._shutdown_worker())
        return web.Response(text="Drain initiated")

    async def _shutdown_worker(self):
        """Shutdown worker to stop polling."""
        try:
            if self.worker:
                await self.worker.shutdown()
            logger.info("Worker shutdown complete")
        except Exception as e:
            logger.error(f"Error during worker shutdown: {e}")

    def _status(self) -> str:
        if self.draining:
            return "draining"
        if not self.running:
            return "stopped"
        return "running"

    async def _handle_health(self, request):
        """Health check endpoint.

        Returns:
            200 OK: Worker is running and accepting work
            503 Service Unavailable: Worker is not running or draining
        """
        if not self.running:
            return web.Response(text="NOT_RUNNING", status=503)
        if self.draining:
            return web.Response(text="DRAINING", status=503)
        return web.Response(text="OK", status=200)

    async def _handle_prometheus_metrics(self, request):
        """Prometheus metrics endpoint."""
        try:
            update_worker_metrics(
                worker_id=self.worker_id,
                status=self._status(),
                uptime_seconds=time.monotonic() - self.started_at,
                task_queue=settings.TEMPORAL_TASK_QUEUE,
            )
            return web.Response(
                body=get_prometheus_metrics(),
                content_type="text/plain; version=0.0.4",
                charset="utf-8",
            )
        except Exception as e:
            logger.error(f"Error generating Prometheus metrics: {e}", exc_info=True)
            return web.Response(text=f"Error: {str(e)}", status=500)

    def _get_sandbox_config(self):
        """Determine the appropriate sandbox configuration."""
        if settings.TEMPORAL_DISABLE_SANDBOX:
            from temporalio.worker import UnsandboxedWorkflowRunner

            logger.warning("TEMPORAL SANDBOX DISABLED - Use only for debugging!")
            return UnsandboxedWorkflowRunner()

        from temporalio.worker.workflow_sandbox import SandboxedWorkflowRunner

        return SandboxedWorkflowRunner()


async def main() -> None:
    """Main function to run the worker."""
    worker = TemporalWorker()

    def signal_handler(signum: int, frame: Any) -> None:
        logger.info(f"Received signal {signum}, shutting down...")
        asyncio.create_task(worker.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await worker.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        await worker.stop()


def run() -> None:
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
