"""Temporal workflows for the stale job reaper and job retention."""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from relsync.platform.temporal.activities import (
        cleanup_old_sync_jobs_activity,
        cleanup_stuck_sync_jobs_activity,
    )


@workflow.defn
class CleanupStuckSyncJobsWorkflow:
    """Fails running jobs that stopped making progress."""

    @workflow.run
    async def run(self) -> int:
        """Run the stuck job sweep."""
        return await workflow.execute_activity(
            cleanup_stuck_sync_jobs_activity,
            start_to_close_timeout=timedelta(minutes=5),
            retry_policy=RetryPolicy(maximum_attempts=3),
        )


@workflow.defn
class CleanupOldSyncJobsWorkflow:
    """Deletes finished jobs past the retention window."""

    @workflow.run
    async def run(self) -> int:
        """Run the retention sweep."""
        return await workflow.execute_activity(
            cleanup_old_sync_jobs_activity,
            start_to_close_timeout=timedelta(minutes=15),
            retry_policy=RetryPolicy(maximum_attempts=3),
        )
