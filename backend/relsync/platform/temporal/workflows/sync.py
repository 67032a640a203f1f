"""Temporal workflows for sync jobs."""

from datetime import timedelta
from typing import Any, Dict, Optional

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.workflow import ActivityCancellationType

with workflow.unsafe.imports_passed_through():
    from relsync.core.shared_models import SyncJobType
    from relsync.platform.temporal.activities import (
        create_sync_job_activity,
        run_sync_job_activity,
    )

SYNC_ACTIVITY_TIMEOUT = timedelta(days=7)
SYNC_HEARTBEAT_TIMEOUT = timedelta(minutes=5)


def retry_policy_for(sync_type: str) -> RetryPolicy:
    """Re-dispatch policy of a sync job.

    Full and incremental jobs get 3 attempts with exponential backoff from 5s;
    webhook jobs get 2 attempts 3s apart. Job-level failures are never retried.
    """
    if sync_type == SyncJobType.WEBHOOK.value:
        return RetryPolicy(
            initial_interval=timedelta(seconds=3),
            backoff_coefficient=1.0,
            maximum_attempts=2,
            non_retryable_error_types=["SyncFailureError"],
        )
    return RetryPolicy(
        initial_interval=timedelta(seconds=5),
        backoff_coefficient=2.0,
        maximum_attempts=3,
        non_retryable_error_types=["SyncFailureError"],
    )


@workflow.defn
class RunSyncJobWorkflow:
    """Runs one dispatched sync job."""

    @workflow.run
    async def run(self, dispatch_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Execute the sync activity with the job type's retry policy.

        Args:
            dispatch_dict: The work descriptor as dict

        Returns:
            Summary of the run
        """
        return await workflow.execute_activity(
            run_sync_job_activity,
            dispatch_dict,
            start_to_close_timeout=SYNC_ACTIVITY_TIMEOUT,
            heartbeat_timeout=SYNC_HEARTBEAT_TIMEOUT,
            retry_policy=retry_policy_for(dispatch_dict["type"]),
            cancellation_type=ActivityCancellationType.WAIT_CANCELLATION_COMPLETED,
        )


@workflow.defn
class ScheduledSyncWorkflow:
    """Cron-triggered full sync of a datasource."""

    @workflow.run
    async def run(self, datasource_id: str) -> Optional[Dict[str, Any]]:
        """Create the job, then run it as a child workflow.

        Args:
            datasource_id: Datasource the schedule belongs to

        Returns:
            Summary of the run, or None if the run was skipped
        """
        dispatch = await workflow.execute_activity(
            create_sync_job_activity,
            datasource_id,
            start_to_close_timeout=timedelta(minutes=1),
            retry_policy=RetryPolicy(maximum_attempts=3),
        )
        if dispatch is None:
            workflow.logger.info(f"Scheduled sync of datasource {datasource_id} skipped")
            return None

        return await workflow.execute_child_workflow(
            RunSyncJobWorkflow.run,
            dispatch,
            id=f"sync-job-{dispatch['job_id']}",
        )
