"""Service for dispatching sync jobs to Temporal."""

from uuid import UUID

from temporalio.client import WorkflowHandle
from temporalio.service import RPCError, RPCStatusCode

from relsync import schemas
from relsync.core.config import settings
from relsync.core.logging import logger
from relsync.platform.temporal.client import temporal_client


def workflow_id_for(sync_job_id: UUID) -> str:
    """Workflow ID of a sync job's execution."""
    return f"sync-job-{sync_job_id}"


class TemporalService:
    """Starts and cancels sync job workflows."""

    async def start_sync_job_workflow(self, dispatch: schemas.SyncJobDispatch) -> WorkflowHandle:
        """Enqueue a sync job.

        Args:
            dispatch: Work descriptor of the job

        Returns:
            Handle of the started workflow
        """
        from relsync.platform.temporal.workflows import RunSyncJobWorkflow

        client = await temporal_client.get_client()
        workflow_id = workflow_id_for(dispatch.job_id)
        handle = await client.start_workflow(
            RunSyncJobWorkflow.run,
            dispatch.model_dump(mode="json"),
            id=workflow_id,
            task_queue=settings.TEMPORAL_TASK_QUEUE,
        )
        logger.info(f"Started workflow {workflow_id} for {dispatch.type} job {dispatch.job_id}")
        return handle

    async def cancel_sync_job_workflow(self, sync_job_id: UUID) -> bool:
        """Request cancellation of a job's workflow.

        Returns:
            True if the request was delivered, False if no workflow was found
        """
        client = await temporal_client.get_client()
        workflow_id = workflow_id_for(sync_job_id)
        try:
            await client.get_workflow_handle(workflow_id).cancel()
        except RPCError as e:
            if e.status == RPCStatusCode.NOT_FOUND:
                logger.info(f"No workflow {workflow_id} to cancel")
                return False
            raise
        logger.info(f"Requested cancellation of workflow {workflow_id}")
        return True


temporal_service = TemporalService()
