"""Temporal activities for running sync jobs."""

import asyncio
from contextlib import suppress
from dataclasses import asdict
from typing import Any, Dict, Optional

from temporalio import activity
from temporalio.exceptions import ApplicationError


async def _run_sync_job(dispatch, progress: Dict[str, Any], logger) -> Dict[str, Any]:
    """Build the processor for a dispatched job and run it."""
    from relsync.core.sync_job_service import sync_job_service
    from relsync.platform.sync.exceptions import SyncFailureError
    from relsync.platform.sync.factory import SyncFactory

    try:
        processor = await SyncFactory.create_processor(dispatch, report_progress=progress.update)
    except SyncFailureError as e:
        logger.error(f"Could not set up sync job {dispatch.job_id}: {e.message}")
        await sync_job_service.record_error(dispatch.job_id, e.category, e.message)
        await sync_job_service.fail(dispatch.job_id, e.message)
        raise

    result = await processor.run()
    summary = asdict(result)
    summary["status"] = result.status.value
    return summary


@activity.defn
async def run_sync_job_activity(dispatch_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Activity to run one sync job to a terminal state.

    Heartbeats every second with the latest progress details. Job-level
    failures are raised as non-retryable errors; the job is already marked
    failed by then.

    Args:
        dispatch_dict: The work descriptor as dict

    Returns:
        Summary of the run (status and counters)
    """
    # Import here to avoid Temporal sandboxing issues
    from relsync import schemas
    from relsync.core.logging import LoggerConfigurator
    from relsync.platform.sync.exceptions import SyncFailureError

    dispatch = schemas.SyncJobDispatch(**dispatch_dict)
    logger = LoggerConfigurator.configure_logger(
        "relsync.temporal.activity",
        dimensions={
            "sync_job_id": str(dispatch.job_id),
            "datasource_id": str(dispatch.datasource_id),
            "sync_type": dispatch.type,
        },
    )

    logger.info(f"Starting sync activity for job {dispatch.job_id}")
    progress: Dict[str, Any] = {}
    sync_task = asyncio.create_task(_run_sync_job(dispatch, progress, logger))

    try:
        while True:
            done, _ = await asyncio.wait({sync_task}, timeout=1)
            if sync_task in done:
                summary = await sync_task
                break
            activity.heartbeat(dict(progress) or "Sync in progress")

        logger.info(f"Completed sync activity for job {dispatch.job_id}: {summary}")
        return summary

    except asyncio.CancelledError:
        logger.info(f"Sync activity cancelled for job {dispatch.job_id}")
        try:
            from relsync.core.sync_job_service import sync_job_service

            await sync_job_service.cancel(dispatch.job_id)
        except Exception as status_err:
            logger.error(f"Failed to mark job {dispatch.job_id} cancelled: {status_err}")

        sync_task.cancel()
        while not sync_task.done():
            await asyncio.wait({sync_task}, timeout=1)
            if not sync_task.done():
                activity.heartbeat("Cancelling sync...")
        with suppress(asyncio.CancelledError):
            await sync_task
        raise

    except SyncFailureError as e:
        raise ApplicationError(
            e.message, e.category.value, type="SyncFailureError", non_retryable=True
        ) from e

    except Exception as e:
        logger.error(f"Failed sync activity for job {dispatch.job_id}: {e}")
        raise


@activity.defn
async def create_sync_job_activity(datasource_id: str) -> Optional[Dict[str, Any]]:
    """Create the pending job of a scheduled full sync.

    Args:
        datasource_id: Datasource the schedule belongs to

    Returns:
        The work descriptor as dict, or None if the run was skipped
    """
    from uuid import UUID

    from relsync import schemas
    from relsync.core.sync_service import sync_service

    sync_job = await sync_service.create_scheduled_job(UUID(datasource_id))
    if sync_job is None:
        return None
    dispatch = schemas.SyncJobDispatch(
        job_id=sync_job.id, datasource_id=sync_job.datasource_id, type=sync_job.type
    )
    return dispatch.model_dump(mode="json")
