"""Stale job reaper and job retention.

Provides the two periodic cleanup operations:
- Fail running jobs that stopped making progress
- Delete finished jobs past the retention window
"""

from datetime import timedelta
from typing import Optional

from relsync import crud
from relsync.core.config import settings
from relsync.core.datetime_utils import utc_now_naive
from relsync.core.logging import logger
from relsync.core.shared_models import SyncErrorType, SyncJobStatus
from relsync.core.sync_job_service import sync_job_service
from relsync.db.session import get_db_context
from relsync.models.sync_job import SyncJob


class CleanupService:
    """Service for cleaning up stale and expired sync jobs."""

    async def mark_stale_jobs_failed(self, timeout_minutes: Optional[int] = None) -> int:
        """Fail running jobs that started and last progressed before the timeout.

        The update is conditional on the job still being running and idle, so a
        job that finishes or progresses in the meantime is left alone.

        Args:
            timeout_minutes: Idle threshold; defaults to `STALE_JOB_TIMEOUT_MINUTES`

        Returns:
            Number of jobs marked failed
        """
        timeout = timeout_minutes or settings.STALE_JOB_TIMEOUT_MINUTES
        now = utc_now_naive()
        cutoff = now - timedelta(minutes=timeout)
        message = f"Job timed out: no progress for {timeout} minutes"

        failed_ids = []
        async with get_db_context() as db:
            stuck_jobs = await crud.sync_job.get_stuck_jobs(
                db, started_before=cutoff, idle_since=cutoff
            )
            logger.info(f"Found {len(stuck_jobs)} running jobs idle for > {timeout} minutes")

            for job in stuck_jobs:
                moved = await crud.sync_job.transition(
                    db,
                    id=job.id,
                    to_status=SyncJobStatus.FAILED,
                    from_statuses=[SyncJobStatus.RUNNING],
                    values={"completed_at": now, "error": message},
                    conditions=[SyncJob.modified_at < cutoff],
                )
                if not moved:
                    logger.info(f"Job {job.id} changed since it was read; skipping")
                    continue
                failed_ids.append(job.id)
                logger.warning(f"Marked stale job {job.id} as failed")

        for job_id in failed_ids:
            await sync_job_service.record_error(job_id, SyncErrorType.JOB_ERROR, message)
        return len(failed_ids)

    async def delete_old_jobs(self, retention_days: Optional[int] = None) -> int:
        """Delete completed and cancelled jobs finished before the retention window.

        Args:
            retention_days: Window in days; defaults to `JOB_RETENTION_DAYS`

        Returns:
            Number of jobs deleted
        """
        days = retention_days or settings.JOB_RETENTION_DAYS
        cutoff = utc_now_naive() - timedelta(days=days)
        async with get_db_context() as db:
            deleted = await crud.sync_job.delete_finished_before(db, completed_before=cutoff)
        logger.info(f"Deleted {deleted} finished sync jobs older than {days} days")
        return deleted


cleanup_service = CleanupService()
