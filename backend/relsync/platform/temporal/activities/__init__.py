"""Temporal activities for relsync."""

from relsync.platform.temporal.activities.cleanup import (
    cleanup_old_sync_jobs_activity,
    cleanup_stuck_sync_jobs_activity,
)
from relsync.platform.temporal.activities.sync import (
    create_sync_job_activity,
    run_sync_job_activity,
)

__all__ = [
    # Sync activities
    "run_sync_job_activity",
    "create_sync_job_activity",
    # Cleanup activities
    "cleanup_stuck_sync_jobs_activity",
    "cleanup_old_sync_jobs_activity",
]
