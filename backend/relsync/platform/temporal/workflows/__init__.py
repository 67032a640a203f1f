"""Temporal workflows for relsync."""

from relsync.platform.temporal.workflows.cleanup import (
    CleanupOldSyncJobsWorkflow,
    CleanupStuckSyncJobsWorkflow,
)
from relsync.platform.temporal.workflows.sync import (
    RunSyncJobWorkflow,
    ScheduledSyncWorkflow,
    retry_policy_for,
)

__all__ = [
    # Sync workflows
    "RunSyncJobWorkflow",
    "ScheduledSyncWorkflow",
    "retry_policy_for",
    # Cleanup workflows
    "CleanupStuckSyncJobsWorkflow",
    "CleanupOldSyncJobsWorkflow",
]
