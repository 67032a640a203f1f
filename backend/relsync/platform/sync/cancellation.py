"""Cooperative cancellation.

An executing batch is never interrupted; processors poll the token between
batches and stop once the job has left the running state.
"""

from typing import Awaitable, Callable, Optional
from uuid import UUID

from relsync.core.shared_models import SyncJobStatus

StatusReader = Callable[[UUID], Awaitable[Optional[SyncJobStatus]]]


class CancellationToken:
    """Re-reads the job status on every check."""

    def __init__(self, sync_job_id: UUID, read_status: StatusReader):
        """Initialize the token.

        Args:
            sync_job_id: Job to watch
            read_status: Coroutine returning the job's current status
        """
        self.sync_job_id = sync_job_id
        self._read_status = read_status
        self.last_status: Optional[SyncJobStatus] = None

    async def is_cancelled(self) -> bool:
        """True once the job is no longer running (cancelled, reaped or deleted)."""
        status = await self._read_status(self.sync_job_id)
        self.last_status = status
        return status != SyncJobStatus.RUNNING
