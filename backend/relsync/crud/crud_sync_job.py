"""CRUD operations for sync jobs.

Counter and status writes are single UPDATE statements so concurrent writers
(the processor, a cancel request, the reaper) never lose each other's changes.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from relsync.core.datetime_utils import utc_now_naive
from relsync.core.shared_models import SyncJobStatus
from relsync.models.sync_job import SyncJob


class CRUDSyncJob:
    """CRUD operations for sync jobs."""

    def __init__(self):
        """Initialize the CRUD object."""
        self.model = SyncJob

    async def get(self, db: AsyncSession, id: UUID) -> Optional[SyncJob]:
        """Get sync job by ID.

        Args:
            db: Database session
            id: Sync job ID

        Returns:
            SyncJob if found, None otherwise
        """
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        datasource_id: Optional[UUID] = None,
        limit: int = 50,
    ) -> List[SyncJob]:
        """List jobs, newest first.

        Args:
            db: Database session
            datasource_id: Restrict to one datasource
            limit: Maximum number of jobs

        Returns:
            List of sync jobs
        """
        query = select(self.model).order_by(self.model.created_at.desc()).limit(limit)
        if datasource_id is not None:
            query = query.where(self.model.datasource_id == datasource_id)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_active_by_datasource(
        self, db: AsyncSession, *, datasource_id: UUID
    ) -> List[SyncJob]:
        """Pending or running jobs of a datasource.

        Args:
            db: Database session
            datasource_id: Datasource ID

        Returns:
            List of active sync jobs
        """
        result = await db.execute(
            select(self.model).where(
                self.model.datasource_id == datasource_id,
                self.model.status.in_(
                    [SyncJobStatus.PENDING.value, SyncJobStatus.RUNNING.value]
                ),
            )
        )
        return list(result.scalars().all())

    async def create(
        self,
        db: AsyncSession,
        *,
        datasource_id: UUID,
        type: str,
        total_records: Optional[int] = None,
        job_metadata: Optional[Dict[str, Any]] = None,
    ) -> SyncJob:
        """Insert a pending sync job.

        Args:
            db: Database session
            datasource_id: Owning datasource
            type: Sync mode
            total_records: Known total, if any
            job_metadata: Free-form metadata

        Returns:
            Created sync job
        """
        db_obj = self.model(
            datasource_id=datasource_id,
            type=type,
            status=SyncJobStatus.PENDING.value,
            total_records=total_records,
            processed_records=0,
            successful_records=0,
            failed_records=0,
            job_metadata=job_metadata or {},
        )
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def increment_counters(
        self,
        db: AsyncSession,
        *,
        id: UUID,
        processed: int,
        successful: int,
        failed: int,
    ) -> None:
        """Atomically add to the three progress counters.

        Args:
            db: Database session
            id: Sync job ID
            processed: Records attempted
            successful: Records that succeeded
            failed: Records that failed
        """
        await db.execute(
            update(self.model)
            .where(self.model.id == id)
            .values(
                processed_records=self.model.processed_records + processed,
                successful_records=self.model.successful_records + successful,
                failed_records=self.model.failed_records + failed,
                modified_at=utc_now_naive(),
            )
        )
        await db.commit()

    async def transition(
        self,
        db: AsyncSession,
        *,
        id: UUID,
        to_status: SyncJobStatus,
        from_statuses: Iterable[SyncJobStatus],
        values: Optional[Dict[str, Any]] = None,
        conditions: Iterable[Any] = (),
    ) -> bool:
        """Conditionally move a job to a new status.

        Args:
            db: Database session
            id: Sync job ID
            to_status: Target status
            from_statuses: Statuses the job must currently be in
            values: Extra columns to set in the same statement
            conditions: Extra WHERE clauses the row must satisfy

        Returns:
            True if the row was updated, False if its status did not match
        """
        allowed = [s.value for s in from_statuses]
        result = await db.execute(
            update(self.model)
            .where(self.model.id == id, self.model.status.in_(allowed), *conditions)
            .values(status=to_status.value, modified_at=utc_now_naive(), **(values or {}))
        )
        await db.commit()
        return result.rowcount > 0

    async def update_fields(self, db: AsyncSession, *, id: UUID, values: Dict[str, Any]) -> None:
        """Set non-status columns (total, metadata).

        Args:
            db: Database session
            id: Sync job ID
            values: Columns to set
        """
        await db.execute(
            update(self.model)
            .where(self.model.id == id)
            .values(modified_at=utc_now_naive(), **values)
        )
        await db.commit()

    async def get_stuck_jobs(
        self, db: AsyncSession, *, started_before: datetime, idle_since: datetime
    ) -> List[SyncJob]:
        """Running jobs that started and last progressed before the cutoffs.

        Args:
            db: Database session
            started_before: `started_at` cutoff
            idle_since: `modified_at` cutoff

        Returns:
            List of stuck jobs
        """
        result = await db.execute(
            select(self.model).where(
                self.model.status == SyncJobStatus.RUNNING.value,
                self.model.started_at < started_before,
                self.model.modified_at < idle_since,
            )
        )
        return list(result.scalars().all())

    async def delete_finished_before(self, db: AsyncSession, *, completed_before: datetime) -> int:
        """Delete completed or cancelled jobs older than the cutoff.

        Args:
            db: Database session
            completed_before: `completed_at` cutoff

        Returns:
            Number of jobs deleted
        """
        result = await db.execute(
            delete(self.model).where(
                self.model.status.in_(
                    [SyncJobStatus.COMPLETED.value, SyncJobStatus.CANCELLED.value]
                ),
                self.model.completed_at < completed_before,
            )
        )
        await db.commit()
        return result.rowcount


# Singleton instance
sync_job = CRUDSyncJob()
