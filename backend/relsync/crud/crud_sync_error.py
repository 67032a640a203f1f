"""CRUD operations for sync errors."""

from typing import List
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from relsync.models.sync_error import SyncError
from relsync.schemas.sync_error import SyncErrorCreate


class CRUDSyncError:
    """CRUD operations for sync errors."""

    def __init__(self):
        """Initialize the CRUD object."""
        self.model = SyncError

    async def create(self, db: AsyncSession, *, obj_in: SyncErrorCreate) -> SyncError:
        """Record an error.

        Args:
            db: Database session
            obj_in: Error fields

        Returns:
            Created sync error
        """
        db_obj = self.model(**obj_in.model_dump())
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def get_by_job(
        self, db: AsyncSession, *, sync_job_id: UUID, unresolved_only: bool = False
    ) -> List[SyncError]:
        """List errors for a job, oldest first.

        Args:
            db: Database session
            sync_job_id: Sync job ID
            unresolved_only: Skip errors already marked resolved

        Returns:
            List of sync errors
        """
        query = (
            select(self.model)
            .where(self.model.sync_job_id == sync_job_id)
            .order_by(self.model.created_at.asc())
        )
        if unresolved_only:
            query = query.where(self.model.resolved.is_(False))
        result = await db.execute(query)
        return list(result.scalars().all())

    async def bump_retry_count(self, db: AsyncSession, *, ids: List[UUID]) -> None:
        """Increment `retry_count` on the given errors.

        Args:
            db: Database session
            ids: Sync error IDs
        """
        if not ids:
            return
        await db.execute(
            update(self.model)
            .where(self.model.id.in_(ids))
            .values(retry_count=self.model.retry_count + 1)
        )
        await db.commit()


# Singleton instance
sync_error = CRUDSyncError()
