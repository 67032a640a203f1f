"""CRUD operations for datasources.

Datasource management lives outside the sync engine; this module only offers
the reads the engine needs plus the watermark write.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from relsync.core.shared_models import DatasourceStatus
from relsync.models.datasource import Datasource
from relsync.schemas.datasource import DatasourceCreate


class CRUDDatasource:
    """CRUD operations for datasources."""

    def __init__(self):
        """Initialize the CRUD object."""
        self.model = Datasource

    async def get(self, db: AsyncSession, id: UUID) -> Optional[Datasource]:
        """Get datasource by ID.

        Args:
            db: Database session
            id: Datasource ID

        Returns:
            Datasource if found, None otherwise
        """
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_scheduled(self, db: AsyncSession) -> List[Datasource]:
        """Get active datasources that carry a cron schedule.

        Args:
            db: Database session

        Returns:
            List of scheduled datasources
        """
        result = await db.execute(
            select(self.model).where(
                self.model.sync_schedule.is_not(None),
                self.model.status == DatasourceStatus.ACTIVE.value,
            )
        )
        return list(result.scalars().all())

    async def create(self, db: AsyncSession, *, obj_in: DatasourceCreate) -> Datasource:
        """Create a datasource.

        Args:
            db: Database session
            obj_in: Datasource fields

        Returns:
            Created datasource
        """
        db_obj = self.model(**obj_in.model_dump(mode="json"))
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def update_last_synced_at(
        self, db: AsyncSession, *, id: UUID, last_synced_at: datetime
    ) -> None:
        """Advance the incremental watermark; an older value never replaces a newer one.

        Args:
            db: Database session
            id: Datasource ID
            last_synced_at: New watermark (naive UTC)
        """
        await db.execute(
            update(self.model)
            .where(
                self.model.id == id,
                or_(
                    self.model.last_synced_at.is_(None),
                    self.model.last_synced_at < last_synced_at,
                ),
            )
            .values(last_synced_at=last_synced_at)
        )
        await db.commit()


# Singleton instance
datasource = CRUDDatasource()
