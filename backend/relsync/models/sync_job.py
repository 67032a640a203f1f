"""Sync job model."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from relsync.core.shared_models import SyncJobStatus
from relsync.models._base import Base, JSONType

if TYPE_CHECKING:
    from relsync.models.datasource import Datasource
    from relsync.models.sync_error import SyncError


class SyncJob(Base):
    """One execution of a sync mode against a datasource.

    Counter columns are only ever changed through atomic increments so that
    `successful_records + failed_records == processed_records` holds for any
    reader. `modified_at` doubles as the last-progress timestamp for the reaper.
    """

    __tablename__ = "sync_job"

    datasource_id: Mapped[UUID] = mapped_column(
        ForeignKey("datasource.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=SyncJobStatus.PENDING.value
    )
    total_records: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    processed_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    job_metadata: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    datasource: Mapped["Datasource"] = relationship(
        "Datasource", back_populates="sync_jobs", lazy="noload"
    )
    errors: Mapped[List["SyncError"]] = relationship(
        "SyncError",
        back_populates="sync_job",
        lazy="noload",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_sync_job_status_modified_at", "status", "modified_at"),
        Index("idx_sync_job_status_started_at", "status", "started_at"),
        Index("idx_sync_job_status_completed_at", "status", "completed_at"),
    )
