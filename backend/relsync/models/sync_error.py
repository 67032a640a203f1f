"""Sync error model."""

from typing import TYPE_CHECKING, Optional
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from relsync.models._base import Base, JSONType

if TYPE_CHECKING:
    from relsync.models.sync_job import SyncJob


class SyncError(Base):
    """A record- or batch-level failure recorded during a sync job."""

    __tablename__ = "sync_error"

    sync_job_id: Mapped[UUID] = mapped_column(
        ForeignKey("sync_job.id", ondelete="CASCADE"), nullable=False, index=True
    )
    record_identifier: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    error_type: Mapped[str] = mapped_column(String(100), nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    record_data: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    sync_job: Mapped["SyncJob"] = relationship("SyncJob", back_populates="errors", lazy="noload")
