"""Datasource model."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from relsync.core.shared_models import DatasourceStatus
from relsync.models._base import Base, JSONType

if TYPE_CHECKING:
    from relsync.models.sync_job import SyncJob


class Datasource(Base):
    """A relational source, its row mapping, and its destination collection.

    Owned by configuration management; the sync engine only reads it, except
    for advancing `last_synced_at` after a successful incremental sync.
    """

    __tablename__ = "datasource"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    connection_config: Mapped[dict] = mapped_column(JSONType, nullable=False)
    query_template: Mapped[str] = mapped_column(Text, nullable=False)
    field_mapping: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    id_field: Mapped[str] = mapped_column(String(255), nullable=False)
    embedding_fields: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    collection: Mapped[str] = mapped_column(String(255), nullable=False)
    vector_store_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    batch_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=100)
    batch_delay_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=1000)
    sync_schedule: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    watermark_column: Mapped[str] = mapped_column(
        String(255), nullable=False, default="updated_at"
    )
    webhook_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    webhook_secret: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=DatasourceStatus.ACTIVE.value
    )
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    sync_jobs: Mapped[List["SyncJob"]] = relationship(
        "SyncJob",
        back_populates="datasource",
        lazy="noload",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
