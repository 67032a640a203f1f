"""Schemas for datasources."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from relsync.core.shared_models import DatasourceStatus, DatasourceType


class ConnectionConfig(BaseModel):
    """Connection settings for a relational source."""

    host: str
    port: Optional[int] = None
    user: str
    password: str = ""
    database: str
    options: Dict[str, Any] = Field(
        default_factory=dict,
        description="Driver-specific options, e.g. `driver` for SQL Server ODBC or `ssl`",
    )


class DatasourceBase(BaseModel):
    """Base schema for datasource."""

    name: str
    type: DatasourceType
    connection_config: Dict[str, Any]
    query_template: str = Field(
        ..., description="SQL with {{offset}} and {{limit}} placeholders for paging"
    )
    field_mapping: Dict[str, str] = Field(default_factory=dict)
    id_field: str
    embedding_fields: List[str] = Field(default_factory=list)
    collection: str
    vector_store_url: Optional[str] = None
    batch_size: int = 100
    batch_delay_ms: int = 1000
    sync_schedule: Optional[str] = None
    watermark_column: str = "updated_at"
    webhook_enabled: bool = False
    webhook_secret: Optional[str] = None
    status: DatasourceStatus = DatasourceStatus.ACTIVE

    @property
    def id_column(self) -> str:
        """Output column of `id_field`; a qualified `p.code` is read as `code`."""
        return self.id_field.split(".")[-1]

    class Config:
        """Pydantic config."""

        from_attributes = True
        use_enum_values = True


class DatasourceCreate(DatasourceBase):
    """Schema for creating a datasource."""


class Datasource(DatasourceBase):
    """Schema for datasource response."""

    id: UUID
    last_synced_at: Optional[datetime] = None
    created_at: datetime
    modified_at: Optional[datetime] = None
