"""Schemas for sync errors."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel


class SyncErrorCreate(BaseModel):
    """Schema for recording a sync error."""

    sync_job_id: UUID
    error_type: str
    error_message: Optional[str] = None
    record_identifier: Optional[str] = None
    record_data: Optional[Dict[str, Any]] = None


class SyncError(SyncErrorCreate):
    """Schema for sync error response."""

    id: UUID
    retry_count: int = 0
    resolved: bool = False
    created_at: datetime

    class Config:
        """Pydantic config."""

        from_attributes = True
