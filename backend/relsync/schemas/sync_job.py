"""Schemas for sync jobs."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SyncJob(BaseModel):
    """Schema for sync job response."""

    id: UUID
    datasource_id: UUID
    type: str
    status: str
    total_records: Optional[int] = None
    processed_records: int = 0
    successful_records: int = 0
    failed_records: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    job_metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    modified_at: Optional[datetime] = None

    class Config:
        """Pydantic config."""

        from_attributes = True


class SyncJobTriggerResponse(BaseModel):
    """Returned when a full or incremental sync is queued."""

    job_id: UUID
    status: str = "queued"
    message: str


class RetryErrorsResponse(BaseModel):
    """Returned when failed records of a job are re-queued."""

    job_id: UUID = Field(..., description="ID of the new webhook job")
    retry_of: UUID = Field(..., description="ID of the job whose errors are retried")
    codes: List[str]
    status: str = "queued"
