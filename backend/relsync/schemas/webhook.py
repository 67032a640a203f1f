"""Schemas for the webhook trigger."""

from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class WebhookSyncRequest(BaseModel):
    """Body of `POST /webhooks/{datasource_id}/sync`."""

    collection: str = Field(..., description="Must match the datasource's collection")
    codes: List[str] = Field(..., description="Source primary keys to re-sync (1 to 500)")


class WebhookSyncResponse(BaseModel):
    """Acknowledgement returned with 202 Accepted."""

    job_id: UUID
    total_codes: int
    status: str = "queued"
    message: str
