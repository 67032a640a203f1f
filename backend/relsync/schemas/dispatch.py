"""Work descriptor handed from the orchestrator to the work queue."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SyncJobDispatch(BaseModel):
    """Payload of a queued sync job.

    Full and incremental jobs carry only the IDs; webhook jobs also carry the
    record codes to sync.
    """

    job_id: UUID
    datasource_id: UUID
    type: str
    codes: Optional[List[str]] = Field(default=None, min_length=1, max_length=500)
