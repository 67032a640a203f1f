"""Webhook trigger for targeted syncs.

Source systems call this endpoint with the primary keys of records that
changed; the records are re-synced (or deleted from the index when they no
longer exist) by a webhook sync job.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from relsync import crud, schemas
from relsync.api import deps
from relsync.core.exceptions import (
    InvalidInputException,
    NotFoundException,
    UnauthorizedException,
)
from relsync.core.logging import ContextualLogger
from relsync.core.sync_service import sync_service
from relsync.db.session import get_db

router = APIRouter()


@router.post("/{datasource_id}/sync", status_code=202, response_model=schemas.WebhookSyncResponse)
async def webhook_sync(
    *,
    datasource_id: UUID,
    request_in: schemas.WebhookSyncRequest,
    db: AsyncSession = Depends(get_db),
    token: Optional[str] = Depends(deps.get_bearer_token),
    logger: ContextualLogger = Depends(deps.get_logger),
) -> schemas.WebhookSyncResponse:
    """Queue a webhook sync for specific records.

    Requires `Authorization: Bearer <webhook secret>`. The body's collection must
    match the datasource's collection.
    """
    db_datasource = await crud.datasource.get(db, id=datasource_id)
    if db_datasource is None:
        raise NotFoundException(f"Datasource {datasource_id} not found")
    datasource = schemas.Datasource.model_validate(db_datasource)

    if not datasource.webhook_enabled:
        raise UnauthorizedException("Webhook is not enabled for this datasource")
    deps.verify_secret(token, datasource.webhook_secret)

    if request_in.collection != datasource.collection:
        raise InvalidInputException(
            f"Collection '{request_in.collection}' does not match the datasource's collection"
        )

    sync_job = await sync_service.trigger_webhook(
        datasource.id, request_in.codes, started_by="webhook"
    )
    logger.info(f"Webhook sync {sync_job.id} queued for {sync_job.total_records} records")
    return schemas.WebhookSyncResponse(
        job_id=sync_job.id,
        total_codes=sync_job.total_records,
        message=f"Sync queued for {sync_job.total_records} records",
    )
