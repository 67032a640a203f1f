"""Pydantic schemas."""

from relsync.schemas.datasource import ConnectionConfig, Datasource, DatasourceCreate
from relsync.schemas.dispatch import SyncJobDispatch
from relsync.schemas.sync_error import SyncError, SyncErrorCreate
from relsync.schemas.sync_job import RetryErrorsResponse, SyncJob, SyncJobTriggerResponse
from relsync.schemas.webhook import WebhookSyncRequest, WebhookSyncResponse

__all__ = [
    "ConnectionConfig",
    "Datasource",
    "DatasourceCreate",
    "RetryErrorsResponse",
    "SyncError",
    "SyncErrorCreate",
    "SyncJob",
    "SyncJobDispatch",
    "SyncJobTriggerResponse",
    "WebhookSyncRequest",
    "WebhookSyncResponse",
]
