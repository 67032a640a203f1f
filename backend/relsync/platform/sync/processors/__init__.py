"""Sync mode processors."""

from relsync.platform.sync.processors._base import BaseSyncProcessor, SyncRunResult
from relsync.platform.sync.processors.full import FullSyncProcessor
from relsync.platform.sync.processors.incremental import IncrementalSyncProcessor
from relsync.platform.sync.processors.webhook import WebhookSyncProcessor

__all__ = [
    "BaseSyncProcessor",
    "FullSyncProcessor",
    "IncrementalSyncProcessor",
    "SyncRunResult",
    "WebhookSyncProcessor",
]
