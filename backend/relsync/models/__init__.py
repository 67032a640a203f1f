"""Models for the job store."""

from relsync.models._base import Base
from relsync.models.datasource import Datasource
from relsync.models.sync_error import SyncError
from relsync.models.sync_job import SyncJob

__all__ = ["Base", "Datasource", "SyncError", "SyncJob"]
