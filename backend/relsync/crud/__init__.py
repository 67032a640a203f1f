"""CRUD singletons for the job store."""

from relsync.crud.crud_datasource import datasource
from relsync.crud.crud_sync_error import sync_error
from relsync.crud.crud_sync_job import sync_job

__all__ = ["datasource", "sync_error", "sync_job"]
