"""Sync-specific exceptions for error handling.

Every exception carries the category recorded on the SyncError it produces.
"""

from typing import List, Optional

from relsync.core.shared_models import SyncErrorType


class BatchProcessingError(Exception):
    """Raised when a batch (or a single record) cannot be processed.

    This is a recoverable error: the batch executor catches it, records it, and
    the sync continues with the next batch.

    Examples:
    - Embedding provider rejected the request
    - Vector store upsert failed
    - A generated point id is malformed
    """

    category: SyncErrorType = SyncErrorType.BATCH_ERROR

    def __init__(self, message: str, record_ids: Optional[List[str]] = None):
        """Store the message and the affected source record ids."""
        super().__init__(message)
        self.message = message
        self.record_ids = list(record_ids or [])


class EmbeddingError(BatchProcessingError):
    """The embedding service failed or returned malformed vectors."""

    category = SyncErrorType.EMBEDDING_ERROR


class IdentityError(BatchProcessingError):
    """A point id did not match the canonical UUID form."""

    category = SyncErrorType.IDENTITY_ERROR


class VectorStoreError(BatchProcessingError):
    """The vector store rejected a write."""

    category = SyncErrorType.VECTOR_STORE_ERROR


class SyncFailureError(Exception):
    """Raised when a critical error occurs that should fail the entire sync.

    This is a non-recoverable error: the job is marked failed and the work item
    is not re-dispatched.

    Examples:
    - Source database unreachable
    - Query template is invalid
    - Datasource was deleted mid-sync

    Usage:
        raise SyncFailureError("Database connection lost", SyncErrorType.CONNECTION_ERROR)
    """

    def __init__(self, message: str, category: SyncErrorType = SyncErrorType.JOB_ERROR):
        """Store the message and category."""
        super().__init__(message)
        self.message = message
        self.category = category
