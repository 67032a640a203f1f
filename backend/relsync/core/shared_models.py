"""Enums shared by models, schemas and the sync engine."""

from enum import Enum


class SyncJobStatus(str, Enum):
    """Lifecycle of a sync job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transitions are expected."""
        return self in (SyncJobStatus.COMPLETED, SyncJobStatus.FAILED, SyncJobStatus.CANCELLED)


class SyncJobType(str, Enum):
    """Sync mode of a job."""

    FULL = "full"
    INCREMENTAL = "incremental"
    WEBHOOK = "webhook"


class SyncErrorType(str, Enum):
    """Category recorded on every sync error."""

    CONNECTION_ERROR = "connection_error"
    QUERY_ERROR = "query_error"
    EMBEDDING_ERROR = "embedding_error"
    IDENTITY_ERROR = "identity_error"
    VECTOR_STORE_ERROR = "vector_store_error"
    BATCH_ERROR = "batch_error"
    JOB_ERROR = "job_error"


class DatasourceType(str, Enum):
    """Supported relational engines."""

    MSSQL = "mssql"
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"


class DatasourceStatus(str, Enum):
    """Operational status of a datasource."""

    ACTIVE = "active"
    PAUSED = "paused"
    ERROR = "error"
