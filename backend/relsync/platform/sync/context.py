"""Module for sync context."""

from typing import Any, Callable, Optional

from relsync import schemas
from relsync.core.logging import ContextualLogger
from relsync.core.sync_job_service import SyncJobService
from relsync.platform.destinations._base import BaseVectorStore
from relsync.platform.embedders._base import BaseEmbedder
from relsync.platform.sources._base import BaseSourceConnector
from relsync.platform.sync.cancellation import CancellationToken

ProgressReporter = Callable[[Any], None]


class SyncContext:
    """Context container for a sync job run.

    Contains everything a processor needs:
    - sync_job - the job row as read when the run started
    - datasource - the datasource being synced
    - source - connector for the datasource's engine
    - embedder - dense embedder
    - vector_store - destination store for the datasource
    - job_service - the job store writer
    - cancellation - cooperative cancellation token
    - logger - contextual logger with job dimensions
    - report_progress - called with progress details after every batch
    """

    def __init__(
        self,
        sync_job: schemas.SyncJob,
        datasource: schemas.Datasource,
        source: BaseSourceConnector,
        embedder: BaseEmbedder,
        vector_store: BaseVectorStore,
        job_service: SyncJobService,
        cancellation: CancellationToken,
        logger: ContextualLogger,
        report_progress: Optional[ProgressReporter] = None,
        codes: Optional[list] = None,
    ):
        """Initialize the sync context."""
        self.sync_job = sync_job
        self.datasource = datasource
        self.source = source
        self.embedder = embedder
        self.vector_store = vector_store
        self.job_service = job_service
        self.cancellation = cancellation
        self.logger = logger
        self.report_progress = report_progress or (lambda details: None)
        self.codes = list(codes or [])

    @property
    def sync_job_id(self):
        """ID of the job being run."""
        return self.sync_job.id

    @property
    def sync_type(self) -> str:
        """Sync mode of the job."""
        return self.sync_job.type

    @property
    def batch_size(self) -> int:
        """Datasource batch size, falling back to 100."""
        return self.datasource.batch_size or 100

    @property
    def batch_delay_seconds(self) -> float:
        """Pause between batches."""
        delay_ms = self.datasource.batch_delay_ms
        return (1000 if delay_ms is None else delay_ms) / 1000.0
