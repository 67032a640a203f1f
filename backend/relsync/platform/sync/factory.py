"""Module for sync factory that creates context and processor instances."""

from typing import Optional

from relsync import crud, schemas
from relsync.core.config import settings
from relsync.core.logging import LoggerConfigurator
from relsync.core.shared_models import SyncErrorType, SyncJobType
from relsync.core.sync_job_service import sync_job_service
from relsync.db.session import get_db_context
from relsync.platform.destinations.qdrant import get_vector_store
from relsync.platform.embedders.openai import DenseEmbedder
from relsync.platform.sources.sql import get_source_connector
from relsync.platform.sync.cancellation import CancellationToken
from relsync.platform.sync.context import ProgressReporter, SyncContext
from relsync.platform.sync.exceptions import EmbeddingError, SyncFailureError
from relsync.platform.sync.processors import (
    BaseSyncProcessor,
    FullSyncProcessor,
    IncrementalSyncProcessor,
    WebhookSyncProcessor,
)

PROCESSORS = {
    SyncJobType.FULL: FullSyncProcessor,
    SyncJobType.INCREMENTAL: IncrementalSyncProcessor,
    SyncJobType.WEBHOOK: WebhookSyncProcessor,
}


class SyncFactory:
    """Factory for sync processors."""

    @classmethod
    async def create_processor(
        cls,
        dispatch: schemas.SyncJobDispatch,
        report_progress: Optional[ProgressReporter] = None,
    ) -> BaseSyncProcessor:
        """Build the processor for a dispatched job.

        Args:
            dispatch: Work descriptor from the queue
            report_progress: Called with progress details after every batch

        Returns:
            Processor ready to `run()`

        Raises:
            SyncFailureError: The job or datasource no longer exists, or the
                job could not be set up
        """
        sync_job = await sync_job_service.get(dispatch.job_id)
        if sync_job is None:
            raise SyncFailureError(f"Sync job {dispatch.job_id} not found")

        try:
            return await cls._build_processor(sync_job, dispatch, report_progress)
        except SyncFailureError:
            raise
        except Exception as e:
            raise SyncFailureError(
                f"Could not set up sync job {sync_job.id}: {e}", SyncErrorType.JOB_ERROR
            ) from e

    @classmethod
    async def _build_processor(
        cls,
        sync_job: schemas.SyncJob,
        dispatch: schemas.SyncJobDispatch,
        report_progress: Optional[ProgressReporter],
    ) -> BaseSyncProcessor:
        async with get_db_context() as db:
            db_datasource = await crud.datasource.get(db, id=dispatch.datasource_id)
            if db_datasource is None:
                raise SyncFailureError(f"Datasource {dispatch.datasource_id} not found")
            datasource = schemas.Datasource.model_validate(db_datasource)

        logger = LoggerConfigurator.configure_logger(
            "relsync.platform.sync",
            dimensions={
                "sync_job_id": str(sync_job.id),
                "datasource_id": str(datasource.id),
                "datasource_name": datasource.name,
                "sync_type": sync_job.type,
            },
        )

        try:
            embedder = DenseEmbedder(vector_size=settings.EMBEDDING_DIMENSIONS)
        except EmbeddingError as e:
            raise SyncFailureError(e.message, SyncErrorType.EMBEDDING_ERROR) from e

        context = SyncContext(
            sync_job=sync_job,
            datasource=datasource,
            source=get_source_connector(datasource.type),
            embedder=embedder,
            vector_store=get_vector_store(datasource.vector_store_url),
            job_service=sync_job_service,
            cancellation=CancellationToken(sync_job.id, sync_job_service.get_status),
            logger=logger,
            report_progress=report_progress,
            codes=dispatch.codes,
        )

        processor_cls = PROCESSORS[SyncJobType(sync_job.type)]
        logger.info(f"Created {processor_cls.__name__} for job {sync_job.id}")
        return processor_cls(context)
