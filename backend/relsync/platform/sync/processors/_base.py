"""Base class for sync mode processors.

A processor owns one job run: it moves the job to running, consults the
resume planner, drives the batch executor and writes the terminal status.
Exceptions raised outside the executor (source handshake, fetch, count when
it matters) fail the whole job with a categorized SyncError.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from relsync.core.datetime_utils import utc_now_naive
from relsync.core.shared_models import SyncErrorType, SyncJobStatus
from relsync.platform.sources._base import SourceConnectionError, SourceQueryError
from relsync.platform.sync.batch_executor import BatchExecutor
from relsync.platform.sync.context import SyncContext
from relsync.platform.sync.exceptions import SyncFailureError
from relsync.platform.sync.resume import ResumePlan, config_fingerprint, plan_resume
from relsync.platform.temporal.prometheus_metrics import active_sync_jobs


@dataclass
class SyncRunResult:
    """Final state of a processor run."""

    status: SyncJobStatus
    batches: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0


class BaseSyncProcessor(ABC):
    """Runs one sync job for one mode."""

    def __init__(self, context: SyncContext):
        """Initialize with the job's context."""
        self.context = context
        self.logger = context.logger
        self.executor = BatchExecutor(context)
        self._result = SyncRunResult(status=SyncJobStatus.RUNNING)

    async def run(self) -> SyncRunResult:
        """Run the job to a terminal state.

        Returns:
            SyncRunResult; status is CANCELLED when the job stopped early

        Raises:
            SyncFailureError: The job failed and was marked failed
        """
        ctx = self.context
        started_at = ctx.sync_job.started_at or utc_now_naive()

        if not await ctx.job_service.mark_running(ctx.sync_job_id, started_at):
            self.logger.info("Job is no longer pending or running; nothing to do")
            self._result.status = SyncJobStatus.CANCELLED
            return self._result

        active_sync_jobs.labels(sync_type=ctx.sync_type).inc()
        try:
            await self._handshake()
            await self._check_fingerprint()
            finished = await self._execute(started_at)
        except SyncFailureError as e:
            await self._fail(e)
            raise
        except SourceConnectionError as e:
            failure = SyncFailureError(str(e), SyncErrorType.CONNECTION_ERROR)
            await self._fail(failure)
            raise failure from e
        except SourceQueryError as e:
            failure = SyncFailureError(str(e), SyncErrorType.QUERY_ERROR)
            await self._fail(failure)
            raise failure from e
        except Exception as e:
            self.logger.error(f"Unexpected error during sync: {e}", exc_info=True)
            failure = SyncFailureError(str(e), SyncErrorType.JOB_ERROR)
            await self._fail(failure)
            raise failure from e
        finally:
            active_sync_jobs.labels(sync_type=ctx.sync_type).dec()

        if not finished:
            self.logger.info(
                f"Job stopped after {self._result.batches} batches "
                f"(status: {ctx.cancellation.last_status})"
            )
            self._result.status = SyncJobStatus.CANCELLED
            return self._result

        if await ctx.job_service.complete(ctx.sync_job_id):
            self._result.status = SyncJobStatus.COMPLETED
            await self._on_completed(started_at)
        else:
            self._result.status = SyncJobStatus.CANCELLED
        return self._result

    @abstractmethod
    async def _execute(self, started_at: datetime) -> bool:
        """Process the job's records.

        Args:
            started_at: Time the job first started

        Returns:
            True if every batch ran, False if the job was stopped between batches
        """

    async def _on_completed(self, started_at: datetime) -> None:
        """Hook run after the job was marked completed."""

    async def _handshake(self) -> None:
        result = await self.context.source.test_connection(
            self.context.datasource.connection_config
        )
        if not result.success:
            raise SourceConnectionError(result.message)
        self.logger.debug(f"Connected to source (version: {result.version})")

    async def _check_fingerprint(self) -> None:
        """Store the config fingerprint; warn if it changed since the job's last attempt."""
        ds = self.context.datasource
        fingerprint = config_fingerprint(ds.query_template, ds.field_mapping)
        metadata = self.context.sync_job.job_metadata or {}
        previous = metadata.get("config_fingerprint")
        if previous and previous != fingerprint and self.context.sync_job.processed_records:
            self.logger.warning(
                "Query template or field mapping changed since this job last ran; "
                "resume offsets may not line up with the new query"
            )
        if previous != fingerprint:
            await self.context.job_service.update_metadata(
                self.context.sync_job_id, {"config_fingerprint": fingerprint}
            )

    def plan(self, total_records: Optional[int], batch_size: Optional[int] = None) -> ResumePlan:
        """Resume plan from the counters read when the job started."""
        plan = plan_resume(
            self.context.sync_job.processed_records,
            total_records,
            batch_size or self.context.batch_size,
        )
        if plan.should_resume:
            self.logger.info(
                f"Resuming: {plan.reason}; {plan.progress_percent}% already processed"
            )
        else:
            self.logger.info(f"Starting from the beginning: {plan.reason}")
        return plan

    async def fetch(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[dict]:
        """Run a query against the source and return its rows."""
        result = await self.context.source.execute_query(
            self.context.datasource.connection_config, query, params
        )
        return result.rows

    async def count(self, query: str) -> Optional[int]:
        """Run a count query; None if it fails."""
        try:
            rows = await self.fetch(query)
        except (SourceQueryError, SourceConnectionError) as e:
            self.logger.warning(f"Count query failed, total unknown: {e}")
            return None
        if not rows:
            return None
        value = rows[0].get("total")
        if value is None:
            # Some drivers upper-case column aliases
            value = next(iter(rows[0].values()), None)
        return int(value) if value is not None else None

    async def process_batch(self, rows: List[dict], batch_index: int) -> None:
        """Run the executor on a batch and accumulate the result."""
        outcome = await self.executor.execute(rows, batch_index)
        self._result.batches += 1
        self._result.processed += outcome.processed
        self._result.successful += outcome.successful
        self._result.failed += outcome.failed

    def report_progress(self, batch_index: int, total_batches: Optional[int]) -> None:
        """Log progress and pass it to the progress reporter."""
        percent = None
        if total_batches:
            percent = min(100, round((batch_index + 1) / total_batches * 100))
            self.logger.info(f"Batch {batch_index + 1}/{total_batches} done ({percent}%)")
        else:
            self.logger.info(f"Batch {batch_index + 1} done")
        self.context.report_progress(
            {
                "batch_index": batch_index,
                "total_batches": total_batches,
                "progress_percent": percent,
                "processed": self._result.processed,
            }
        )

    async def should_stop(self) -> bool:
        """Check the cancellation token."""
        return await self.context.cancellation.is_cancelled()

    async def _fail(self, error: SyncFailureError) -> None:
        ctx = self.context
        self.logger.error(f"Sync failed ({error.category.value}): {error.message}")
        await ctx.job_service.record_error(ctx.sync_job_id, error.category, error.message)
        await ctx.job_service.fail(ctx.sync_job_id, error.message)
        self._result.status = SyncJobStatus.FAILED
