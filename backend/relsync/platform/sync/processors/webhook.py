"""Webhook sync: re-index or delete an explicit list of records."""

from datetime import datetime

from relsync.core.config import settings
from relsync.core.shared_models import SyncErrorType
from relsync.platform.sources._base import SourceQueryError
from relsync.platform.sources.query import build_single_key_query
from relsync.platform.sync.processors._base import BaseSyncProcessor


class WebhookSyncProcessor(BaseSyncProcessor):
    """Processes codes in chunks; a code with no source row is deleted."""

    async def _execute(self, started_at: datetime) -> bool:
        codes = self.context.codes
        chunk_size = settings.WEBHOOK_CHUNK_SIZE
        total_chunks = -(-len(codes) // chunk_size)

        plan = self.plan(len(codes), chunk_size)
        chunk_index = plan.start_batch_index

        for start in range(plan.offset, len(codes), chunk_size):
            if await self.should_stop():
                return False

            chunk = codes[start : start + chunk_size]
            successful = 0
            for code in chunk:
                if await self._sync_code(code):
                    successful += 1
            failed = len(chunk) - successful

            await self.context.job_service.increment_progress(
                self.context.sync_job_id, len(chunk), successful, failed
            )
            self._result.batches += 1
            self._result.processed += len(chunk)
            self._result.successful += successful
            self._result.failed += failed
            self.report_progress(chunk_index, total_chunks)
            chunk_index += 1

        return True

    async def _sync_code(self, code: str) -> bool:
        """Sync one code; failures are recorded and isolated to the code."""
        ds = self.context.datasource
        try:
            rows = await self.fetch(build_single_key_query(ds.query_template, ds.id_column, code))
        except SourceQueryError as e:
            self.logger.error(f"Lookup of {code} failed: {e}")
            await self.context.job_service.record_error(
                self.context.sync_job_id,
                SyncErrorType.QUERY_ERROR,
                str(e),
                record_identifier=code,
            )
            return False

        if not rows:
            return await self.executor.delete_record(code)
        return await self.executor.sync_record(code, rows[0])
