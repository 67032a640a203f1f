"""Full sync: re-index every row the query template returns."""

import math
from datetime import datetime
from typing import Optional

from relsync.platform.sources.query import build_count_query, has_paging_placeholders
from relsync.platform.sync.processors._base import BaseSyncProcessor

# Upper bound used when the count query fails; an empty page ends the loop first
FALLBACK_TOTAL = 999_999


class FullSyncProcessor(BaseSyncProcessor):
    """Pages through the whole template from the resume offset."""

    async def _execute(self, started_at: datetime) -> bool:
        ctx = self.context
        template = ctx.datasource.query_template
        batch_size = ctx.batch_size

        total = await self.count(build_count_query(template))
        if total is None:
            self.logger.warning(
                f"Could not count source records; paging until an empty page "
                f"(bound {FALLBACK_TOTAL})"
            )
        await ctx.job_service.set_total_records(ctx.sync_job_id, total)
        return await self.page(template, total, batch_size)

    async def page(self, template: str, total: Optional[int], batch_size: int) -> bool:
        """Run batches over a paged template.

        Args:
            template: Query with {{offset}} / {{limit}} placeholders
            total: Known row count, or None
            batch_size: Rows per batch

        Returns:
            False if the job was stopped between batches
        """
        bound = FALLBACK_TOTAL if total is None else total
        total_batches = math.ceil(total / batch_size) if total is not None else None
        paged = has_paging_placeholders(template)
        if not paged:
            self.logger.warning("Template has no {{offset}} placeholder; fetching a single page")

        plan = self.plan(total, batch_size)
        offset = plan.offset
        batch_index = plan.start_batch_index

        while offset < bound:
            if await self.should_stop():
                return False

            rows = await self.fetch(template, {"offset": offset, "limit": batch_size})
            if not rows:
                self.logger.debug(f"Empty page at offset {offset}; done")
                break

            await self.process_batch(rows, batch_index)
            self.report_progress(batch_index, total_batches)

            offset += batch_size
            batch_index += 1
            if not paged or len(rows) < batch_size or offset >= bound:
                break
            await self._after_batch()

        self.logger.info(
            f"Processed {self._result.processed} records in {self._result.batches} batches "
            f"({self._result.successful} succeeded, {self._result.failed} failed)"
        )
        return True

    async def _after_batch(self) -> None:
        """Hook run between two batches; full sync moves straight on."""
