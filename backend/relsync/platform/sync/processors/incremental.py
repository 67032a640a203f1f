"""Incremental sync: re-index rows changed since the datasource watermark."""

import asyncio
from datetime import datetime

from relsync.platform.sources.query import (
    build_count_query,
    build_incremental_query,
    format_watermark,
)
from relsync.platform.sync.processors.full import FullSyncProcessor

EPOCH = datetime(1970, 1, 1)


class IncrementalSyncProcessor(FullSyncProcessor):
    """Pages through rows whose watermark column is newer than `last_synced_at`.

    The watermark advances to the job's start time only after the job
    completes, so rows changed while the job ran are picked up next time.
    """

    async def _execute(self, started_at: datetime) -> bool:
        ctx = self.context
        ds = ctx.datasource
        since = ds.last_synced_at or EPOCH

        query = build_incremental_query(ds.query_template, ds.watermark_column, since)
        self.logger.info(f"Fetching records with {ds.watermark_column} > {format_watermark(since)}")

        total = await self.count(build_count_query(query))
        await ctx.job_service.set_total_records(ctx.sync_job_id, total)
        if total == 0:
            self.logger.info("No changed records")
            return True
        if total is None:
            self.logger.warning("Could not count changed records; paging until an empty page")

        return await self.page(query, total, ctx.batch_size)

    async def _after_batch(self) -> None:
        delay = self.context.batch_delay_seconds
        if delay > 0:
            await asyncio.sleep(delay)

    async def _on_completed(self, started_at: datetime) -> None:
        ds = self.context.datasource
        if ds.last_synced_at and ds.last_synced_at >= started_at:
            return
        await self.context.job_service.advance_watermark(ds.id, started_at)
        self.logger.info(f"Watermark advanced to {format_watermark(started_at)}")
