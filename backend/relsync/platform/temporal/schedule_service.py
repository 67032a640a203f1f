"""Temporal schedules for datasource cron syncs and the reaper.

`ScheduleRegistry` keeps an explicit map from datasource ID to the handle of
its schedule so schedules can be added, replaced and removed individually.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from temporalio.client import (
    Client,
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleHandle,
    ScheduleOverlapPolicy,
    SchedulePolicy,
    ScheduleSpec,
    ScheduleUpdate,
    ScheduleUpdateInput,
)
from temporalio.service import RPCError, RPCStatusCode

from relsync import crud, schemas
from relsync.core.config import settings
from relsync.core.logging import logger
from relsync.core.shared_models import DatasourceStatus
from relsync.db.session import get_db_context
from relsync.platform.temporal.client import temporal_client

STUCK_JOBS_SCHEDULE_ID = "cleanup-stuck-sync-jobs"
OLD_JOBS_SCHEDULE_ID = "cleanup-old-sync-jobs"


def schedule_id_for(datasource_id: UUID) -> str:
    """Schedule ID of a datasource's cron sync."""
    return f"sync-{datasource_id}"


def _build_schedule(workflow_run: Any, args: list, workflow_id: str, cron: str) -> Schedule:
    return Schedule(
        action=ScheduleActionStartWorkflow(
            workflow_run,
            args=args,
            id=workflow_id,
            task_queue=settings.TEMPORAL_TASK_QUEUE,
        ),
        spec=ScheduleSpec(cron_expressions=[cron]),
        policy=SchedulePolicy(overlap=ScheduleOverlapPolicy.SKIP),
    )


class ScheduleRegistry:
    """Datasource ID to Temporal schedule handle map."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._handles: Dict[UUID, ScheduleHandle] = {}

    def get(self, datasource_id: UUID) -> Optional[ScheduleHandle]:
        """Handle of a registered schedule, if any."""
        return self._handles.get(datasource_id)

    def __contains__(self, datasource_id: UUID) -> bool:
        """Whether the datasource has a registered schedule."""
        return datasource_id in self._handles

    def __len__(self) -> int:
        """Number of registered schedules."""
        return len(self._handles)

    async def _upsert(self, client: Client, schedule_id: str, schedule: Schedule) -> ScheduleHandle:
        """Create a schedule, or replace the existing one with the same ID."""
        try:
            return await client.create_schedule(schedule_id, schedule)
        except ScheduleAlreadyRunningError:
            handle = client.get_schedule_handle(schedule_id)

            def _replace(_: ScheduleUpdateInput) -> ScheduleUpdate:
                return ScheduleUpdate(schedule=schedule)

            await handle.update(_replace)
            return handle

    async def add(self, datasource: schemas.Datasource) -> Optional[ScheduleHandle]:
        """Register a datasource's cron full sync.

        Args:
            datasource: Datasource with a `sync_schedule`

        Returns:
            The schedule handle, or None if the datasource has no schedule
        """
        if not datasource.sync_schedule:
            return None

        from relsync.platform.temporal.workflows import ScheduledSyncWorkflow

        client = await temporal_client.get_client()
        schedule_id = schedule_id_for(datasource.id)
        schedule = _build_schedule(
            ScheduledSyncWorkflow.run,
            [str(datasource.id)],
            f"scheduled-sync-{datasource.id}",
            datasource.sync_schedule,
        )
        handle = await self._upsert(client, schedule_id, schedule)
        self._handles[datasource.id] = handle
        logger.info(
            f"Scheduled full sync of '{datasource.name}' ({schedule_id}): "
            f"{datasource.sync_schedule}"
        )
        return handle

    async def remove(self, datasource_id: UUID) -> bool:
        """Delete a datasource's schedule.

        Returns:
            True if a schedule was deleted, False if none existed
        """
        handle = self._handles.pop(datasource_id, None)
        if handle is None:
            client = await temporal_client.get_client()
            handle = client.get_schedule_handle(schedule_id_for(datasource_id))
        try:
            await handle.delete()
        except RPCError as e:
            if e.status == RPCStatusCode.NOT_FOUND:
                return False
            raise
        logger.info(f"Removed schedule {schedule_id_for(datasource_id)}")
        return True

    async def update(self, datasource: schemas.Datasource) -> Optional[ScheduleHandle]:
        """Apply a datasource's current schedule.

        Datasources without a schedule, or not active, lose their schedule.
        """
        if not datasource.sync_schedule or datasource.status != DatasourceStatus.ACTIVE.value:
            await self.remove(datasource.id)
            return None
        return await self.add(datasource)

    async def sync_all_from_db(self) -> int:
        """Register a schedule for every active scheduled datasource.

        Returns:
            Number of schedules registered
        """
        async with get_db_context() as db:
            scheduled = await crud.datasource.get_scheduled(db)
            datasources = [schemas.Datasource.model_validate(d) for d in scheduled]

        registered = 0
        for datasource in datasources:
            try:
                await self.add(datasource)
                registered += 1
            except Exception as e:
                logger.error(f"Failed to schedule datasource {datasource.id}: {e}")
        logger.info(f"Registered {registered}/{len(datasources)} datasource schedules")
        return registered

    async def ensure_reaper_schedules(self) -> None:
        """Create or refresh the stuck job sweep and the retention sweep."""
        from relsync.platform.temporal.workflows import (
            CleanupOldSyncJobsWorkflow,
            CleanupStuckSyncJobsWorkflow,
        )

        client = await temporal_client.get_client()
        await self._upsert(
            client,
            STUCK_JOBS_SCHEDULE_ID,
            _build_schedule(
                CleanupStuckSyncJobsWorkflow.run,
                [],
                STUCK_JOBS_SCHEDULE_ID,
                settings.STALE_JOB_SWEEP_CRON,
            ),
        )
        await self._upsert(
            client,
            OLD_JOBS_SCHEDULE_ID,
            _build_schedule(
                CleanupOldSyncJobsWorkflow.run,
                [],
                OLD_JOBS_SCHEDULE_ID,
                settings.JOB_RETENTION_CRON,
            ),
        )
        logger.info(
            f"Reaper schedules ready ({settings.STALE_JOB_SWEEP_CRON}, "
            f"{settings.JOB_RETENTION_CRON})"
        )


schedule_registry = ScheduleRegistry()
