"""Temporal activities for the stale job reaper and job retention."""

from temporalio import activity


@activity.defn
async def cleanup_stuck_sync_jobs_activity() -> int:
    """Fail running sync jobs that stopped making progress.

    Returns:
        Number of jobs marked failed
    """
    from relsync.core.cleanup_service import cleanup_service
    from relsync.core.logging import LoggerConfigurator

    logger = LoggerConfigurator.configure_logger(
        "relsync.temporal.cleanup",
        dimensions={"activity": "cleanup_stuck_sync_jobs"},
    )
    logger.info("Starting cleanup of stuck sync jobs...")
    try:
        failed = await cleanup_service.mark_stale_jobs_failed()
    except Exception as e:
        logger.error(f"Error during stuck job cleanup: {e}", exc_info=True)
        raise
    logger.info(f"Stuck job cleanup complete: {failed} jobs marked failed")
    return failed


@activity.defn
async def cleanup_old_sync_jobs_activity() -> int:
    """Delete finished sync jobs past the retention window.

    Returns:
        Number of jobs deleted
    """
    from relsync.core.cleanup_service import cleanup_service
    from relsync.core.logging import LoggerConfigurator

    logger = LoggerConfigurator.configure_logger(
        "relsync.temporal.cleanup",
        dimensions={"activity": "cleanup_old_sync_jobs"},
    )
    logger.info("Starting deletion of old sync jobs...")
    try:
        deleted = await cleanup_service.delete_old_jobs()
    except Exception as e:
        logger.error(f"Error during old job cleanup: {e}", exc_info=True)
        raise
    logger.info(f"Old job cleanup complete: {deleted} jobs deleted")
    return deleted
