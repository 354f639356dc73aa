"""
scheduler.py

Responsibility: Sets up the APScheduler AsyncIOScheduler and keeps exactly
one sync job armed. Exposes create/stop helpers.
Does NOT: contain DNS business logic, config reading, or HTTP calls directly;
those are delegated entirely to SyncService and its collaborators.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from exceptions import KubernetesError, ReconcileError
from services.sync_service import SyncService

logger = logging.getLogger(__name__)

# Job ID used to identify the sync job in APScheduler
JOB_ID = "dns_sync"


# ---------------------------------------------------------------------------
# Scheduler job
# ---------------------------------------------------------------------------


async def _sync_job(
    sync_service: SyncService,
    scheduler: AsyncIOScheduler,
    interval_seconds: float,
) -> None:
    """
    APScheduler job: runs one steady-state sync cycle, then arms the next.

    The next run is due one interval after this run started. A cycle that
    overran the interval is followed immediately by the next one, so a slow
    cycle delays a tick instead of dropping it. Failures are logged and left
    for the next cycle; there is no immediate retry and the process keeps
    running.

    Args:
        sync_service: The wired SyncService from the app lifespan.
        scheduler: The scheduler running this job; used to re-arm it.
        interval_seconds: Seconds between the starts of two cycles.

    Returns:
        None
    """
    if sync_service.closed:
        logger.debug("Sync service closed — skipping scheduled cycle.")
        return

    started = _now()
    try:
        await sync_service.run_cycle()
    except (KubernetesError, ReconcileError) as exc:
        logger.error("Sync failed: %s", exc)
    finally:
        if not sync_service.closed:
            _arm_next_run(scheduler, sync_service, interval_seconds, started)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def create_scheduler(sync_service: SyncService, interval_seconds: float = 30) -> AsyncIOScheduler:
    """
    Creates and returns a configured AsyncIOScheduler with the sync job.

    The first scheduled run happens one interval after creation: the initial
    cycle is run by the caller before the scheduler is started.

    Args:
        sync_service: The SyncService to pass into the job.
        interval_seconds: Seconds between sync cycles (default 30).

    Returns:
        A configured but not yet started AsyncIOScheduler.
    """
    scheduler = AsyncIOScheduler()
    _arm_next_run(scheduler, sync_service, interval_seconds, _now())
    logger.info("Starting periodic sync every %gs...", interval_seconds)
    return scheduler


async def stop_scheduler(scheduler: AsyncIOScheduler, sync_service: SyncService) -> None:
    """
    Stops the timer without interrupting an in-flight sync cycle.

    New runs are paused first, then the running cycle (if any) is awaited,
    and only then is the scheduler shut down. A closed SyncService makes
    the job stop re-arming itself.

    Args:
        scheduler: The running AsyncIOScheduler.
        sync_service: The SyncService used by the job.

    Returns:
        None
    """
    if scheduler.running:
        scheduler.pause()
    await sync_service.close()
    if scheduler.running:
        scheduler.shutdown(wait=False)
    logger.info("Sync scheduler stopped.")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _arm_next_run(
    scheduler: AsyncIOScheduler,
    sync_service: SyncService,
    interval_seconds: float,
    last_start: datetime,
) -> None:
    """Replaces the sync job with a one-shot run due one interval after last_start."""
    now = _now()
    run_date = last_start + timedelta(seconds=interval_seconds)
    if run_date <= now:
        logger.warning(
            "Sync cycle took longer than the %gs interval; starting the next one now.",
            interval_seconds,
        )
        run_date = now

    scheduler.add_job(
        _sync_job,
        trigger="date",
        run_date=run_date,
        id=JOB_ID,
        replace_existing=True,
        kwargs={
            "sync_service": sync_service,
            "scheduler": scheduler,
            "interval_seconds": interval_seconds,
        },
        max_instances=1,
        misfire_grace_time=None,  # An overdue run always executes
    )
