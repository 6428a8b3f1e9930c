"""Periodic jobs: scheduled refresh of the advisory revenue counters.

Every replica runs the scheduler in its master process; a Redis lock makes
sure only one of them executes a given job run.
"""
import logging
import os
import multiprocessing
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from uuid import uuid4
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
import redis.asyncio as redis
from redis.exceptions import RedisError

from app.config import settings
from app.database import AsyncSessionLocal
from app.services.reconciliation import reconcile_cached_totals

logger = logging.getLogger(__name__)

LOCK_PREFIX = "kreasi:lock:"

# Deletes the lock only while it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

scheduler = AsyncIOScheduler()

redis_client = None


async def get_redis_client():
    """Get or create Redis client."""
    global redis_client
    if redis_client is None:
        redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return redis_client


@asynccontextmanager
async def job_lock(lock_name: str, timeout: int = 300):
    """
    Yield True when this process owns ``lock_name`` for the duration of the block.

    Redis being unreachable counts as not acquired, so the job is skipped
    rather than run unguarded on every replica.
    """
    key = f"{LOCK_PREFIX}{lock_name}"
    token = str(uuid4())
    acquired = False
    try:
        client = await get_redis_client()
        acquired = bool(await client.set(key, token, nx=True, ex=timeout))
    except RedisError as e:
        logger.error(f"Failed to acquire lock {lock_name}: {e}")

    try:
        yield acquired
    finally:
        if acquired:
            try:
                await client.eval(_RELEASE_SCRIPT, 1, key, token)
            except RedisError as e:
                logger.error(f"Failed to release lock {lock_name}: {e}")


async def refresh_cached_totals():
    """Recompute advisory revenue counters from the ledger."""
    async with job_lock("refresh_cached_totals") as acquired:
        if not acquired:
            logger.info("Skipping refresh_cached_totals - another instance holds the lock")
            return

        try:
            async with AsyncSessionLocal() as session:
                drifts = await reconcile_cached_totals(session, apply=True)
            logger.info(f"refresh_cached_totals repaired {len(drifts)} counter(s)")
        except Exception as e:
            # Keep the scheduler alive; the next run retries
            logger.error(f"Error in refresh_cached_totals: {e}", exc_info=True)


def _is_master_process() -> bool:
    # With uvicorn --workers only SpawnProcess-1 runs jobs; a single-process run is MainProcess
    return multiprocessing.current_process().name in ("SpawnProcess-1", "MainProcess")


def start_scheduler():
    """Register the jobs and start the scheduler in the master process only."""
    process_name = multiprocessing.current_process().name

    if not settings.ENABLE_SCHEDULER:
        logger.info("Scheduler disabled by configuration")
        return
    if not _is_master_process():
        logger.info(f"Skipping scheduler on {process_name} (PID: {os.getpid()})")
        return

    scheduler.add_job(
        refresh_cached_totals,
        trigger=IntervalTrigger(
            minutes=settings.RECONCILE_INTERVAL_MINUTES,
            start_date=datetime.utcnow() + timedelta(minutes=1),
        ),
        id="refresh_cached_totals",
        name="Refresh cached revenue counters",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(
        f"Scheduler started on {process_name} (PID: {os.getpid()}), "
        f"refreshing counters every {settings.RECONCILE_INTERVAL_MINUTES} min"
    )


def stop_scheduler():
    """Stop the scheduler if this process started it."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
