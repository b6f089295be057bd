"""Shared body of the reminder beat tasks.

A Redis lock keeps a second worker from running the same trigger while a
cycle is in flight. Realtime events go to Redis for the API process to relay.
"""

from typing import Any, Dict
import uuid

import redis
import redis.asyncio as aioredis
from redis.exceptions import LockError

from lifestock.config.settings import settings
from lifestock.services.channels.realtime import RedisRealtimePublisher
from lifestock.services.reminders.scheduler import DAILY, HOURLY, ReminderScheduler
from lifestock.utils.logging import get_logger

logger = get_logger()

LOCK_PREFIX = "lifestock:reminder-lock:"


def lock_name(trigger: str) -> str:
    return f"{LOCK_PREFIX}{trigger}"


async def run_reminder_cycle(trigger: str, request_id: str) -> Dict[str, Any]:
    logger_ctx = logger.bind(request_id=request_id)
    cycle_id = f"{request_id}-{uuid.uuid4().hex[:8]}"

    lock_client = redis.Redis.from_url(settings.redis_url)
    lock = lock_client.lock(
        lock_name(trigger), timeout=settings.REMINDER_LOCK_TIMEOUT, blocking=False
    )
    if not lock.acquire():
        logger_ctx.warning(f"Skipping {trigger} reminder cycle: lock held elsewhere")
        lock_client.close()
        return {
            "success": True,
            "skipped": True,
            "reason": "Previous cycle still running",
            "trigger": trigger,
            "request_id": request_id,
        }

    publisher_client = aioredis.from_url(settings.redis_url)
    try:
        scheduler = ReminderScheduler(transport=RedisRealtimePublisher(publisher_client))
        if trigger == HOURLY:
            report = await scheduler.run_hourly_cycle(cycle_id=cycle_id)
        elif trigger == DAILY:
            report = await scheduler.run_daily_cycle(cycle_id=cycle_id)
        else:
            raise ValueError(f"Unknown reminder trigger: {trigger}")

        if report is None:
            return {
                "success": True,
                "skipped": True,
                "reason": "Previous cycle still running",
                "trigger": trigger,
                "request_id": request_id,
            }
        return {"success": True, "request_id": request_id, **report.as_dict()}
    finally:
        await publisher_client.aclose()
        try:
            lock.release()
        except LockError:
            logger_ctx.warning(f"{trigger} reminder lock expired before release")
        lock_client.close()
