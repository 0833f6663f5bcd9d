"""Celery tasks for alert checking."""

import asyncio
import logging

import redis.asyncio as aioredis

from app.core.config import settings
from app.core.database import engine
from app.services.alert_service import run_alert_check
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run an async coroutine from sync Celery task."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _check_alerts() -> dict:
    # Each task gets its own event loop, so loop-bound clients are per run
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        return await run_alert_check(redis=redis)
    finally:
        await redis.aclose()
        await engine.dispose()


@celery_app.task(name="app.tasks.alerts.check_all_alerts")
def check_all_alerts():
    """Evaluate all enabled alerts and dispatch notifications."""
    logger.info("Starting scheduled alert check...")

    result = run_async(_check_alerts())

    if result["success"]:
        logger.info(
            f"Alert check completed: {result['alertsEvaluated']} alerts evaluated, "
            f"{result['alertsTriggered']} triggered in {result['durationMs']}ms"
        )
    else:
        logger.error(f"Alert check failed: {result.get('error')}")
    return result
