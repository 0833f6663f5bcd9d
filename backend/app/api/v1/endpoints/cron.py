"""Scheduler endpoints: trigger an alert run and read its counters."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.deps import get_cron_metrics_service, require_cron_api_key
from app.core.redis_client import get_redis
from app.services.alert_service import run_alert_check
from app.services.cron_metrics import CronMetricsService

logger = logging.getLogger(__name__)

router = APIRouter()


class AlertRunResponse(BaseModel):
    """Result of one alert run."""

    success: bool
    message: str
    alertsEvaluated: int
    alertsTriggered: int
    durationMs: int


class CronStatsResponse(BaseModel):
    """Cumulative statistics of the alert job."""

    lastRunAt: str | None
    alertsEvaluated: int
    alertsTriggered: int
    totalRuns: int
    averageDurationMs: int
    lastDurationMs: int | None


async def _run_alerts():
    result = await run_alert_check(redis=await get_redis())

    if not result["success"]:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Failed to process alerts"},
        )

    return AlertRunResponse(
        success=True,
        message="Alerts processed successfully",
        alertsEvaluated=result["alertsEvaluated"],
        alertsTriggered=result["alertsTriggered"],
        durationMs=result["durationMs"],
    )


@router.get(
    "/alerts",
    response_model=AlertRunResponse,
    dependencies=[Depends(require_cron_api_key)],
)
async def trigger_alerts_get():
    """Run the alert sweep (for schedulers that can only issue GET)."""
    return await _run_alerts()


@router.post(
    "/alerts",
    response_model=AlertRunResponse,
    dependencies=[Depends(require_cron_api_key)],
)
async def trigger_alerts_post():
    """Run the alert sweep."""
    return await _run_alerts()


@router.get("/stats", response_model=CronStatsResponse)
async def get_cron_stats(
    metrics: CronMetricsService = Depends(get_cron_metrics_service),
) -> CronStatsResponse:
    """Cumulative statistics of the scheduled alert job."""
    try:
        stats = await metrics.get_stats()
    except Exception as e:
        logger.error(f"Error fetching cron statistics: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch cron statistics",
        )
    return CronStatsResponse(**stats.to_dict())
