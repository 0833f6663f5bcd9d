"""Cumulative counters for the scheduled alert job, kept in Redis."""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional

from app.core.redis_client import get_redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "cron:alerts"
LAST_RUN_AT = f"{KEY_PREFIX}:last_run_at"
EVALUATED_TOTAL = f"{KEY_PREFIX}:evaluated_total"
TRIGGERED_TOTAL = f"{KEY_PREFIX}:triggered_total"
RUNS_TOTAL = f"{KEY_PREFIX}:runs_total"
DURATION_TOTAL_MS = f"{KEY_PREFIX}:duration_total_ms"
LAST_DURATION_MS = f"{KEY_PREFIX}:last_duration_ms"


@dataclass
class CronStats:
    last_run_at: Optional[str]
    alerts_evaluated: int
    alerts_triggered: int
    total_runs: int
    average_duration_ms: int
    last_duration_ms: Optional[int]

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "lastRunAt": data["last_run_at"],
            "alertsEvaluated": data["alerts_evaluated"],
            "alertsTriggered": data["alerts_triggered"],
            "totalRuns": data["total_runs"],
            "averageDurationMs": data["average_duration_ms"],
            "lastDurationMs": data["last_duration_ms"],
        }


def _to_int(value, default: Optional[int] = 0) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


class CronMetricsService:
    """Folds each run's counts into the shared counters.

    INCRBY inside one pipeline keeps concurrent runs from losing updates.
    """

    def __init__(self, redis=None):
        self._redis = redis

    async def _client(self):
        return self._redis or await get_redis()

    async def record_run(
        self,
        alerts_evaluated: int,
        alerts_triggered: int,
        duration_ms: int,
        finished_at: Optional[datetime] = None,
    ) -> bool:
        """Add one run to the counters. Returns False if Redis failed."""
        finished_at = finished_at or datetime.now(timezone.utc)
        duration_ms = int(round(duration_ms))

        try:
            r = await self._client()
            pipe = r.pipeline()
            pipe.incrby(EVALUATED_TOTAL, int(alerts_evaluated))
            pipe.incrby(TRIGGERED_TOTAL, int(alerts_triggered))
            pipe.incrby(RUNS_TOTAL, 1)
            pipe.incrby(DURATION_TOTAL_MS, duration_ms)
            pipe.set(LAST_RUN_AT, finished_at.isoformat())
            pipe.set(LAST_DURATION_MS, duration_ms)
            await pipe.execute()
        except Exception as e:
            logger.warning(f"Failed to record cron metrics: {e}")
            return False

        return True

    async def get_stats(self) -> CronStats:
        """Read the counters back for the stats endpoint."""
        r = await self._client()
        (
            last_run_at,
            evaluated,
            triggered,
            runs,
            duration_total,
            last_duration,
        ) = await r.mget(
            LAST_RUN_AT,
            EVALUATED_TOTAL,
            TRIGGERED_TOTAL,
            RUNS_TOTAL,
            DURATION_TOTAL_MS,
            LAST_DURATION_MS,
        )

        total_runs = _to_int(runs)
        total_duration = _to_int(duration_total)
        average = round(total_duration / total_runs) if total_runs > 0 else 0

        return CronStats(
            last_run_at=last_run_at or None,
            alerts_evaluated=_to_int(evaluated),
            alerts_triggered=_to_int(triggered),
            total_runs=total_runs,
            average_duration_ms=average,
            last_duration_ms=_to_int(last_duration, default=None),
        )
