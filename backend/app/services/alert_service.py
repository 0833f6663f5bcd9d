"""Alert service: the scheduled sweep over price and portfolio alerts."""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol

from app.core.config import settings
from app.models.alert import PERCENT_OPERATORS, Alert, AlertType
from app.repositories.unit_of_work import SQLAlchemyUnitOfWork, UnitOfWork
from app.services.alert_rules import evaluate_condition, has_crossed, is_within_cooldown
from app.services.cron_metrics import CronMetricsService
from app.services.notification_service import (
    NotificationDispatcher,
    TriggerContext,
    notification_dispatcher,
)
from app.services.price_service import PriceService, price_service

logger = logging.getLogger(__name__)


class PriceOracle(Protocol):
    async def get_token_price(self, symbol: str) -> Optional[float]:
        ...


@dataclass
class AlertProcessingMetrics:
    """Counts for one run. `error` is set only when the run could not start."""

    alerts_evaluated: int = 0
    alerts_triggered: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "alertsEvaluated": self.alerts_evaluated,
            "alertsTriggered": self.alerts_triggered,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertEvaluator:
    """Evaluates every enabled alert once and fires the ones that qualify.

    Price alerts are grouped by token so each token is priced once per run.
    Portfolio alerts compare the two latest snapshots of their address and
    only fire when the value crossed the threshold. Both kinds respect the
    cooldown window.

    Failures are contained: a bad token or a bad alert is logged and rolled
    back, and the sweep moves on. Only failing to load the alert set ends
    the run early, with zero counts and `error` set.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        price_oracle: Optional[PriceOracle] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        cooldown_minutes: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.uow = uow
        self.price_oracle = price_oracle or price_service
        self.dispatcher = dispatcher or notification_dispatcher
        self.cooldown_minutes = (
            cooldown_minutes if cooldown_minutes is not None else settings.ALERT_COOLDOWN_MINUTES
        )
        self.clock = clock or _utcnow

    async def process_alerts(self) -> AlertProcessingMetrics:
        now = self.clock()

        try:
            alerts = await self.uow.alerts.find_enabled()
        except Exception as e:
            logger.exception("Error loading enabled alerts")
            return AlertProcessingMetrics(error=f"{type(e).__name__}: {e}")

        metrics = AlertProcessingMetrics(alerts_evaluated=len(alerts))

        metrics.alerts_triggered += await self._process_price_alerts(alerts, now)
        metrics.alerts_triggered += await self._process_portfolio_alerts(alerts, now)

        logger.info(
            f"Alert run completed: {metrics.alerts_evaluated} evaluated, "
            f"{metrics.alerts_triggered} triggered",
            extra=metrics.to_dict(),
        )
        return metrics

    # -- price branch -------------------------------------------------------

    @staticmethod
    def group_by_token(alerts: List[Alert]) -> Dict[str, List[Alert]]:
        """Price alerts keyed by lower-cased token symbol."""
        grouped: Dict[str, List[Alert]] = defaultdict(list)
        for alert in alerts:
            if alert.type == AlertType.PRICE and alert.token_symbol:
                grouped[alert.token_symbol.lower()].append(alert)
        return dict(grouped)

    async def _fetch_price(self, token: str) -> Optional[float]:
        try:
            return await self.price_oracle.get_token_price(token)
        except Exception as e:
            logger.warning(f"Price lookup failed for {token}: {type(e).__name__}: {e}")
            return None

    async def _process_price_alerts(self, alerts: List[Alert], now: datetime) -> int:
        token_alerts = self.group_by_token(alerts)
        if not token_alerts:
            return 0

        tokens = list(token_alerts)
        # One lookup per token, issued concurrently; DB work stays sequential
        prices = await asyncio.gather(*(self._fetch_price(token) for token in tokens))

        triggered = 0
        for token, price in zip(tokens, prices):
            if price is None or price <= 0:
                logger.info(f"No price for {token}, skipping {len(token_alerts[token])} alerts")
                continue

            try:
                for alert in token_alerts[token]:
                    if not evaluate_condition(alert.operator, alert.value, price):
                        continue

                    if is_within_cooldown(alert.last_triggered, now, self.cooldown_minutes):
                        logger.debug(f"Alert {alert.id} ({token}) within cooldown, skipping")
                        continue

                    context = TriggerContext(
                        type=AlertType.PRICE,
                        current_value=price,
                        token_symbol=alert.token_symbol,
                        address=alert.address,
                    )
                    await self._fire(alert, context, now)
                    triggered += 1
            except Exception:
                logger.exception(f"Error processing alerts for token {token}")
                await self._safe_rollback()

        return triggered

    # -- portfolio branch ---------------------------------------------------

    async def _process_portfolio_alerts(self, alerts: List[Alert], now: datetime) -> int:
        triggered = 0
        for alert in alerts:
            if alert.type != AlertType.PORTFOLIO:
                continue
            try:
                if await self._check_portfolio_alert(alert, now):
                    triggered += 1
            except Exception:
                logger.exception(f"Error processing portfolio alert {alert.id} for {alert.address}")
                await self._safe_rollback()
        return triggered

    async def _check_portfolio_alert(self, alert: Alert, now: datetime) -> bool:
        if alert.operator in PERCENT_OPERATORS:
            logger.debug(f"Portfolio alert {alert.id} uses a price-only operator, skipping")
            return False

        latest = await self.uow.snapshots.latest(alert.address)
        if latest is None:
            logger.debug(f"No snapshot for {alert.address}, skipping alert {alert.id}")
            return False

        previous = await self.uow.snapshots.before(alert.address, latest.created_at)

        current_value = float(latest.total_value or 0)
        previous_value = float(previous.total_value or 0) if previous is not None else None

        condition_met = evaluate_condition(alert.operator, alert.value, current_value)
        crossed = has_crossed(alert.operator, alert.value, previous_value, current_value)
        if not (condition_met and crossed):
            return False

        if is_within_cooldown(alert.last_triggered, now, self.cooldown_minutes):
            logger.debug(f"Portfolio alert {alert.id} within cooldown, skipping")
            return False

        context = TriggerContext(
            type=AlertType.PORTFOLIO,
            current_value=current_value,
            address=alert.address,
        )
        await self._fire(alert, context, now)
        return True

    # -- firing -------------------------------------------------------------

    async def _fire(self, alert: Alert, context: TriggerContext, now: datetime) -> None:
        await self.uow.alerts.mark_triggered(alert.id, now)
        await self.dispatcher.dispatch(self.uow, alert, context, now)
        alert.last_triggered = now

        logger.info(
            f"Alert triggered: {alert.type.value} {alert.operator.value} {alert.value} "
            f"(current {context.current_value})",
            extra={"alert_id": str(alert.id), "address": alert.address},
        )

    async def _safe_rollback(self) -> None:
        try:
            await self.uow.rollback()
        except Exception as e:
            logger.error(f"Rollback failed: {e}")


async def run_alert_check(session_factory=None, redis=None) -> dict:
    """One scheduled run: evaluate alerts, then fold the counts into Redis.

    Used by both the Celery beat task and the cron HTTP endpoint. A run whose
    alert set could not be loaded is reported with success=False and does not
    touch the counters.
    """
    if session_factory is None:
        from app.core.database import AsyncSessionLocal

        session_factory = AsyncSessionLocal

    price_oracle = PriceService(redis=redis) if redis is not None else price_service

    start = time.perf_counter()
    async with session_factory() as db:
        evaluator = AlertEvaluator(SQLAlchemyUnitOfWork(db), price_oracle=price_oracle)
        metrics = await evaluator.process_alerts()
    duration_ms = int(round((time.perf_counter() - start) * 1000))

    result = {
        "success": metrics.succeeded,
        **metrics.to_dict(),
        "durationMs": duration_ms,
    }

    if not metrics.succeeded:
        result["error"] = metrics.error
        logger.error(f"Alert run failed after {duration_ms}ms: {metrics.error}")
        return result

    await CronMetricsService(redis).record_run(
        alerts_evaluated=metrics.alerts_evaluated,
        alerts_triggered=metrics.alerts_triggered,
        duration_ms=duration_ms,
    )
    return result
