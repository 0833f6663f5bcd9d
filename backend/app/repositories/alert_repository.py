"""Alert repository - data access for the alert engine."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.alert import Alert


class AlertRepository(ABC):
    """Alert persistence operations used by the evaluator."""

    @abstractmethod
    async def find_enabled(self) -> List[Alert]:
        """Return every alert with enabled == True."""

    @abstractmethod
    async def mark_triggered(self, alert_id: UUID, triggered_at: datetime) -> None:
        """Stage the new last_triggered timestamp for an alert."""


class SQLAlchemyAlertRepository(AlertRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_enabled(self) -> List[Alert]:
        result = await self.session.execute(
            select(Alert).where(Alert.enabled == True).order_by(Alert.created_at)  # noqa: E712
        )
        alerts = list(result.scalars().all())
        # Detach so a per-alert rollback later in the run does not expire them
        for alert in alerts:
            self.session.expunge(alert)
        return alerts

    async def mark_triggered(self, alert_id: UUID, triggered_at: datetime) -> None:
        await self.session.execute(
            update(Alert)
            .where(Alert.id == alert_id)
            .values(last_triggered=triggered_at)
        )
