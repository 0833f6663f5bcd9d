"""Unit of work grouping the repositories of one database session.

The alert engine stages `mark_triggered` and the notification row, then
commits once, so a trigger is never consumed without its notification.
"""

from abc import ABC, abstractmethod

from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.alert_repository import AlertRepository, SQLAlchemyAlertRepository
from app.repositories.notification_repository import (
    NotificationRepository,
    SQLAlchemyNotificationRepository,
)
from app.repositories.snapshot_repository import (
    SnapshotRepository,
    SQLAlchemySnapshotRepository,
)


class UnitOfWork(ABC):
    alerts: AlertRepository
    snapshots: SnapshotRepository
    notifications: NotificationRepository

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...


class SQLAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, session: AsyncSession):
        self.session = session
        self.alerts = SQLAlchemyAlertRepository(session)
        self.snapshots = SQLAlchemySnapshotRepository(session)
        self.notifications = SQLAlchemyNotificationRepository(session)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
