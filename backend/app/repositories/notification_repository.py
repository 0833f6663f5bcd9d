"""Notification repository."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.alert import AlertType
from app.models.notification import Notification


class NotificationRepository(ABC):
    """Notification persistence.

    `create` is the only method the alert engine uses; the rest back the
    notifications API.
    """

    @abstractmethod
    async def create(
        self,
        alert_id: UUID,
        address: str,
        title: str,
        message: str,
        type: AlertType,
        triggered_at: datetime,
    ) -> Notification:
        """Stage a new unread notification."""

    @abstractmethod
    async def list_for_address(
        self,
        address: str,
        is_read: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Notification]:
        """Notifications for an address, newest first."""

    @abstractmethod
    async def count_for_address(self, address: str, is_read: Optional[bool] = None) -> int:
        """Total notifications matching the same filter as list_for_address."""

    @abstractmethod
    async def owned_ids(self, address: str, notification_ids: Sequence[UUID]) -> Set[UUID]:
        """Subset of `notification_ids` that belongs to `address`."""

    @abstractmethod
    async def set_read(
        self,
        address: str,
        notification_ids: Sequence[UUID],
        is_read: bool,
        read_at: Optional[datetime],
    ) -> int:
        """Update read state, return the number of rows changed."""

    @abstractmethod
    async def delete(self, address: str, notification_ids: Sequence[UUID]) -> int:
        """Delete notifications, return the number of rows removed."""


class SQLAlchemyNotificationRepository(NotificationRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        alert_id: UUID,
        address: str,
        title: str,
        message: str,
        type: AlertType,
        triggered_at: datetime,
    ) -> Notification:
        notification = Notification(
            alert_id=alert_id,
            address=address,
            title=title,
            message=message,
            type=type,
            is_read=False,
            triggered_at=triggered_at,
        )
        self.session.add(notification)
        await self.session.flush()
        return notification

    def _filtered(self, query, address: str, is_read: Optional[bool]):
        query = query.where(Notification.address == address.lower())
        if is_read is not None:
            query = query.where(Notification.is_read == is_read)
        return query

    async def list_for_address(
        self,
        address: str,
        is_read: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Notification]:
        query = self._filtered(select(Notification), address, is_read)
        query = query.order_by(Notification.triggered_at.desc()).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_for_address(self, address: str, is_read: Optional[bool] = None) -> int:
        query = self._filtered(select(func.count(Notification.id)), address, is_read)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def owned_ids(self, address: str, notification_ids: Sequence[UUID]) -> Set[UUID]:
        result = await self.session.execute(
            select(Notification.id).where(
                Notification.id.in_(list(notification_ids)),
                Notification.address == address.lower(),
            )
        )
        return set(result.scalars().all())

    async def set_read(
        self,
        address: str,
        notification_ids: Sequence[UUID],
        is_read: bool,
        read_at: Optional[datetime],
    ) -> int:
        result = await self.session.execute(
            update(Notification)
            .where(
                Notification.id.in_(list(notification_ids)),
                Notification.address == address.lower(),
            )
            .values(is_read=is_read, read_at=read_at)
        )
        return result.rowcount

    async def delete(self, address: str, notification_ids: Sequence[UUID]) -> int:
        result = await self.session.execute(
            delete(Notification).where(
                Notification.id.in_(list(notification_ids)),
                Notification.address == address.lower(),
            )
        )
        return result.rowcount
