"""Portfolio snapshot repository (read-only for the alert engine)."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.portfolio_snapshot import PortfolioSnapshot


class SnapshotRepository(ABC):
    @abstractmethod
    async def latest(self, address: str) -> Optional[PortfolioSnapshot]:
        """Most recent snapshot for an address, or None."""

    @abstractmethod
    async def before(self, address: str, created_at: datetime) -> Optional[PortfolioSnapshot]:
        """Most recent snapshot strictly older than `created_at`, or None."""


class SQLAlchemySnapshotRepository(SnapshotRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def latest(self, address: str) -> Optional[PortfolioSnapshot]:
        result = await self.session.execute(
            select(PortfolioSnapshot)
            .where(PortfolioSnapshot.address == address.lower())
            .order_by(PortfolioSnapshot.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def before(self, address: str, created_at: datetime) -> Optional[PortfolioSnapshot]:
        result = await self.session.execute(
            select(PortfolioSnapshot)
            .where(
                PortfolioSnapshot.address == address.lower(),
                PortfolioSnapshot.created_at < created_at,
            )
            .order_by(PortfolioSnapshot.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
