"""Shared API dependencies."""

import re
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.redis_client import get_redis
from app.core.security import extract_api_key, verify_api_key
from app.repositories.notification_repository import (
    NotificationRepository,
    SQLAlchemyNotificationRepository,
)
from app.services.cron_metrics import CronMetricsService

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def validate_address(address: str) -> str:
    """Lower-cased wallet address, 400 when it is not 0x plus 40 hex digits."""
    if not ADDRESS_RE.match(address or ""):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid Ethereum address",
        )
    return address.lower()


def require_cron_api_key(
    x_api_key: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
    api_key: Optional[str] = Query(default=None, alias="apiKey"),
) -> str:
    """Gate scheduler endpoints behind ALERTS_CRON_API_KEY."""
    provided = extract_api_key(x_api_key, authorization, api_key)
    if not verify_api_key(provided):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return provided


async def get_notification_repository(
    db: AsyncSession = Depends(get_db),
) -> NotificationRepository:
    return SQLAlchemyNotificationRepository(db)


async def get_cron_metrics_service() -> CronMetricsService:
    return CronMetricsService(await get_redis())
