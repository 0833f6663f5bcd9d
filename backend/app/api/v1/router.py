"""API v1 router."""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    alerts,
    cron,
    notifications,
)

api_router = APIRouter()

api_router.include_router(alerts.router, prefix="/alerts", tags=["Alerts"])
api_router.include_router(cron.router, prefix="/cron", tags=["Cron"])
api_router.include_router(
    notifications.router, prefix="/notifications", tags=["Notifications"]
)
