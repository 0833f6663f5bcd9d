"""Notification endpoints, scoped by wallet address."""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.api.deps import ADDRESS_RE, get_notification_repository, validate_address
from app.models.alert import AlertType
from app.repositories.notification_repository import NotificationRepository

router = APIRouter()


class NotificationResponse(BaseModel):
    """Notification response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    alert_id: UUID
    address: str
    title: str
    message: str
    type: AlertType
    is_read: bool
    triggered_at: datetime
    read_at: Optional[datetime] = None


class PaginationResponse(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    pagination: PaginationResponse


class NotificationCountResponse(BaseModel):
    """Notification count response."""

    unread_count: int


class NotificationBatchRequest(BaseModel):
    """Batch of notifications owned by one address."""

    address: str
    notification_ids: List[UUID] = Field(..., min_length=1)

    @field_validator("address")
    @classmethod
    def check_address(cls, v: str) -> str:
        if not ADDRESS_RE.match(v):
            raise ValueError("Valid address is required")
        return v.lower()


class MarkReadRequest(NotificationBatchRequest):
    """Request to mark notifications as read or unread."""

    is_read: bool


class BatchUpdateResponse(BaseModel):
    message: str
    updated: int


async def _require_ownership(
    repo: NotificationRepository, address: str, notification_ids: List[UUID]
) -> None:
    owned = await repo.owned_ids(address, notification_ids)
    if len(owned) != len(set(notification_ids)):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Some notifications not found or unauthorized",
        )


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    address: str = Query(...),
    is_read: Optional[bool] = None,
    limit: int = 50,
    offset: int = Query(0, ge=0),
    repo: NotificationRepository = Depends(get_notification_repository),
) -> NotificationListResponse:
    """List notifications for a wallet address, newest first."""
    address = validate_address(address)
    limit = max(1, min(limit, 100))  # Cap at 100

    notifications = await repo.list_for_address(
        address, is_read=is_read, limit=limit, offset=offset
    )
    total = await repo.count_for_address(address, is_read=is_read)

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        pagination=PaginationResponse(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + limit < total,
        ),
    )


@router.get("/count", response_model=NotificationCountResponse)
async def get_unread_count(
    address: str = Query(...),
    repo: NotificationRepository = Depends(get_notification_repository),
) -> NotificationCountResponse:
    """Get count of unread notifications."""
    address = validate_address(address)
    count = await repo.count_for_address(address, is_read=False)
    return NotificationCountResponse(unread_count=count)


@router.patch("", response_model=BatchUpdateResponse)
async def mark_notifications(
    request: MarkReadRequest,
    repo: NotificationRepository = Depends(get_notification_repository),
) -> BatchUpdateResponse:
    """Mark notifications as read or unread."""
    await _require_ownership(repo, request.address, request.notification_ids)

    read_at = datetime.now(timezone.utc) if request.is_read else None
    count = await repo.set_read(
        request.address, request.notification_ids, request.is_read, read_at
    )
    return BatchUpdateResponse(message=f"{count} notifications updated", updated=count)


@router.delete("", response_model=BatchUpdateResponse)
async def delete_notifications(
    request: NotificationBatchRequest,
    repo: NotificationRepository = Depends(get_notification_repository),
) -> BatchUpdateResponse:
    """Delete notifications."""
    await _require_ownership(repo, request.address, request.notification_ids)

    count = await repo.delete(request.address, request.notification_ids)
    return BatchUpdateResponse(message=f"{count} notifications deleted", updated=count)
