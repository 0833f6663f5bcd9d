"""Alert endpoints: price and portfolio alerts owned by a wallet address."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import validate_address
from app.core.database import get_db
from app.models.alert import PERCENT_OPERATORS, Alert, AlertOperator, AlertType

router = APIRouter()


class AlertCreate(BaseModel):
    """Schema for creating an alert."""

    type: AlertType
    operator: AlertOperator
    value: float = Field(..., gt=0)
    token_symbol: Optional[str] = Field(None, max_length=20)
    token_address: Optional[str] = Field(None, max_length=42)
    chain: Optional[str] = Field(None, max_length=30)

    @field_validator("token_symbol")
    @classmethod
    def strip_symbol(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def check_type_rules(self) -> "AlertCreate":
        if self.type == AlertType.PRICE:
            if not self.token_symbol:
                raise ValueError("token_symbol is required for price alerts")
        else:
            if self.operator in PERCENT_OPERATORS:
                raise ValueError("Percent operators are only valid for price alerts")
            # Portfolio alerts watch the whole wallet
            self.token_symbol = None
        return self


class AlertUpdate(BaseModel):
    """Schema for updating an alert."""

    enabled: Optional[bool] = None
    value: Optional[float] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_not_empty(self) -> "AlertUpdate":
        if self.enabled is None and self.value is None:
            raise ValueError("Nothing to update")
        return self


class AlertResponse(BaseModel):
    """Alert response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    address: str
    type: AlertType
    token_symbol: Optional[str] = None
    token_address: Optional[str] = None
    chain: Optional[str] = None
    operator: AlertOperator
    value: float
    enabled: bool
    created_at: datetime
    updated_at: datetime
    last_triggered: Optional[datetime] = None


class AlertListResponse(BaseModel):
    alerts: List[AlertResponse]


async def _get_owned_alert(db: AsyncSession, alert_id: UUID, address: str) -> Alert:
    result = await db.execute(
        select(Alert).where(
            Alert.id == alert_id,
            Alert.address == address,
        )
    )
    alert = result.scalar_one_or_none()

    if not alert:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Alert not found or not authorized",
        )
    return alert


@router.get("", response_model=AlertListResponse)
async def list_alerts(
    address: str = Query(...),
    db: AsyncSession = Depends(get_db),
) -> AlertListResponse:
    """List the alerts of a wallet address, newest first."""
    address = validate_address(address)

    result = await db.execute(
        select(Alert).where(Alert.address == address).order_by(Alert.created_at.desc())
    )
    alerts = result.scalars().all()

    return AlertListResponse(alerts=[AlertResponse.model_validate(a) for a in alerts])


@router.post("", response_model=AlertResponse, status_code=status.HTTP_201_CREATED)
async def create_alert(
    alert_in: AlertCreate,
    address: str = Query(...),
    db: AsyncSession = Depends(get_db),
) -> AlertResponse:
    """Create a new alert, enabled."""
    address = validate_address(address)

    alert = Alert(
        address=address,
        type=alert_in.type,
        token_symbol=alert_in.token_symbol,
        token_address=alert_in.token_address,
        chain=alert_in.chain,
        operator=alert_in.operator,
        value=alert_in.value,
        enabled=True,
    )

    db.add(alert)
    await db.commit()
    await db.refresh(alert)

    return AlertResponse.model_validate(alert)


@router.patch("/{alert_id}", response_model=AlertResponse)
async def update_alert(
    alert_id: UUID,
    alert_in: AlertUpdate,
    address: str = Query(...),
    db: AsyncSession = Depends(get_db),
) -> AlertResponse:
    """Enable, disable or re-threshold an alert."""
    address = validate_address(address)
    alert = await _get_owned_alert(db, alert_id, address)

    if alert_in.enabled is not None:
        alert.enabled = alert_in.enabled
    if alert_in.value is not None:
        alert.value = alert_in.value

    await db.commit()
    await db.refresh(alert)

    return AlertResponse.model_validate(alert)


@router.delete("/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_alert(
    alert_id: UUID,
    address: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Delete an alert and, through the foreign key, its notifications."""
    address = validate_address(address)
    alert = await _get_owned_alert(db, alert_id, address)

    await db.delete(alert)
    await db.commit()
