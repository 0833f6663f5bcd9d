"""Alert model."""

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, Float, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.models import Base


class AlertType(str, enum.Enum):
    PRICE = "price"
    PORTFOLIO = "portfolio"


class AlertOperator(str, enum.Enum):
    ABOVE = "above"
    BELOW = "below"
    # Price alerts only
    PERCENT_INCREASE = "percent_increase"
    PERCENT_DECREASE = "percent_decrease"


PERCENT_OPERATORS = frozenset({AlertOperator.PERCENT_INCREASE, AlertOperator.PERCENT_DECREASE})


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    address = Column(String(42), nullable=False, index=True)
    type = Column(Enum(AlertType), nullable=False)
    token_symbol = Column(String(20), nullable=True)
    token_address = Column(String(42), nullable=True)
    chain = Column(String(30), nullable=True)
    operator = Column(Enum(AlertOperator), nullable=False)
    value = Column(Float, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    last_triggered = Column(DateTime(timezone=True), nullable=True)
