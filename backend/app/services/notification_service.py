"""Notification dispatch for fired alerts: in-app record plus email."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from app.core.config import settings
from app.models.alert import Alert, AlertOperator, AlertType
from app.models.notification import Notification
from app.repositories.unit_of_work import UnitOfWork
from app.services.email_service import EmailResult, EmailService, build_alert_email_html, email_service

logger = logging.getLogger(__name__)


@dataclass
class TriggerContext:
    """What the evaluator observed when an alert fired."""

    type: AlertType
    current_value: float
    token_symbol: Optional[str] = None
    address: Optional[str] = None


@dataclass
class AlertMessage:
    """Rendered texts for one fired alert."""

    title: str
    message: str
    subject: str
    body: str


def format_threshold(alert: Alert) -> str:
    """Render a threshold the way users typed it: `$100`, `$2.5`, `10%`."""
    value = float(alert.value)
    number = str(int(value)) if value.is_integer() else str(value)
    if _operator_value(alert.operator) in (
        AlertOperator.PERCENT_INCREASE.value,
        AlertOperator.PERCENT_DECREASE.value,
    ):
        return f"{number}%"
    return f"${number}"


def _operator_value(operator) -> str:
    return operator.value if isinstance(operator, AlertOperator) else str(operator)


def _operator_label(operator) -> str:
    return _operator_value(operator).replace("_", " ")


class NotificationDispatcher:
    """Turns a fired alert into a Notification row and an outbound email.

    The two side effects are independent: a failed email is logged and
    leaves the notification (and the alert's trigger timestamp) in place.
    """

    def __init__(
        self,
        email_sender: Optional[EmailService] = None,
        recipients: Optional[List[str]] = None,
    ):
        self.email_sender = email_sender or email_service
        self.recipients = recipients if recipients is not None else settings.alert_recipients

    def compose(self, alert: Alert, context: TriggerContext) -> AlertMessage:
        operator = _operator_label(alert.operator)
        threshold = format_threshold(alert)
        current = f"${context.current_value:.2f}"

        if context.type == AlertType.PORTFOLIO:
            return AlertMessage(
                title="Portfolio Value Alert",
                message=f"Portfolio value is now {current} ({operator} {threshold})",
                subject=f"Portfolio Alert: {operator} {threshold}",
                body=f"Current portfolio value: {current}",
            )

        symbol = (context.token_symbol or alert.token_symbol or "").upper()
        return AlertMessage(
            title=f"{symbol} Price Alert",
            message=f"{symbol} is now {current} ({operator} {threshold})",
            subject=f"Price Alert: {symbol} {operator} {threshold}",
            body=f"Current price: {current}",
        )

    async def record(
        self,
        uow: UnitOfWork,
        alert: Alert,
        context: TriggerContext,
        triggered_at: datetime,
        message: Optional[AlertMessage] = None,
    ) -> Notification:
        """Stage the in-app notification for a fired alert."""
        message = message or self.compose(alert, context)
        notification = await uow.notifications.create(
            alert_id=alert.id,
            address=(context.address or alert.address or "").lower(),
            title=message.title,
            message=message.message,
            type=context.type,
            triggered_at=triggered_at,
        )

        logger.info(
            f"Created notification for alert {alert.id}: {message.title}",
            extra={"alert_id": str(alert.id), "notification_type": context.type.value},
        )
        return notification

    async def send_email(self, message: AlertMessage) -> EmailResult:
        """Send the alert email. Failures are logged, never raised."""
        if not self.recipients:
            logger.warning("No alert recipients configured, skipping email notification")
            return EmailResult(success=False, error="No recipients configured")

        try:
            result = await self.email_sender.send_email(
                to=self.recipients,
                subject=message.subject,
                html=build_alert_email_html(message.subject, message.body),
            )
        except Exception as e:
            logger.error(f"Email sender raised for '{message.subject}': {e}")
            return EmailResult(success=False, error=str(e))

        if not result.success:
            logger.warning(f"Failed to send alert email '{message.subject}': {result.error}")
        return result

    async def dispatch(
        self,
        uow: UnitOfWork,
        alert: Alert,
        context: TriggerContext,
        triggered_at: datetime,
    ) -> EmailResult:
        """Record the notification, commit the staged writes, then email."""
        message = self.compose(alert, context)
        await self.record(uow, alert, context, triggered_at, message=message)
        await uow.commit()
        return await self.send_email(message)


# Singleton instance
notification_dispatcher = NotificationDispatcher()
