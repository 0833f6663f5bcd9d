"""Email service for alert notifications, backed by the Resend REST API."""

import html
import logging
from dataclasses import dataclass
from typing import List, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    """Outcome of a send attempt."""

    success: bool
    id: Optional[str] = None
    error: Optional[str] = None


def build_alert_email_html(title: str, message: str) -> str:
    """Compose a basic HTML email for an alert."""
    return (
        "<!doctype html><html><body>"
        f"<h2>{html.escape(title)}</h2>"
        f"<p>{html.escape(message)}</p>"
        "</body></html>"
    )


class EmailService:
    """Service for sending emails through Resend."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
    ):
        self.api_url = settings.RESEND_API_URL
        self.api_key = (api_key if api_key is not None else settings.RESEND_API_KEY) or ""
        self.from_email = from_email or settings.RESEND_FROM_EMAIL
        self._client = client

    @property
    def is_configured(self) -> bool:
        """Check if email is properly configured."""
        return bool(self.api_key.strip())

    async def send_email(self, to: List[str], subject: str, html: str) -> EmailResult:
        """
        Send an email.

        Args:
            to: Recipient email addresses
            subject: Email subject
            html: HTML body

        Returns:
            EmailResult with the provider message id on success. Never raises.
        """
        if not self.is_configured:
            return EmailResult(success=False, error="Resend API key not configured")

        payload = {
            "from": self.from_email,
            "to": list(to),
            "subject": subject,
            "html": html,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key.strip()}",
            "Content-Type": "application/json",
        }

        try:
            if self._client is not None:
                response = await self._client.post(self.api_url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
                    response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Failed to send email to {', '.join(to)}: {e}")
            return EmailResult(success=False, error=str(e) or type(e).__name__)

        if not response.is_success:
            return EmailResult(success=False, error=self._error_message(response))

        try:
            data = response.json()
        except ValueError:
            data = {}

        logger.info(f"Email sent to {', '.join(to)}: {subject}")
        return EmailResult(success=True, id=data.get("id") if isinstance(data, dict) else None)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            for key in ("error", "message"):
                if data.get(key):
                    return str(data[key])
        return f"HTTP {response.status_code}"


# Singleton instance
email_service = EmailService()
