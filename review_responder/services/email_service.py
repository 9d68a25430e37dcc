"""Transactional email via the SendGrid v3 API"""
import httpx
import logging
from typing import Optional

from review_responder.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Sends HTML email through SendGrid. Failures are logged, never raised."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.api_url = settings.SENDGRID_API_URL
        self.api_key = settings.SENDGRID_API_KEY
        self.from_email = settings.SENDGRID_FROM_EMAIL
        self.from_name = settings.SENDGRID_FROM_NAME
        self._http_client = http_client

    def _build_payload(self, to: str, subject: str, html: str, to_name: Optional[str]) -> dict:
        recipient = {"email": to}
        if to_name:
            recipient["name"] = to_name
        return {
            "personalizations": [{"to": [recipient]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }

    async def send_email(self, to: str, subject: str, html: str, to_name: Optional[str] = None) -> bool:
        """
        Send an email

        Returns:
            True if SendGrid accepted the message (HTTP 202)
        """
        if not self.api_key:
            logger.warning(f"SENDGRID_API_KEY not set, skipping email to {to}: {subject}")
            return False

        payload = self._build_payload(to, subject, html, to_name)
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.api_url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"SendGrid request error for {to}: {str(e)}")
            return False

        if response.status_code == 202:
            logger.info(f"Email sent successfully to {to}")
            return True

        logger.error(f"Failed to send email to {to}: {response.status_code} - {response.text}")
        return False
