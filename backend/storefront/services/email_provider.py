"""
Email Provider (SendGrid)

Transactional sends over the SendGrid v3 mail API.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from storefront.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class SendGridProvider:
    """SendGrid provider for rendered HTML emails."""

    BASE_URL = "https://api.sendgrid.com/v3"

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = settings.SENDGRID_API_KEY if api_key is None else api_key
        self.from_email = settings.SENDGRID_FROM_EMAIL
        self.from_name = settings.SENDGRID_FROM_NAME
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=30.0,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._http_client

    async def close(self):
        """Explicit cleanup method."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def send_html(self, to_email: str, subject: str, html: str) -> SendResult:
        """Send a single rendered email."""
        if not self.configured:
            logger.warning("SendGrid API key not configured")
            return SendResult(success=False, error="Email not configured")

        payload = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }

        try:
            http = await self._get_http_client()
            resp = await http.post(f"{self.BASE_URL}/mail/send", json=payload)

            if resp.status_code in (200, 202):
                return SendResult(success=True, message_id=resp.headers.get("X-Message-Id"))
            logger.error(f"SendGrid send failed: {resp.status_code} - {resp.text}")
            return SendResult(success=False, error=resp.text)
        except httpx.HTTPError as e:
            logger.error(f"SendGrid send exception: {e}")
            return SendResult(success=False, error=str(e))
