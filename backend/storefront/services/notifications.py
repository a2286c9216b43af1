"""
Customer notifications

Renders the account-credentials and order-confirmation emails from Jinja2
templates and hands them to the email provider. ``send`` never raises:
callers get a SendResult and decide whether to log it.
"""
import enum
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from storefront.core.config import settings
from storefront.services.email_provider import SendGridProvider, SendResult

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


class NotificationKind(str, enum.Enum):
    ACCOUNT_CREDENTIALS = "account_credentials"
    ORDER_CONFIRMATION = "order_confirmation"


def format_money(value: Any) -> str:
    return f"{settings.CURRENCY_SYMBOL}{float(value or 0):,.2f}"


def order_reference(order: Any) -> str:
    return getattr(order, "order_number", None) or f"#{order.id}"


def _subject(kind: NotificationKind, payload: Dict[str, Any]) -> str:
    if kind == NotificationKind.ACCOUNT_CREDENTIALS:
        return f"Welcome to {settings.SITE_NAME} - Your Account Details"
    return f"Order Confirmation - Order {order_reference(payload['order'])}"


class NotificationService:
    def __init__(self, provider: Optional[SendGridProvider] = None):
        self.provider = provider or SendGridProvider()
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.env.filters["money"] = format_money

    def render(self, kind: NotificationKind, payload: Dict[str, Any]) -> str:
        template = self.env.get_template(f"{kind.value}.html")
        return template.render(
            site_name=settings.SITE_NAME,
            frontend_url=settings.FRONTEND_URL.rstrip("/"),
            year=datetime.now().year,
            **payload,
        )

    async def send(self, kind: NotificationKind, recipient: str, payload: Dict[str, Any]) -> SendResult:
        """
        Render and deliver one notification.

        Args:
            kind: Which email to send
            recipient: Destination address
            payload: Template context; ``email``/``password`` for credentials,
                ``order`` for confirmations
        """
        kind = NotificationKind(kind)
        try:
            html = self.render(kind, payload)
            result = await self.provider.send_html(recipient, _subject(kind, payload), html)
        except Exception as e:
            logger.error(f"Notification {kind.value} to {recipient} failed: {e}")
            return SendResult(success=False, error=str(e))

        if result.success:
            logger.info(f"Notification {kind.value} sent to {recipient} message_id={result.message_id}")
        else:
            logger.warning(f"Notification {kind.value} to {recipient} not sent: {result.error}")
        return result

    async def send_account_credentials(self, email: str, password: str, name: Optional[str] = None) -> SendResult:
        return await self.send(
            NotificationKind.ACCOUNT_CREDENTIALS,
            email,
            {"email": email, "password": password, "name": name},
        )

    async def send_order_confirmation(self, email: str, order: Any) -> SendResult:
        return await self.send(NotificationKind.ORDER_CONFIRMATION, email, {"order": order})


_notification_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
