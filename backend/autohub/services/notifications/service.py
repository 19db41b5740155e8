"""
Fire-and-forget email notifications for order and payment events.

Delivery failures never propagate to the caller: the business operation that
triggered the notification has already succeeded, so failures are logged and
dropped.
"""

import asyncio
from typing import Optional

from autohub.core.config import Settings, get_settings
from autohub.core.logging import get_logger
from autohub.services.notifications.aws_clients import SESClient, SESClientError

logger = get_logger(__name__)


class NotificationService:
    """Sends plain-text emails through SES when notifications are enabled."""

    def __init__(
        self,
        ses_client: Optional[SESClient] = None,
        enabled: Optional[bool] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.enabled = settings.notifications_enabled if enabled is None else enabled
        self._settings = settings
        self._ses_client = ses_client

    def _client(self) -> SESClient:
        if self._ses_client is None:
            self._ses_client = SESClient.from_settings(self._settings)
        return self._ses_client

    async def notify(self, email: Optional[str], subject: str, body: str) -> bool:
        """
        Send one email.

        Returns:
            True if SES accepted the message, False if skipped or failed
        """
        if not self.enabled:
            logger.debug("Notifications disabled, skipping email", subject=subject)
            return False
        if not email:
            logger.debug("No recipient address, skipping email", subject=subject)
            return False

        try:
            message_id = await asyncio.to_thread(
                self._client().send_email, [email], subject, body
            )
        except SESClientError as e:
            logger.error(
                "Notification delivery failed",
                recipient=email,
                subject=subject,
                error=str(e),
                **e.context,
            )
            return False
        except Exception as e:
            logger.error(
                "Unexpected notification failure",
                recipient=email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        logger.info("Notification sent", recipient=email, message_id=message_id)
        return True

    async def order_created(self, email: Optional[str], order_id: str, total: str) -> bool:
        return await self.notify(
            email,
            "Your part order has been placed",
            f"Your order {order_id} has been placed successfully.\n"
            f"Order total: {total}\n",
        )

    async def order_status_changed(
        self,
        email: Optional[str],
        order_id: str,
        status: str,
        tracking_number: Optional[str] = None,
    ) -> bool:
        body = f"Your order {order_id} is now {status}.\n"
        if tracking_number:
            body += f"Tracking number: {tracking_number}\n"
        return await self.notify(email, f"Order {status}", body)
