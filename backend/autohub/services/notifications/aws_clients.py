"""
AWS SES client wrapper used for order and payment emails.

boto3 calls are blocking; callers on the event loop run ``send_email`` in a
worker thread.
"""

import time
from typing import Any, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    EndpointConnectionError,
)

from autohub.core.config import Settings, get_settings
from autohub.core.logging import get_logger

logger = get_logger(__name__)

NON_RETRYABLE_ERROR_CODES = frozenset(
    {
        "MessageRejected",
        "MailFromDomainNotVerified",
        "ConfigurationSetDoesNotExist",
    }
)


class SESClientError(Exception):
    """Raised when SES refuses or fails to send an email."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.context = context


class SESClient:
    """
    Thin SES sender with bounded retries.

    Throttling and connection errors are retried with exponential backoff;
    rejections that will not succeed on retry fail immediately.
    """

    def __init__(
        self,
        from_address: str,
        region_name: str,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        client: Any = None,
    ) -> None:
        self.from_address = from_address
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._client = client or boto3.client(
            "ses",
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            region_name=region_name,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SESClient":
        settings = settings or get_settings()
        return cls(
            from_address=settings.ses_from_email,
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
        )

    def send_email(
        self,
        to_addresses: list[str],
        subject: str,
        body_text: str,
        body_html: Optional[str] = None,
    ) -> str:
        """
        Send an email.

        Returns:
            SES message id

        Raises:
            SESClientError: If sending fails after retries or is rejected
        """
        if not to_addresses:
            raise SESClientError("At least one recipient email address is required")

        message: dict[str, Any] = {
            "Subject": {"Data": subject, "Charset": "UTF-8"},
            "Body": {"Text": {"Data": body_text, "Charset": "UTF-8"}},
        }
        if body_html:
            message["Body"]["Html"] = {"Data": body_html, "Charset": "UTF-8"}

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self._client.send_email(
                    Source=self.from_address,
                    Destination={"ToAddresses": to_addresses},
                    Message=message,
                )
                logger.info(
                    "Email sent via SES",
                    message_id=response["MessageId"],
                    to_addresses=to_addresses,
                    attempt=attempt,
                )
                return response["MessageId"]

            except ClientError as e:
                error = e.response.get("Error", {})
                error_code = error.get("Code", "Unknown")
                logger.warning(
                    "SES client error",
                    attempt=attempt,
                    error_code=error_code,
                    error_message=error.get("Message", str(e)),
                )
                if error_code in NON_RETRYABLE_ERROR_CODES:
                    raise SESClientError(
                        f"SES rejected the email: {error_code}",
                        error_code=error_code,
                        to_addresses=to_addresses,
                    ) from e
                last_error = e

            except (BotoConnectionError, EndpointConnectionError, BotoCoreError) as e:
                logger.warning("SES connection error", attempt=attempt, error=str(e))
                last_error = e

            if attempt < self.max_retries:
                time.sleep(self.retry_backoff * (2 ** (attempt - 1)))

        raise SESClientError(
            f"Failed to send email after {self.max_retries} attempts",
            to_addresses=to_addresses,
            last_error=str(last_error),
        ) from last_error
