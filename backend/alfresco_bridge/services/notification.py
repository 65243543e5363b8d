"""Notification email built from settings and forwarded to the mail utility."""

import logging
from typing import Optional

import httpx

from alfresco_bridge.core.config import Settings
from alfresco_bridge.core.errors import NotificationConfigError
from alfresco_bridge.schemas.email import Email

logger = logging.getLogger(__name__)


class EmailBuilder:
    """Builds the fixed-shape notification email from configuration."""

    def __init__(self, recipient: Optional[str], sender: Optional[str], subject: Optional[str], message: Optional[str]):
        self.recipient = recipient
        self.sender = sender
        self.subject = subject
        self.message = message

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailBuilder":
        return cls(
            recipient=settings.notification_email_recipient,
            sender=settings.notification_email_sender,
            subject=settings.notification_email_subject,
            message=settings.notification_email_message,
        )

    @staticmethod
    def _required(field: str, value) -> str:
        if value is None:
            raise NotificationConfigError(f"A required field was missing: {field}")
        if not isinstance(value, str):
            raise NotificationConfigError(f"The wrong type was supplied for a required field: {field}")
        if not value.strip():
            raise NotificationConfigError(f"A required field was missing: {field}")
        return value

    def build(self) -> Email:
        recipient = self._required("recipient", self.recipient)
        to = tuple(r.strip() for r in recipient.split(",") if r.strip())
        if not to:
            raise NotificationConfigError("A required field was missing: recipient")
        return Email(
            to=to,
            sender=self._required("sender", self.sender),
            subject=self._required("subject", self.subject),
            message=self._required("message", self.message),
        )


class EmailSender:
    """Posts an Email to the mail utility as multipart form data."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def build_parts(self, email: Email) -> dict:
        # "data" goes out as a form field (no filename); the mail utility
        # also expects a "file" part even when there is no attachment
        return {
            "data": (None, email.to_json(), "application/json"),
            "file": ("", b"", "application/octet-stream"),
        }

    async def send(self, email: Email) -> str:
        """Send ``email``; transport errors and non-2xx responses propagate."""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.url, files=self.build_parts(email))
            response.raise_for_status()
        logger.info("Notification sent to %d recipient(s) via %s", len(email.to), self.url)
        return response.text
