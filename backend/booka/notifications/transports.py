"""Delivery backends for rendered emails."""

import logging
from typing import Protocol

import httpx

from booka.config import settings
from booka.notifications.templates import EmailMessage

logger = logging.getLogger(__name__)


class EmailTransport(Protocol):
    async def send(self, message: EmailMessage) -> None:
        """Deliver ``message`` or raise."""
        ...


class LoggingTransport:
    """Logs the email instead of sending it. Used when no API key is configured."""

    async def send(self, message: EmailMessage) -> None:
        logger.info(
            "Email simulated [%s] to <%s>: %s",
            message.template,
            message.to,
            message.subject,
        )


class ResendTransport:
    """Sends email through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.sender = sender
        self.url = url
        self.timeout = timeout
        self._client = client

    async def send(self, message: EmailMessage) -> None:
        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self._client is not None:
            response = await self._client.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=payload, headers=headers)
        response.raise_for_status()
        logger.info("Email sent [%s] to <%s> (id=%s)", message.template, message.to, response.json().get("id"))


def build_transport() -> EmailTransport:
    """Pick a transport from settings."""
    if settings.resend_api_key:
        return ResendTransport(
            api_key=settings.resend_api_key,
            sender=f"{settings.email_from_name} <{settings.email_from}>",
            url=settings.resend_api_url,
            timeout=settings.email_timeout_seconds,
        )
    return LoggingTransport()
