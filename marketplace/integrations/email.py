"""Transactional email delivery over an HTTP JSON API."""
from __future__ import annotations

import logging
from typing import Optional, Union

import httpx

from marketplace.config.email import EmailConfig
from marketplace.core.exceptions import NotificationDispatchError

logger = logging.getLogger(__name__)


class EmailClient:
    """POSTs ``{from, to, subject, text}`` to the configured email API.

    Raises NotificationDispatchError on any delivery failure; callers that
    treat email as best-effort catch it.
    """

    def __init__(
        self,
        config: EmailConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not config.api_url:
            raise ValueError("EmailClient requires EMAIL_API_URL")
        self._config = config
        self._transport = transport
        self._headers = {"Content-Type": "application/json"}
        if config.api_key:
            self._headers["Authorization"] = f"Bearer {config.api_key}"

    async def send(self, to: str, subject: str, text: str) -> None:
        payload = {"from": self._config.sender, "to": to, "subject": subject, "text": text}
        try:
            async with httpx.AsyncClient(timeout=self._config.timeout, transport=self._transport) as client:
                resp = await client.post(self._config.api_url, headers=self._headers, json=payload)
        except httpx.HTTPError as exc:
            raise NotificationDispatchError(f"Email API unreachable: {exc}", cause=exc) from exc
        if resp.status_code >= 400:
            raise NotificationDispatchError(
                f"Email API returned HTTP {resp.status_code}",
                details={"status": resp.status_code, "body": resp.text[:500]},
            )
        logger.info("EmailClient: sent %r to %s", subject, to)


class LoggingEmailClient:
    """Stand-in used when no email API is configured: records the message in the log."""

    async def send(self, to: str, subject: str, text: str) -> None:
        logger.info("Email notification would be sent to %s: %s", to, subject)


def build_email_client(config: EmailConfig) -> Union[EmailClient, LoggingEmailClient]:
    if config.enabled:
        return EmailClient(config)
    logger.info("EMAIL_API_URL not set, email notifications are logged only")
    return LoggingEmailClient()
