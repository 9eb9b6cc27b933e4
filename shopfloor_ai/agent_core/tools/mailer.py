"""Outbound e-mail delivery.

``Mailer`` is the collaborator the ``email_invoice`` tool talks to.
``SendGridMailer`` delivers through the SendGrid v3 HTTP API using httpx.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

logger = logging.getLogger(__name__)

SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"


class MailDeliveryError(Exception):
    """Raised when the mail provider rejects or cannot accept a message."""


class Mailer(Protocol):
    """Send one HTML e-mail; return the provider's message id when known."""

    async def send(self, *, to: str, subject: str, html: str) -> Optional[str]: ...


@dataclass
class SendGridMailer:
    """SendGrid v3 ``mail/send`` client.

    Attributes
    ----------
    api_key:
        SendGrid API key (``SENDGRID_API_KEY``).
    from_email / from_name:
        Sender identity; the address must be verified in SendGrid.
    client:
        Optional shared ``httpx.AsyncClient``. When omitted a short-lived
        client is created per message.
    """

    api_key: str
    from_email: str
    from_name: Optional[str] = None
    client: Optional[httpx.AsyncClient] = None
    api_url: str = SENDGRID_API_URL
    timeout: float = 10.0

    async def send(self, *, to: str, subject: str, html: str) -> Optional[str]:
        sender = {"email": self.from_email}
        if self.from_name:
            sender["name"] = self.from_name
        body = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": sender,
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self.client is not None:
                resp = await self.client.post(self.api_url, json=body, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(self.api_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise MailDeliveryError(f"Mail provider unreachable: {e}") from e

        if resp.status_code >= 300:
            logger.warning(f"SendGrid rejected message to {to}: {resp.status_code} {resp.text[:200]}")
            raise MailDeliveryError(f"Mail provider returned {resp.status_code}")
        return resp.headers.get("X-Message-Id")
