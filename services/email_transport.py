"""
Email transport collaborators.

SendGridTransport posts to the SendGrid v3 mail/send API with httpx.
ConsoleTransport logs the message instead of sending (development).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol
from uuid import uuid4

import httpx
import logfire

from config.settings import settings


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: Optional[str] = None
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)


@dataclass
class TransportResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailTransport(Protocol):
    """Anything that can send an EmailMessage."""

    async def send(self, message: EmailMessage) -> TransportResult:
        ...


class SendGridTransport:
    """Client for the SendGrid v3 mail/send API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            transport: Optional httpx transport (httpx.MockTransport in tests)
        """
        self.api_key = api_key if api_key is not None else settings.sendgrid_api_key
        self.from_email = from_email or settings.sendgrid_from_email
        self.base_url = (base_url or settings.sendgrid_api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.email_send_timeout_seconds
        self._transport = transport

        if not self.api_key:
            raise ValueError(
                "SendGrid API key missing. "
                "Set SENDGRID_API_KEY in environment or use EMAIL_TRANSPORT=console."
            )

    def build_payload(self, message: EmailMessage) -> Dict[str, Any]:
        personalization: Dict[str, Any] = {"to": [{"email": message.to}]}
        # SendGrid rejects a request that repeats an address across to/cc/bcc
        cc = [a for a in message.cc if a.lower() != message.to.lower()]
        bcc = [a for a in message.bcc if a.lower() != message.to.lower() and a not in cc]
        if cc:
            personalization["cc"] = [{"email": a} for a in cc]
        if bcc:
            personalization["bcc"] = [{"email": a} for a in bcc]

        content = []
        if message.text:
            content.append({"type": "text/plain", "value": message.text})
        content.append({"type": "text/html", "value": message.html or " "})

        return {
            "personalizations": [personalization],
            "from": {"email": self.from_email},
            "subject": message.subject,
            "content": content,
        }

    async def send(self, message: EmailMessage) -> TransportResult:
        """
        Send one message. HTTP and network failures are returned, not raised.
        """
        url = f"{self.base_url}/v3/mail/send"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logfire.info(
            "Sending email via SendGrid",
            to=message.to,
            cc_count=len(message.cc),
            bcc_count=len(message.bcc),
        )

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(url, json=self.build_payload(message), headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logfire.error(
                    "SendGrid API HTTP error",
                    status_code=e.response.status_code,
                    response=e.response.text[:500]
                )
                return TransportResult(
                    success=False,
                    error=f"SendGrid returned {e.response.status_code}: {e.response.text[:200]}",
                )
            except httpx.TimeoutException:
                logfire.error("SendGrid API timeout", to=message.to)
                return TransportResult(success=False, error="SendGrid request timed out")
            except httpx.HTTPError as e:
                logfire.error("SendGrid request failed", error=str(e))
                return TransportResult(success=False, error=f"SendGrid request failed: {e}")

        message_id = response.headers.get("x-message-id")
        logfire.info("SendGrid accepted email", status_code=response.status_code, message_id=message_id)
        return TransportResult(success=True, message_id=message_id)


class ConsoleTransport:
    """Logs messages instead of sending them. Keeps them in memory for inspection."""

    def __init__(self):
        self.sent: List[EmailMessage] = []

    async def send(self, message: EmailMessage) -> TransportResult:
        self.sent.append(message)
        message_id = f"console-{uuid4()}"
        logfire.info(
            "Email (console transport)",
            to=message.to,
            cc=message.cc,
            bcc=message.bcc,
            subject=message.subject,
            html_length=len(message.html or ""),
            message_id=message_id,
        )
        return TransportResult(success=True, message_id=message_id)


def get_email_transport() -> EmailTransport:
    """Transport selected by settings.email_transport."""
    if settings.email_transport == "sendgrid":
        return SendGridTransport()
    return ConsoleTransport()
