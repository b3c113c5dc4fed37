"""Email transports: SendGrid over httpx.MockTransport, and the console fallback."""

import json

import httpx
import pytest

from services import email_transport
from services.email_transport import (
    ConsoleTransport,
    EmailMessage,
    SendGridTransport,
    get_email_transport,
)


def _message(**overrides) -> EmailMessage:
    values = {
        "to": "dana@example.com",
        "subject": "Thanks Dana",
        "html": "<p>Hi</p>",
        "text": "Hi",
        "cc": ["studio@example.com", "Dana@example.com"],
        "bcc": ["archive@example.com", "studio@example.com"],
    }
    values.update(overrides)
    return EmailMessage(**values)


def _sendgrid(handler) -> SendGridTransport:
    return SendGridTransport(
        api_key="SG.test-key",
        from_email="notifications@bookingops.test",
        base_url="https://sendgrid.test/",
        transport=httpx.MockTransport(handler),
    )


# ============================================================================
# SendGrid
# ============================================================================

@pytest.mark.asyncio
async def test_sendgrid_posts_payload():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(202, headers={"x-message-id": "sg-123"})

    result = await _sendgrid(handler).send(_message())

    assert result.success
    assert result.message_id == "sg-123"
    assert captured["url"] == "https://sendgrid.test/v3/mail/send"
    assert captured["auth"] == "Bearer SG.test-key"

    body = captured["body"]
    assert body["from"] == {"email": "notifications@bookingops.test"}
    assert body["subject"] == "Thanks Dana"
    personalization = body["personalizations"][0]
    assert personalization["to"] == [{"email": "dana@example.com"}]
    # the recipient is dropped from cc, and cc addresses from bcc
    assert personalization["cc"] == [{"email": "studio@example.com"}]
    assert personalization["bcc"] == [{"email": "archive@example.com"}]
    assert body["content"] == [
        {"type": "text/plain", "value": "Hi"},
        {"type": "text/html", "value": "<p>Hi</p>"},
    ]


def test_payload_without_copies_or_text():
    transport = _sendgrid(lambda request: httpx.Response(202))
    payload = transport.build_payload(_message(cc=[], bcc=[], text=None))

    assert "cc" not in payload["personalizations"][0]
    assert "bcc" not in payload["personalizations"][0]
    assert payload["content"] == [{"type": "text/html", "value": "<p>Hi</p>"}]


@pytest.mark.asyncio
async def test_sendgrid_http_error_is_returned():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, text='{"errors":[{"message":"Invalid email"}]}')

    result = await _sendgrid(handler).send(_message())

    assert not result.success
    assert result.error.startswith("SendGrid returned 400")
    assert "Invalid email" in result.error


@pytest.mark.asyncio
async def test_sendgrid_timeout_is_returned():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    result = await _sendgrid(handler).send(_message())

    assert not result.success
    assert result.error == "SendGrid request timed out"


@pytest.mark.asyncio
async def test_sendgrid_network_error_is_returned():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = await _sendgrid(handler).send(_message())

    assert not result.success
    assert "connection refused" in result.error


def test_sendgrid_requires_api_key():
    with pytest.raises(ValueError, match="SENDGRID_API_KEY"):
        SendGridTransport(api_key="")


# ============================================================================
# Console and selection
# ============================================================================

@pytest.mark.asyncio
async def test_console_transport_keeps_messages():
    transport = ConsoleTransport()

    result = await transport.send(_message())

    assert result.success
    assert result.message_id.startswith("console-")
    assert transport.sent[0].to == "dana@example.com"


def test_transport_selected_from_settings(monkeypatch):
    monkeypatch.setattr(email_transport.settings, "email_transport", "console")
    assert isinstance(get_email_transport(), ConsoleTransport)

    monkeypatch.setattr(email_transport.settings, "email_transport", "sendgrid")
    monkeypatch.setattr(email_transport.settings, "sendgrid_api_key", "SG.from-settings")
    transport = get_email_transport()
    assert isinstance(transport, SendGridTransport)
    assert transport.api_key == "SG.from-settings"
