import json
from urllib.parse import parse_qs

import httpx
import pytest

from bouncer.core.errors import ChannelError, ChannelNotConfiguredError
from bouncer.models.notification import EmailMessage, SmsMessage
from bouncer.services.channels import ResendEmailChannel, TwilioSmsChannel

pytestmark = pytest.mark.anyio


def recording_transport(status_code: int, body: dict, seen: list) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json=body)

    return httpx.MockTransport(handler)


class TestTwilioSmsChannel:
    async def test_send_posts_form_to_messages_endpoint(self):
        seen = []
        channel = TwilioSmsChannel(
            account_sid="AC123",
            auth_token="secret",
            from_number="+15550001111",
            transport=recording_transport(201, {"sid": "SM42"}, seen),
        )
        sid = await channel.send(SmsMessage(to="+15552223333", body="hello"))
        await channel.close()

        assert sid == "SM42"
        [request] = seen
        assert request.url == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
        form = parse_qs(request.content.decode())
        assert form == {"To": ["+15552223333"], "Body": ["hello"], "From": ["+15550001111"]}
        assert request.headers["Authorization"].startswith("Basic ")

    async def test_messaging_service_preferred_over_number(self):
        seen = []
        channel = TwilioSmsChannel(
            account_sid="AC123",
            auth_token="secret",
            from_number="+15550001111",
            messaging_service_sid="MG9",
            transport=recording_transport(201, {"sid": "SM1"}, seen),
        )
        await channel.send(SmsMessage(to="+1", body="b"))
        form = parse_qs(seen[0].content.decode())
        assert form["MessagingServiceSid"] == ["MG9"]
        assert "From" not in form

    async def test_http_error_raises_channel_error(self):
        channel = TwilioSmsChannel(
            account_sid="AC123",
            auth_token="secret",
            from_number="+1",
            transport=recording_transport(400, {"message": "invalid To"}, []),
        )
        with pytest.raises(ChannelError, match="HTTP 400"):
            await channel.send(SmsMessage(to="bogus", body="b"))

    async def test_missing_credentials(self):
        channel = TwilioSmsChannel(account_sid=None, auth_token=None, from_number="+1")
        with pytest.raises(ChannelNotConfiguredError):
            await channel.send(SmsMessage(to="+1", body="b"))


class TestResendEmailChannel:
    async def test_send_posts_json(self):
        seen = []
        channel = ResendEmailChannel(api_key="re_123", transport=recording_transport(200, {"id": "em_1"}, seen))
        message = EmailMessage(
            sender="Bouncer <b@example.com>",
            to="host@example.com",
            subject="New Plea: Jane",
            text="plain",
            html="<p>html</p>",
            reply_to="reply@example.com",
        )
        assert await channel.send(message) == "em_1"

        [request] = seen
        assert request.url == "https://api.resend.com/emails"
        assert request.headers["Authorization"] == "Bearer re_123"
        assert json.loads(request.content) == {
            "from": "Bouncer <b@example.com>",
            "to": ["host@example.com"],
            "subject": "New Plea: Jane",
            "text": "plain",
            "html": "<p>html</p>",
            "reply_to": "reply@example.com",
        }

    async def test_transport_failure_raises_channel_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        channel = ResendEmailChannel(api_key="re_123", transport=httpx.MockTransport(handler))
        message = EmailMessage(sender="a@example.com", to="b@example.com", subject="s", text="t", html="h")
        with pytest.raises(ChannelError, match="transport error"):
            await channel.send(message)

    async def test_missing_api_key(self):
        message = EmailMessage(sender="a@example.com", to="b@example.com", subject="s", text="t", html="h")
        with pytest.raises(ChannelNotConfiguredError):
            await ResendEmailChannel(api_key=None).send(message)
