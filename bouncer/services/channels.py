"""
Outbound notification channels.

- TwilioSmsChannel: Twilio Programmable Messaging REST API
- ResendEmailChannel: Resend email REST API

Both keep one pooled httpx.AsyncClient per process and raise ChannelError
on any failure; the dispatcher decides what a failure means.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from bouncer.core.errors import ChannelError, ChannelNotConfiguredError
from bouncer.models.notification import EmailMessage, SmsMessage

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
RESEND_API_URL = "https://api.resend.com/emails"


class SmsChannel(Protocol):
    async def send(self, message: SmsMessage) -> str:
        ...


class EmailChannel(Protocol):
    async def send(self, message: EmailMessage) -> str:
        ...


class _HttpChannel:
    def __init__(
        self,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _post(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.post(url, **kwargs)
        except httpx.HTTPError as e:
            raise ChannelError(f"{type(self).__name__} transport error: {e}") from e

        if response.status_code >= 400:
            raise ChannelError(f"{type(self).__name__} HTTP {response.status_code}: {response.text[:200]}")

        try:
            return response.json()
        except ValueError:
            return {}


class TwilioSmsChannel(_HttpChannel):
    def __init__(
        self,
        *,
        account_sid: Optional[str],
        auth_token: Optional[str],
        from_number: Optional[str] = None,
        messaging_service_sid: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.messaging_service_sid = messaging_service_sid

    async def send(self, message: SmsMessage) -> str:
        if not self.account_sid or not self.auth_token:
            raise ChannelNotConfiguredError("Twilio account SID/auth token required")
        if not self.from_number and not self.messaging_service_sid:
            raise ChannelNotConfiguredError("Twilio sender number or messaging service SID required")

        form = {"To": message.to, "Body": message.body}
        if self.messaging_service_sid:
            form["MessagingServiceSid"] = self.messaging_service_sid
        else:
            form["From"] = self.from_number

        data = await self._post(
            f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/Messages.json",
            data=form,
            auth=(self.account_sid, self.auth_token),
        )
        return str(data.get("sid", ""))


class ResendEmailChannel(_HttpChannel):
    def __init__(
        self,
        *,
        api_key: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport)
        self.api_key = api_key

    async def send(self, message: EmailMessage) -> str:
        if not self.api_key:
            raise ChannelNotConfiguredError("Resend API key required")

        payload: Dict[str, Any] = {
            "from": message.sender,
            "to": [message.to],
            "subject": message.subject,
            "text": message.text,
            "html": message.html,
        }
        if message.reply_to:
            payload["reply_to"] = message.reply_to

        data = await self._post(
            RESEND_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        return str(data.get("id", ""))
