from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

Channel = Literal["sms", "email"]
Audience = Literal["host", "guest"]


class SmsMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    to: str
    body: str


class EmailMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    sender: str
    to: str
    subject: str
    text: str
    html: str
    reply_to: Optional[str] = None


class NotificationTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel: Channel
    audience: Audience
    recipient: str
    payload: Union[SmsMessage, EmailMessage]


class NotificationOutcome(BaseModel):
    channel: Channel
    audience: Audience
    recipient: str
    status: Literal["sent", "failed"]
    reason: Optional[str] = None
    provider_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "sent"
