import time

import pytest

from bouncer.models.notification import EmailMessage, NotificationTask, SmsMessage
from bouncer.services.notification_dispatcher import NotificationDispatcher, mask_recipient
from tests.fakes import RecordingChannel

pytestmark = pytest.mark.anyio


def sms_task(to: str, audience: str = "guest") -> NotificationTask:
    return NotificationTask(channel="sms", audience=audience, recipient=to, payload=SmsMessage(to=to, body="hi"))


def email_task(to: str, audience: str = "host") -> NotificationTask:
    return NotificationTask(
        channel="email",
        audience=audience,
        recipient=to,
        payload=EmailMessage(sender="b@example.com", to=to, subject="s", text="t", html="<p>t</p>"),
    )


async def test_empty_task_list():
    dispatcher = NotificationDispatcher(sms=RecordingChannel(), email=RecordingChannel())
    assert await dispatcher.dispatch([]) == []


async def test_routes_tasks_to_their_channel():
    sms, email = RecordingChannel(), RecordingChannel()
    outcomes = await NotificationDispatcher(sms=sms, email=email).dispatch(
        [email_task("host@example.com"), sms_task("555-1111")]
    )
    assert [o.status for o in outcomes] == ["sent", "sent"]
    assert [m.to for m in sms.sent] == ["555-1111"]
    assert [m.to for m in email.sent] == ["host@example.com"]
    assert outcomes[1].provider_id == "msg-1"


async def test_one_channel_failure_does_not_affect_others():
    sms = RecordingChannel(fail="twilio said no")
    email = RecordingChannel()
    outcomes = await NotificationDispatcher(sms=sms, email=email).dispatch(
        [sms_task("555-1111", "host"), email_task("host@example.com"), sms_task("555-2222")]
    )
    assert [o.status for o in outcomes] == ["failed", "sent", "failed"]
    assert outcomes[0].reason == "twilio said no"
    assert len(email.sent) == 1
    assert len(sms.started) == 2


async def test_tasks_run_concurrently():
    sms = RecordingChannel(delay_s=0.1)
    email = RecordingChannel(delay_s=0.1)
    t0 = time.perf_counter()
    outcomes = await NotificationDispatcher(sms=sms, email=email).dispatch(
        [sms_task("1"), sms_task("2"), email_task("a@example.com"), email_task("b@example.com")]
    )
    assert all(o.ok for o in outcomes)
    assert time.perf_counter() - t0 < 0.35


async def test_slow_channel_times_out_without_blocking_others():
    sms = RecordingChannel(delay_s=1.0)
    email = RecordingChannel()
    outcomes = await NotificationDispatcher(sms=sms, email=email, timeout_ms=20).dispatch(
        [sms_task("555-1111"), email_task("host@example.com")]
    )
    assert outcomes[0].status == "failed"
    assert "timed out" in outcomes[0].reason
    assert outcomes[1].ok


async def test_unexpected_exception_is_contained():
    class Exploding:
        async def send(self, message):
            raise KeyError("bad payload")

    outcomes = await NotificationDispatcher(sms=Exploding(), email=RecordingChannel()).dispatch(
        [sms_task("555-1111")]
    )
    assert outcomes[0].status == "failed"
    assert outcomes[0].reason


async def test_mask_recipient():
    assert mask_recipient("+15551234567") == "***4567"
    assert mask_recipient("jane@example.com") == "j***@example.com"
    assert mask_recipient("12") == "***"
