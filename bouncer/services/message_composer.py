"""
Message Composer

Builds host and guest notifications for one plea. Pure: the same inputs
always produce the same tasks, in the order host email, host SMS,
guest SMS, guest email.
"""
from __future__ import annotations

from typing import List, Optional

from jinja2 import Environment, StrictUndefined

from bouncer.models.guest import Guest, MatchResult, PleaSubmission
from bouncer.models.notification import EmailMessage, NotificationTask, SmsMessage
from bouncer.services.match_resolution import summarize_matches, summarize_matches_short

EMAIL_FOOTER = (
    "You are receiving this because your address is on file for this event's guest list. "
    "This message was generated automatically and may contain AI-written text. "
    "Guest list details are confidential; please do not forward."
)

NO_PHONE = "not provided"

_html = Environment(autoescape=True, undefined=StrictUndefined)

_HOST_EMAIL_HTML = _html.from_string(
    """<h1>New Plea for Entry</h1>
<p><strong>Name:</strong> {{ name }}</p>
<p><strong>Phone:</strong> {{ phone }}</p>
<p><strong>Excuse:</strong> {{ excuse }}</p>
<p><strong>Guest List Match:</strong> {{ match_info }}</p>
<p><em>{{ notified_line }}</em></p>
<hr>
<p style="color:#6b7280;font-size:12px">{{ footer }}</p>
"""
)

_GUEST_EMAIL_HTML = _html.from_string(
    """<p>{{ body }}</p>
<hr>
<p style="color:#6b7280;font-size:12px">{{ footer }}</p>
"""
)


def vip_message(guest: Guest) -> str:
    return (
        f"{guest.name}, bestie. You're FINE. Honestly it's worse if you don't show up at all. "
        "Just come through."
    )


def fallback_message(guest: Guest, excuse: str) -> str:
    return f'Hey {guest.first_name}. Got your plea: "{excuse}". We\'ll review and let you know.'


def guest_channels(guest: Optional[Guest]) -> List[str]:
    """Channels the guest will actually be contacted on."""
    if guest is None:
        return []
    channels = []
    if guest.phone:
        channels.append("SMS")
    if guest.email:
        channels.append("email")
    return channels


def notification_status(guest: Optional[Guest]) -> str:
    if guest is None:
        return "⚠️ Guest was NOT notified (no match, multiple matches or low confidence)"
    channels = guest_channels(guest)
    if not channels:
        return f"⚠️ Matched {guest.name} but guest was NOT notified (no phone or email on file)"
    return f"✅ Guest was notified by {' and '.join(channels)}"


class MessageComposer:
    def __init__(
        self,
        *,
        host_email: Optional[str],
        host_phone: Optional[str],
        email_from: str,
        email_reply_to: Optional[str] = None,
    ) -> None:
        self.host_email = host_email
        self.host_phone = host_phone
        self.email_from = email_from
        self.email_reply_to = email_reply_to

    def compose(
        self,
        identity: Optional[Guest],
        submission: PleaSubmission,
        tone_text: Optional[str],
        match_result: Optional[MatchResult],
        roster: List[Guest],
    ) -> List[NotificationTask]:
        tasks: List[NotificationTask] = []
        if self.host_email:
            tasks.append(self._host_email(identity, submission, match_result, roster))
        if self.host_phone:
            tasks.append(self._host_sms(identity, submission, match_result))
        if identity is not None:
            body = self.guest_body(identity, submission, tone_text)
            if identity.phone:
                tasks.append(
                    NotificationTask(
                        channel="sms",
                        audience="guest",
                        recipient=identity.phone,
                        payload=SmsMessage(to=identity.phone, body=body),
                    )
                )
            if identity.email:
                tasks.append(self._guest_email(identity, body))
        return tasks

    def guest_body(self, guest: Guest, submission: PleaSubmission, tone_text: Optional[str]) -> str:
        if guest.is_vip:
            return vip_message(guest)
        if tone_text:
            return tone_text
        return fallback_message(guest, submission.excuse)

    def _host_email(
        self,
        identity: Optional[Guest],
        submission: PleaSubmission,
        match_result: Optional[MatchResult],
        roster: List[Guest],
    ) -> NotificationTask:
        match_info = summarize_matches(match_result, roster)
        notified_line = notification_status(identity)
        phone = submission.phone or NO_PHONE
        text = "\n".join(
            [
                "New Plea for Entry",
                "",
                f"Name: {submission.name}",
                f"Phone: {phone}",
                f"Excuse: {submission.excuse}",
                f"Guest List Match: {match_info}",
                notified_line,
                "",
                "--",
                EMAIL_FOOTER,
            ]
        )
        html = _HOST_EMAIL_HTML.render(
            name=submission.name,
            phone=phone,
            excuse=submission.excuse,
            match_info=match_info,
            notified_line=notified_line,
            footer=EMAIL_FOOTER,
        )
        return NotificationTask(
            channel="email",
            audience="host",
            recipient=self.host_email,
            payload=EmailMessage(
                sender=self.email_from,
                to=self.host_email,
                subject=f"New Plea: {submission.name}",
                text=text,
                html=html,
                reply_to=self.email_reply_to,
            ),
        )

    def _host_sms(
        self,
        identity: Optional[Guest],
        submission: PleaSubmission,
        match_result: Optional[MatchResult],
    ) -> NotificationTask:
        channels = guest_channels(identity)
        if channels:
            flag = f"✅ Guest notified ({'+'.join(channels)})"
        else:
            flag = "⚠️ Guest not notified"
        body = (
            "D-LIST ALERT:\n"
            f"{submission.name} wants in.\n"
            f"Phone: {submission.phone or NO_PHONE}\n"
            f'Plea: "{submission.excuse}"\n'
            f"Match: {summarize_matches_short(match_result)}\n"
            f"{flag}"
        )
        return NotificationTask(
            channel="sms",
            audience="host",
            recipient=self.host_phone,
            payload=SmsMessage(to=self.host_phone, body=body),
        )

    def _guest_email(self, guest: Guest, body: str) -> NotificationTask:
        subject = "You're on the list" if guest.is_vip else "We got your plea"
        text = f"{body}\n\n--\n{EMAIL_FOOTER}"
        html = _GUEST_EMAIL_HTML.render(body=body, footer=EMAIL_FOOTER)
        return NotificationTask(
            channel="email",
            audience="guest",
            recipient=guest.email,
            payload=EmailMessage(
                sender=self.email_from,
                to=guest.email,
                subject=subject,
                text=text,
                html=html,
                reply_to=self.email_reply_to or self.host_email,
            ),
        )
