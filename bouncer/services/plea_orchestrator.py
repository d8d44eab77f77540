"""
Plea Orchestrator

Coordinates one plea for entry:
1. Refuse pleas after the event cutoff
2. Validate the submission
3. Load the guest list
4. Classify the submitted name against it
5. Resolve at most one guest identity
6. Ask for a roast reply (non-VIP guests, deadline-bound)
7. Compose host/guest notifications
8. Dispatch them concurrently
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, List, Optional

from bouncer.core.config import get_settings
from bouncer.core.errors import EventExpiredError, PleaValidationError
from bouncer.models.guest import Guest, PleaRequest, PleaSubmission
from bouncer.models.notification import NotificationOutcome
from bouncer.services.channels import ResendEmailChannel, TwilioSmsChannel
from bouncer.services.guest_directory import GuestDirectory, get_guest_directory
from bouncer.services.identity_classifier import IdentityClassifier
from bouncer.services.llm_gateway import get_llm_gateway
from bouncer.services.match_resolution import resolve_identity
from bouncer.services.message_composer import MessageComposer, guest_channels
from bouncer.services.notification_dispatcher import NotificationDispatcher
from bouncer.services.tone_generator import ToneGenerator

logger = logging.getLogger(__name__)

EXPIRED_ROASTS = [
    "Baby, the party's OVER. The venue is cleaned, closed, and the janitor went home hours ago.",
    "Bestie, you missed it. The DJ packed up, the lights came on, and everyone saw how crusty they looked.",
    "The event already happened. This is giving 'showed up to prom the next morning' energy.",
    "The party was YESTERDAY. You're begging to get into an empty room with confetti on the floor.",
    "Sweetie, you're trying to RSVP to history. Done, finished, finito. Take the L and go home.",
]


@dataclass
class PleaOutcome:
    matched: bool
    resolved: Optional[Guest] = None
    notifications: List[NotificationOutcome] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PleaOrchestrator:
    def __init__(
        self,
        *,
        directory: GuestDirectory,
        classifier: IdentityClassifier,
        tone_generator: ToneGenerator,
        composer: MessageComposer,
        dispatcher: NotificationDispatcher,
        cutoff: Optional[datetime] = None,
        clock: Callable[[], datetime] = _utcnow,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.directory = directory
        self.classifier = classifier
        self.tone_generator = tone_generator
        self.composer = composer
        self.dispatcher = dispatcher
        self.cutoff = cutoff
        self.clock = clock
        self._rng = rng or random.Random()

    def check_expiry(self) -> None:
        # The cutoff instant itself is still open; only strictly later is expired.
        if self.cutoff is None:
            return
        now = self.clock()
        if now > self.cutoff:
            logger.info(f"[plea] Rejected: event ended at {self.cutoff.isoformat()} (now {now.isoformat()})")
            raise EventExpiredError(self._rng.choice(EXPIRED_ROASTS))

    @staticmethod
    def validate(request: PleaRequest) -> PleaSubmission:
        name = (request.name or "").strip()
        excuse = (request.excuse or "").strip()
        if not name or not excuse:
            raise PleaValidationError("Missing name or excuse")
        phone = (request.phone or "").strip() or None
        return PleaSubmission(name=name, excuse=excuse, phone=phone)

    async def handle(self, request: PleaRequest) -> PleaOutcome:
        self.check_expiry()
        submission = self.validate(request)
        t0 = time.perf_counter()

        roster = await self.directory.fetch_guests()
        match_result = await self.classifier.classify(submission.name, roster)
        identity = resolve_identity(match_result, roster)

        tone_text: Optional[str] = None
        if identity is not None and not identity.is_vip and guest_channels(identity):
            tone_text = await self.tone_generator.generate(identity.first_name, submission.excuse)

        tasks = self.composer.compose(identity, submission, tone_text, match_result, roster)
        outcomes = await self.dispatcher.dispatch(tasks)

        latency_ms = int((time.perf_counter() - t0) * 1000)
        logger.info(
            f"[plea] Handled plea from {submission.name!r}: matched={identity is not None} "
            f"vip={bool(identity and identity.is_vip)} roast={tone_text is not None} "
            f"notifications={len(outcomes)} latency_ms={latency_ms}"
        )
        return PleaOutcome(matched=identity is not None, resolved=identity, notifications=outcomes)

    async def close(self) -> None:
        for resource in (self.dispatcher.sms, self.dispatcher.email, self.classifier.gateway):
            close = getattr(resource, "close", None)
            if close is not None:
                await close()


@lru_cache
def get_plea_orchestrator() -> PleaOrchestrator:
    settings = get_settings()
    gateway = get_llm_gateway()
    return PleaOrchestrator(
        directory=get_guest_directory(),
        classifier=IdentityClassifier(gateway, timeout_ms=settings.llm_classifier_timeout_ms),
        tone_generator=ToneGenerator(gateway, deadline_ms=settings.tone_deadline_ms),
        composer=MessageComposer(
            host_email=settings.host_email,
            host_phone=settings.host_phone,
            email_from=settings.email_from,
            email_reply_to=settings.email_reply_to,
        ),
        dispatcher=NotificationDispatcher(
            sms=TwilioSmsChannel(
                account_sid=settings.twilio_account_sid,
                auth_token=settings.twilio_auth_token,
                from_number=settings.twilio_phone_number,
                messaging_service_sid=settings.twilio_messaging_service_sid,
            ),
            email=ResendEmailChannel(api_key=settings.resend_api_key),
            timeout_ms=settings.notification_timeout_ms,
        ),
        cutoff=settings.event_cutoff_date,
    )
