from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from bouncer.models.notification import NotificationOutcome, NotificationTask
from bouncer.services.channels import EmailChannel, SmsChannel

logger = logging.getLogger(__name__)


def mask_recipient(recipient: str) -> str:
    """Keep the last four characters of phone numbers and the domain of emails."""
    if "@" in recipient:
        local, _, domain = recipient.partition("@")
        return f"{local[:1]}***@{domain}"
    if len(recipient) <= 4:
        return "***"
    return f"***{recipient[-4:]}"


class NotificationDispatcher:
    """
    Sends every task concurrently and waits for all of them to settle.

    One channel failing never delays or fails another, and nothing is raised
    to the caller; each task gets its own NotificationOutcome.
    """

    def __init__(
        self,
        *,
        sms: SmsChannel,
        email: EmailChannel,
        timeout_ms: Optional[int] = None,
    ) -> None:
        self.sms = sms
        self.email = email
        self.timeout_ms = timeout_ms

    async def _send(self, task: NotificationTask) -> Optional[str]:
        channel = self.sms if task.channel == "sms" else self.email
        send = channel.send(task.payload)
        if self.timeout_ms is not None:
            return await asyncio.wait_for(send, timeout=self.timeout_ms / 1000)
        return await send

    async def dispatch(self, tasks: List[NotificationTask]) -> List[NotificationOutcome]:
        if not tasks:
            return []

        for task in tasks:
            logger.debug(f"[dispatch] Queuing {task.channel} to {task.audience} {mask_recipient(task.recipient)}")

        results = await asyncio.gather(*(self._send(task) for task in tasks), return_exceptions=True)

        outcomes: List[NotificationOutcome] = []
        for task, result in zip(tasks, results):
            target = f"{task.channel} to {task.audience} {mask_recipient(task.recipient)}"
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    reason = "cancelled"
                elif isinstance(result, asyncio.TimeoutError):
                    reason = f"timed out after {self.timeout_ms}ms"
                else:
                    reason = str(result) or type(result).__name__
                logger.warning(f"[dispatch] Failed {target}: {reason}")
                outcomes.append(
                    NotificationOutcome(
                        channel=task.channel,
                        audience=task.audience,
                        recipient=task.recipient,
                        status="failed",
                        reason=reason,
                    )
                )
            else:
                logger.info(f"[dispatch] Sent {target}")
                outcomes.append(
                    NotificationOutcome(
                        channel=task.channel,
                        audience=task.audience,
                        recipient=task.recipient,
                        status="sent",
                        provider_id=result or None,
                    )
                )

        sent = sum(1 for outcome in outcomes if outcome.ok)
        logger.info(f"[dispatch] All notifications settled: {sent}/{len(outcomes)} sent")
        return outcomes
