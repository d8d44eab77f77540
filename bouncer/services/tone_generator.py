from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional, Set, Tuple

from bouncer.prompts.loader import get_prompt
from bouncer.services.llm_gateway import LLMGateway, LLMRequest

logger = logging.getLogger(__name__)

# Strong references to calls that lost the race; the loop only keeps weak ones.
_abandoned: Set["asyncio.Task[Any]"] = set()


def _reap(task: "asyncio.Task[Any]") -> None:
    _abandoned.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"[tone] Abandoned call finished with error: {exc!r}")
    else:
        logger.debug("[tone] Abandoned call finished after the deadline; result discarded")


async def first_settled(awaitable: Awaitable[Any], deadline_s: float) -> Tuple[bool, Any]:
    """
    Race `awaitable` against a timer.

    Returns (True, result) if the call settled first; its exception is re-raised.
    Returns (False, None) if the timer fired first. The losing call is not
    cancelled: it keeps running and its outcome is dropped.
    """
    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=deadline_s)
    if task in done:
        return True, task.result()

    _abandoned.add(task)
    task.add_done_callback(_reap)
    return False, None


class ToneGenerator:
    """Best-effort roast reply for non-VIP guests. Never raises."""

    PROMPT_ID = "roast_v1"

    def __init__(self, gateway: LLMGateway, *, deadline_ms: int = 4000) -> None:
        self.gateway = gateway
        self.deadline_ms = deadline_ms

    def build_request(self, first_name: str, excuse: str) -> LLMRequest:
        prompt = get_prompt(self.PROMPT_ID)
        system_prompt, user_prompt = prompt.render({"first_name": first_name, "excuse": excuse})
        return LLMRequest(
            purpose="roast",
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=prompt.temperature,
            json_mode=False,
            max_tokens=prompt.max_tokens,
        )

    async def generate(self, first_name: str, excuse: str) -> Optional[str]:
        try:
            request = self.build_request(first_name, excuse)
            settled, response = await first_settled(self.gateway.generate(request), self.deadline_ms / 1000)
        except Exception as e:
            logger.warning(f"[tone] Roast generation failed: {e!r}")
            return None

        if not settled:
            logger.warning(f"[tone] Roast generation exceeded {self.deadline_ms}ms, using fallback")
            return None

        text = (response.content or "").strip().strip('"').strip()
        if not text:
            logger.warning("[tone] Roast generation returned empty text, using fallback")
            return None
        return text
