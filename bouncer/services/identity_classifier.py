from __future__ import annotations

import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from bouncer.core.errors import ClassifierParseError
from bouncer.models.guest import Guest, MatchResult
from bouncer.prompts.loader import get_prompt
from bouncer.services.json_repair import try_parse_json
from bouncer.services.llm_gateway import LLMGateway, LLMRequest

logger = logging.getLogger(__name__)


def parse_match_result(content: Optional[str]) -> MatchResult:
    """
    Parse classifier output into a MatchResult.

    A single malformed candidate invalidates the whole answer.

    Raises:
        ClassifierParseError: On empty, non-JSON or schema-invalid content
    """
    if not content or not content.strip():
        raise ClassifierParseError("Empty classifier response", content or "")

    data, error = try_parse_json(content)
    if data is None:
        raise ClassifierParseError(f"Classifier response is not JSON: {error}", content)

    try:
        return MatchResult.model_validate(data)
    except ValidationError as e:
        raise ClassifierParseError(f"Classifier response failed validation: {e.error_count()} error(s)", content) from e


class IdentityClassifier:
    """Asks the LLM which roster entries the submitted name could refer to."""

    PROMPT_ID = "guest_match_v1"

    def __init__(self, gateway: LLMGateway, *, timeout_ms: Optional[int] = None) -> None:
        self.gateway = gateway
        self.timeout_ms = timeout_ms

    def build_request(self, name: str, roster: List[Guest]) -> LLMRequest:
        prompt = get_prompt(self.PROMPT_ID)
        guest_list_json = json.dumps([guest.classifier_view() for guest in roster], ensure_ascii=False)
        system_prompt, user_prompt = prompt.render({"guest_list_json": guest_list_json, "name": name})
        return LLMRequest(
            purpose="guest_match",
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=prompt.temperature,
            json_mode=prompt.json_mode,
            max_tokens=prompt.max_tokens,
            timeout_ms=self.timeout_ms,
        )

    async def classify(self, name: str, roster: List[Guest]) -> Optional[MatchResult]:
        """
        Return candidate matches for `name`, or None when the answer is unusable.

        Transport and provider errors propagate; only parse failures are absorbed.
        """
        logger.debug(f"[classifier] Checking guest list for: {name}")
        response = await self.gateway.generate(self.build_request(name, roster))
        logger.debug(f"[classifier] LLM response: {response.content}")

        try:
            result = parse_match_result(response.content)
        except ClassifierParseError as e:
            logger.error(f"[classifier] Failed to parse LLM response: {e} raw={e.raw_content!r}")
            return None

        logger.info(
            f"[classifier] {len(result.matches)} candidate(s): "
            + ", ".join(f"{m.guest_name}={m.confidence}" for m in result.matches)
        )
        return result
