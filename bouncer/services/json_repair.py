"""
JSON Repair Utility

Cleans up LLM output that should hold a single JSON object:
- Removing markdown code fences (```json ... ```)
- Stripping leading/trailing chatter around the object
- Dropping trailing commas
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


class JSONRepairError(Exception):
    """Raised when the text cannot be turned into JSON."""

    def __init__(self, message: str, original_text: str):
        super().__init__(message)
        self.original_text = original_text


def strip_code_fences(text: str) -> str:
    return _FENCE_OPEN.sub("", text).replace("```", "").strip()


def repair_json(text: str) -> str:
    """
    Return a JSON string parsed out of raw model output.

    Raises:
        JSONRepairError: If nothing parseable is left after cleanup
    """
    if not text or not text.strip():
        raise JSONRepairError("Empty input", text or "")

    try:
        json.loads(text)
        return text
    except json.JSONDecodeError:
        pass

    cleaned = strip_code_fences(text)
    cleaned = _extract_object(cleaned)
    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)

    try:
        json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise JSONRepairError(f"Failed to repair JSON: {e}", text)

    logger.debug("JSON repair succeeded")
    return cleaned


def try_parse_json(text: Optional[str]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Parse a JSON object out of `text`.

    Returns:
        (dict, None) on success, (None, error_message) otherwise
    """
    try:
        parsed = json.loads(repair_json(text or ""))
    except JSONRepairError as e:
        return None, str(e)
    if not isinstance(parsed, dict):
        return None, "JSON must be an object, not array or primitive"
    return parsed, None


def _extract_object(text: str) -> str:
    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        return text[first_brace:last_brace + 1]
    return text
