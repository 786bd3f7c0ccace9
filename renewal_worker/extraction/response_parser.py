"""Turns raw model text into JSON values."""

import json
import re
from typing import Any

from renewal_worker.extraction.exceptions import ExtractionParseError

_OPENING_FENCE = re.compile(r"^```[A-Za-z]*[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?```\s*$")


def strip_code_fences(raw: str) -> str:
    """Remove a leading ``` / ```json marker and a trailing ``` marker."""
    cleaned = raw.strip()
    cleaned = _OPENING_FENCE.sub("", cleaned, count=1)
    cleaned = _CLOSING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_json_array(raw: str) -> list[Any]:
    """Parse a fenced or bare JSON array.

    Raises:
        ExtractionParseError: if the text is not JSON or not an array.
    """
    parsed = _loads(raw)
    if not isinstance(parsed, list):
        raise ExtractionParseError("AI response must be a JSON array")
    return parsed


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parse a fenced or bare JSON object.

    Raises:
        ExtractionParseError: if the text is not JSON or not an object.
    """
    parsed = _loads(raw)
    if not isinstance(parsed, dict):
        raise ExtractionParseError("AI response must be a JSON object")
    return parsed


def _loads(raw: str) -> Any:
    try:
        return json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as exc:
        raise ExtractionParseError(f"Invalid JSON response: {exc}") from exc
