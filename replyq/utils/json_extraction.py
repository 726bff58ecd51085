"""Locate and parse the JSON object embedded in an LLM response.

Models often wrap JSON in markdown fences or explanatory prose. The first
balanced ``{...}`` span is located with a string-aware scan, so braces inside
quoted values do not end the span early. Light repair (missing commas,
trailing commas) is attempted before giving up.
"""

from __future__ import annotations

import json
import re
from typing import Any

from replyq.errors import ParseError
from replyq.observability.logging import get_logger

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def find_first_object_span(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring, or None if there is none."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for idx in range(start, len(text)):
            ch = text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : idx + 1]
        # Unbalanced from this brace; try the next opening brace
        start = text.find("{", start + 1)
    return None


def _repair(json_text: str) -> str:
    repaired = re.sub(r'"\s*\n\s*"', '",\n"', json_text)
    repaired = re.sub(r"(\d+\.?\d*|true|false|null)\s*\n\s*\"", r'\1,\n"', repaired)
    repaired = re.sub(r'\}\s*\n\s*"', '},\n"', repaired)
    repaired = re.sub(r'\]\s*\n\s*"', '],\n"', repaired)
    return re.sub(r",\s*([\}\]])", r"\1", repaired)


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the first JSON object found in ``text``.

    Raises:
        ParseError: No object present, or it could not be parsed even after repair.
    """
    if not text or not text.strip():
        raise ParseError("empty response")

    cleaned = _FENCE_RE.sub("", text).strip()
    span = find_first_object_span(cleaned)
    if span is None:
        raise ParseError("no JSON object in response")

    try:
        data = json.loads(span)
    except json.JSONDecodeError as e:
        logger.warning("JSON parse error (attempting repair): %s", e)
        try:
            data = json.loads(_repair(span))
            logger.info("JSON repair succeeded")
        except json.JSONDecodeError as repair_error:
            raise ParseError(f"unparseable JSON: {repair_error}") from repair_error

    if not isinstance(data, dict):
        raise ParseError("JSON payload is not an object")
    return data
