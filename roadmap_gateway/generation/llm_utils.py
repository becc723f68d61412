"""Recovering JSON from free-text model output."""

import json
import re
from typing import Any

from roadmap_gateway.core.logging import get_logger

logger = get_logger(__name__)

_DECODER = json.JSONDecoder()
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_CODE_FENCE = re.compile(r"```(?:json|javascript|js|text)?\s*\n(.*?)\n\s*```", re.DOTALL | re.IGNORECASE)


def _fix_trailing_commas(text: str) -> str:
    """Remove a comma directly before ``}`` or ``]``."""
    return _TRAILING_COMMA.sub(r"\1", text)


def _try_parse_json(text: str) -> dict[str, Any] | list[Any] | None:
    try:
        return json.loads(_fix_trailing_commas(text.strip()))
    except ValueError:
        return None


def _extract_from_code_block(text: str) -> str | None:
    """Return the body of the first fenced code block, if any."""
    match = _CODE_FENCE.search(text)
    return match.group(1) if match else None


def _scan_for_json(text: str) -> dict[str, Any] | list[Any] | None:
    """Decode the first complete JSON value embedded anywhere in ``text``.

    Every ``{`` or ``[`` is tried as a starting point with ``raw_decode``, so a
    stray brace in surrounding prose only costs one failed attempt instead of
    breaking extraction. Objects are preferred over arrays when an array
    appears first only as part of prose (for example ``[1]`` footnotes).
    """
    cleaned = _fix_trailing_commas(text)
    first_list: list[Any] | None = None

    for match in re.finditer(r"[{\[]", cleaned):
        try:
            value, _ = _DECODER.raw_decode(cleaned, match.start())
        except ValueError:
            continue
        if isinstance(value, dict):
            return value
        if isinstance(value, list) and first_list is None:
            # Keep scanning: a later object is usually the real payload
            first_list = value
            if any(isinstance(item, dict) for item in value):
                return value

    return first_list


def parse_llm_json_response(content: str | None) -> dict[str, Any] | list[Any]:
    """Parse a model response into JSON.

    Strategies, in order:
    1. Direct ``json.loads`` (structured-output providers land here)
    2. First fenced code block
    3. Scan for the first decodable JSON value inside surrounding text

    All strategies tolerate trailing commas.

    Raises:
        ValueError: If content is empty or no strategy yields JSON
    """
    if not content or not content.strip():
        raise ValueError("Empty LLM response")

    result = _try_parse_json(content)
    if result is not None:
        logger.debug("Parsed JSON using direct strategy")
        return result

    code_block = _extract_from_code_block(content)
    if code_block:
        result = _try_parse_json(code_block)
        if result is not None:
            logger.debug("Parsed JSON using code block strategy")
            return result

    result = _scan_for_json(content)
    if result is not None:
        logger.debug("Parsed JSON using scanning strategy")
        return result

    logger.warning("Failed to parse LLM JSON response", content_preview=content[:200])
    raise ValueError("Failed to parse LLM JSON response: no valid JSON found")
