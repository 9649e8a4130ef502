"""
Extracts structured fields from the model's free-form reply.
"""
import json
import logging
import re
from typing import Any, List

from stockmeta.core.errors import ParseError
from stockmeta.core.models import ParsedResponse
from stockmeta.tasks.prompts import ResponseSchema

logger = logging.getLogger(__name__)

JSON_FENCE_REGEX = re.compile(r"```json\s*([\s\S]*?)\s*```")
ANY_FENCE_REGEX = re.compile(r"```\s*([\s\S]*?)\s*```")
BRACES_REGEX = re.compile(r"\{.*\}", re.DOTALL)
LEADING_NOISE_REGEX = re.compile(r"^[^{]*")
TRAILING_NOISE_REGEX = re.compile(r"[^}]*$")

SYMBOLS_REGEX = re.compile(r"[^\w\s]|_")
WHITESPACE_REGEX = re.compile(r"\s+")


def sanitize_title(title: str) -> str:
    """
    Removes symbols, collapses whitespace and lowercases everything but the
    first letter. Applying it twice gives the same result.
    """
    cleaned = SYMBOLS_REGEX.sub(" ", (title or "").lower())
    words = WHITESPACE_REGEX.sub(" ", cleaned).strip().split(" ")
    if not words or not words[0]:
        return ""
    first = words[0][:1].upper()
    # Letters whose uppercase form is longer ("ß") are left as is.
    if len(first) == 1:
        words[0] = first + words[0][1:]
    return " ".join(words)


def locate_json(raw: str) -> str:
    """Fenced ```json block first, then any fenced block, then the widest {...} span."""
    for regex in (JSON_FENCE_REGEX, ANY_FENCE_REGEX):
        match = regex.search(raw)
        if match:
            candidate = match.group(1)
            break
    else:
        match = BRACES_REGEX.search(raw)
        candidate = match.group(0) if match else raw

    candidate = LEADING_NOISE_REGEX.sub("", candidate)
    return TRAILING_NOISE_REGEX.sub("", candidate)


def normalize_keywords(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [item for item in value if item is not None]
    else:
        items = [value]
    return [str(item).strip() for item in items if str(item).strip()]


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def parse_response(raw: str, schema: ResponseSchema) -> ParsedResponse:
    """
    Raises ParseError when a structured reply holds no JSON object.
    """
    if not schema.is_structured:
        return ParsedResponse(description=(raw or "").strip())

    candidate = locate_json(raw or "")
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.error(f"Could not parse model reply as JSON: {e}")
        raise ParseError("Failed to parse the API response. Please try again.") from e
    if not isinstance(data, dict):
        raise ParseError("Failed to parse the API response. Please try again.")

    prompt = _text(data.get("prompt")) if "prompt" in data else None
    return ParsedResponse(
        title=sanitize_title(_text(data.get("title"))),
        description=_text(data.get("description")),
        keywords=normalize_keywords(data.get("keywords")),
        prompt=prompt,
        category=data.get("category"),
    )
