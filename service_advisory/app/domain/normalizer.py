"""
Normalization of free-form generation service output.

Two concerns live here:

- locating the output text inside a generation service response body, whose
  shape differs between API flavours;
- extracting a JSON object from that text (bare, fenced or embedded in prose)
  and validating it into an AdvisoryContent.

Both are expressed as ordered strategy lists; the first strategy that yields a
value wins.
"""

import json
import re
from typing import Any, Callable, Dict, List, Optional, Sequence

from shared.logging import get_logger
from .models import ADVISORY_CATEGORIES, UNAVAILABLE, AdvisoryContent

logger = get_logger("advisory.normalizer")

MAX_BULLETS = 6

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)

_EMERGENCY_SERVICES = (("police", "Police"), ("ambulance", "Ambulance"), ("fire", "Fire"))


# ---------------------------------------------------------------------------
# Output text location
# ---------------------------------------------------------------------------

def _output_text(body: Dict[str, Any]) -> Optional[str]:
    value = body.get("output_text")
    return value if isinstance(value, str) and value.strip() else None


def _output_content_text(body: Dict[str, Any]) -> Optional[str]:
    output = body.get("output")
    if not isinstance(output, list):
        return None
    for item in output:
        content = item.get("content") if isinstance(item, dict) else None
        if not isinstance(content, list):
            continue
        for part in content:
            text = part.get("text") if isinstance(part, dict) else None
            if isinstance(text, str) and text.strip():
                return text
    return None


def _chat_message_content(body: Dict[str, Any]) -> Optional[str]:
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) and content.strip() else None


TEXT_STRATEGIES: Sequence[Callable[[Dict[str, Any]], Optional[str]]] = (
    _output_text,
    _output_content_text,
    _chat_message_content,
)


def locate_output_text(body: Any) -> Optional[str]:
    """Return the generated text from a generation service response body."""
    if isinstance(body, str):
        return body
    if not isinstance(body, dict):
        return None
    for strategy in TEXT_STRATEGIES:
        text = strategy(body)
        if text is not None:
            return text
    return None


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------

def _parse_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(candidate)
    except (TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def _whole_text(text: str) -> Optional[Dict[str, Any]]:
    return _parse_object(text.strip())


def _fenced_block(text: str) -> Optional[Dict[str, Any]]:
    match = _FENCE_RE.search(text)
    if not match:
        return None
    return _parse_object(match.group(1))


def _brace_slice(text: str) -> Optional[Dict[str, Any]]:
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    return _parse_object(text[start:end + 1])


JSON_STRATEGIES: Sequence[Callable[[str], Optional[Dict[str, Any]]]] = (
    _whole_text,
    _fenced_block,
    _brace_slice,
)


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Find the JSON object in model output, tolerating fences and prose."""
    for strategy in JSON_STRATEGIES:
        parsed = strategy(text)
        if parsed is not None:
            return parsed
    return None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _bullets(value: Any) -> Optional[List[str]]:
    """Clean a category value; None when it is not a list of strings."""
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        return None
    cleaned = [" ".join(item.split()) for item in value]
    cleaned = [item for item in cleaned if item][:MAX_BULLETS]
    return cleaned or [UNAVAILABLE]


def _emergency_from_numbers(value: Any) -> Optional[List[str]]:
    """Flatten an {"police", "ambulance", "fire", "notes"} object into bullets."""
    if not isinstance(value, dict):
        return None
    bullets = []
    for key, label in _EMERGENCY_SERVICES:
        number = value.get(key)
        if isinstance(number, str) and number.strip():
            bullets.append(f"{label}: {number.strip()}")
    notes = value.get("notes") or []
    if isinstance(notes, list):
        bullets.extend(note for note in notes if isinstance(note, str))
    return _bullets(bullets)


def to_advisory_content(data: Dict[str, Any]) -> Optional[AdvisoryContent]:
    """Validate a parsed object; None unless every category and the disclaimer are usable."""
    fields: Dict[str, Any] = {}
    for category in ADVISORY_CATEGORIES:
        if category == "emergency" and "emergency" not in data:
            bullets = _emergency_from_numbers(data.get("emergency_numbers"))
        else:
            bullets = _bullets(data.get(category))
        if bullets is None:
            logger.info("Advisory payload rejected", reason="invalid_category", category=category)
            return None
        fields[category] = bullets

    disclaimer = data.get("disclaimer")
    if not isinstance(disclaimer, str) or not disclaimer.strip():
        logger.info("Advisory payload rejected", reason="missing_disclaimer")
        return None
    fields["disclaimer"] = " ".join(disclaimer.split())

    return AdvisoryContent(**fields)


def extract(raw_text: Optional[str]) -> Optional[AdvisoryContent]:
    """Extract a complete AdvisoryContent from raw model output, or None."""
    if not raw_text or not raw_text.strip():
        return None
    data = extract_json_object(raw_text)
    if data is None:
        logger.info("Advisory payload rejected", reason="no_json_object", length=len(raw_text))
        return None
    return to_advisory_content(data)
