"""Bounding primitives for untrusted upstream payloads.

Every value coming back from the generative service passes through these
helpers before it reaches application state. They coerce instead of
raising: wrong types become safe defaults, strings are truncated, numbers
are clamped, and sequences are capped. No escaping happens here; rendering
safety belongs to the presentation layer.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)
_TRUTHY_STRINGS = frozenset({"true", "yes", "y", "1", "on", "si", "sì"})


def validate_string(value: Any, max_length: int) -> str:
    """Return `value` as a string of at most `max_length` characters."""

    if value is None:
        return ""
    if isinstance(value, str):
        text = value
    elif isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, dict | list):
        try:
            text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError):
            text = str(value)
    else:
        text = str(value)
    if max_length <= 0:
        return ""
    return text[:max_length]


def validate_number(value: Any, minimum: float, maximum: float) -> float:
    """Clamp `value` into `[minimum, maximum]`; missing or non-numeric becomes `minimum`."""

    number = _to_float(value)
    if number is None or math.isnan(number):
        return float(minimum)
    return float(min(max(number, minimum), maximum))


def validate_array(value: Any, max_items: int) -> list[Any]:
    """Return the first `max_items` elements of a list; anything else becomes `[]`."""

    if not isinstance(value, list | tuple):
        return []
    if max_items <= 0:
        return []
    return list(value[:max_items])


def validate_bool(value: Any) -> bool:
    """Permissive flag coercion: `"yes"`, `1`, `"true"` all count as true."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return not math.isnan(value) and value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY_STRINGS
    return False


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Recover a JSON object from raw model text (plain, fenced, or embedded)."""

    compact = text.strip()
    if not compact:
        return None

    direct = _try_load_dict(compact)
    if direct is not None:
        return direct

    fenced = _FENCED_JSON.search(compact)
    if fenced is not None:
        payload = _try_load_dict(fenced.group(1))
        if payload is not None:
            return payload

    start = compact.find("{")
    end = compact.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return _try_load_dict(compact[start : end + 1])


def chat_message_content(body: Any) -> str:
    """Extract `choices[0].message.content` from a chat-completion body, or `""`."""

    if not isinstance(body, dict):
        return ""
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _try_load_dict(raw: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed
