"""Sanitizer for image-generation responses."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from narrator_master.images.models import GeneratedImage
from narrator_master.sanitization import validate_array, validate_string

MAX_IMAGE_URL_CHARS = 2_048
MAX_REVISED_PROMPT_CHARS = 4_000
MAX_BASE64_CHARS = 20 * 1024 * 1024


def sanitize_image_response(
    body: Any,
    *,
    prompt: str,
    size: str,
    model: str,
    now: datetime | None = None,
) -> GeneratedImage:
    """Bound `data[0]` of an image response; anything unreadable yields an empty URL."""

    items = validate_array(body.get("data") if isinstance(body, dict) else None, 1)
    image_data = items[0] if items and isinstance(items[0], dict) else {}

    raw_base64 = image_data.get("b64_json")
    raw_revised = image_data.get("revised_prompt")
    return GeneratedImage(
        id=uuid.uuid4().hex,
        url=validate_string(image_data.get("url"), MAX_IMAGE_URL_CHARS),
        prompt=prompt,
        model=model,
        size=size,
        created_at=now or datetime.now(UTC),
        base64=(
            validate_string(raw_base64, MAX_BASE64_CHARS) or None
            if raw_base64 is not None
            else None
        ),
        revised_prompt=(
            validate_string(raw_revised, MAX_REVISED_PROMPT_CHARS) if raw_revised is not None else None
        ),
    )
