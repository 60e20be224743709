"""Validated result types returned by the image generator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

URL_EXPIRATION = timedelta(minutes=60)


@dataclass(slots=True)
class GeneratedImage:
    """One generated image; hosted URLs expire, inline base64 data does not."""

    id: str
    url: str
    prompt: str
    model: str
    size: str
    created_at: datetime
    base64: str | None = None
    revised_prompt: str | None = None
    expires_at: datetime = field(init=False)

    def __post_init__(self) -> None:
        self.expires_at = self.created_at + URL_EXPIRATION

    def is_expired(self, now: datetime) -> bool:
        if self.base64:
            return False
        return now > self.expires_at
