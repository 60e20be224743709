"""Runtime configuration for the request pipeline and service clients."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

DEFAULT_BASE_URL = "https://api.openai.com/v1"
SUPPORTED_SENSITIVITIES: tuple[str, ...] = ("low", "medium", "high")


@dataclass(slots=True)
class OpenAISettings:
    """Credentials and endpoint for the generative service."""

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL


@dataclass(slots=True)
class PipelineSettings:
    """Queue, retry, and transport settings shared by every service client."""

    max_queue_size: int = 100
    max_retry_attempts: int = 3
    retry_base_delay_ms: float = 1_000.0
    retry_max_delay_ms: float = 60_000.0
    retry_enabled: bool = True
    retry_jitter_ratio: float = 0.0
    request_timeout_seconds: float = 60.0
    max_history_size: int = 50

    @property
    def retry_base_delay_seconds(self) -> float:
        return self.retry_base_delay_ms / 1000.0

    @property
    def retry_max_delay_seconds(self) -> float:
        return self.retry_max_delay_ms / 1000.0

    def validate(self) -> None:
        """Raise configuration error if pipeline limits are out of range."""

        if self.max_queue_size < 1:
            raise ValueError("NARRATOR_MASTER_MAX_QUEUE_SIZE must be >= 1.")
        if self.max_retry_attempts < 1:
            raise ValueError("NARRATOR_MASTER_MAX_RETRY_ATTEMPTS must be >= 1.")
        if self.retry_base_delay_ms < 0:
            raise ValueError("NARRATOR_MASTER_RETRY_BASE_DELAY_MS must be >= 0.")
        if self.retry_max_delay_ms < self.retry_base_delay_ms:
            raise ValueError(
                "NARRATOR_MASTER_RETRY_MAX_DELAY_MS must be >= NARRATOR_MASTER_RETRY_BASE_DELAY_MS.",
            )
        if not 0.0 <= self.retry_jitter_ratio <= 1.0:
            raise ValueError("NARRATOR_MASTER_RETRY_JITTER_RATIO must be within [0, 1].")
        if self.request_timeout_seconds <= 0:
            raise ValueError("NARRATOR_MASTER_REQUEST_TIMEOUT_SECONDS must be > 0.")
        if self.max_history_size < 1:
            raise ValueError("NARRATOR_MASTER_MAX_HISTORY_SIZE must be >= 1.")


@dataclass(slots=True)
class AssistantSettings:
    """Text assistant settings."""

    model: str = "gpt-4o-mini"
    sensitivity: str = "medium"
    primary_language: str = "it"
    temperature: float = 0.7
    max_tokens: int = 1_000


@dataclass(slots=True)
class ImageSettings:
    """Image generator settings."""

    model: str = "gpt-image-1"
    default_size: str = "1024x1024"
    default_quality: str = "standard"
    auto_cache: bool = True
    max_cache_size: int = 50


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    openai: OpenAISettings = field(default_factory=OpenAISettings)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)
    assistant: AssistantSettings = field(default_factory=AssistantSettings)
    images: ImageSettings = field(default_factory=ImageSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults matching the host plugin."""

        return cls(
            openai=OpenAISettings(
                api_key=os.getenv("NARRATOR_MASTER_OPENAI_API_KEY", os.getenv("OPENAI_API_KEY", "")),
                base_url=os.getenv("NARRATOR_MASTER_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            ),
            pipeline=PipelineSettings(
                max_queue_size=int(os.getenv("NARRATOR_MASTER_MAX_QUEUE_SIZE", "100")),
                max_retry_attempts=int(os.getenv("NARRATOR_MASTER_MAX_RETRY_ATTEMPTS", "3")),
                retry_base_delay_ms=float(
                    os.getenv("NARRATOR_MASTER_RETRY_BASE_DELAY_MS", "1000"),
                ),
                retry_max_delay_ms=float(
                    os.getenv("NARRATOR_MASTER_RETRY_MAX_DELAY_MS", "60000"),
                ),
                retry_enabled=_env_bool("NARRATOR_MASTER_RETRY_ENABLED", default=True),
                retry_jitter_ratio=float(
                    os.getenv("NARRATOR_MASTER_RETRY_JITTER_RATIO", "0.0"),
                ),
                request_timeout_seconds=float(
                    os.getenv("NARRATOR_MASTER_REQUEST_TIMEOUT_SECONDS", "60"),
                ),
                max_history_size=int(os.getenv("NARRATOR_MASTER_MAX_HISTORY_SIZE", "50")),
            ),
            assistant=AssistantSettings(
                model=os.getenv("NARRATOR_MASTER_ASSISTANT_MODEL", "gpt-4o-mini"),
                sensitivity=os.getenv("NARRATOR_MASTER_SENSITIVITY", "medium").strip().lower(),
                primary_language=os.getenv("NARRATOR_MASTER_LANGUAGE", "it").strip().lower(),
            ),
            images=ImageSettings(
                model=os.getenv("NARRATOR_MASTER_IMAGE_MODEL", "gpt-image-1"),
                default_size=os.getenv("NARRATOR_MASTER_IMAGE_SIZE", "1024x1024"),
                default_quality=os.getenv("NARRATOR_MASTER_IMAGE_QUALITY", "standard"),
                auto_cache=_env_bool("NARRATOR_MASTER_IMAGE_AUTO_CACHE", default=True),
                max_cache_size=int(os.getenv("NARRATOR_MASTER_IMAGE_MAX_CACHE_SIZE", "50")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if any group is inconsistent."""

        self.pipeline.validate()
        _validate_base_url(self.openai.base_url)
        if self.assistant.sensitivity not in SUPPORTED_SENSITIVITIES:
            raise ValueError(
                "NARRATOR_MASTER_SENSITIVITY must be one of "
                f"{', '.join(SUPPORTED_SENSITIVITIES)}; got {self.assistant.sensitivity!r}.",
            )
        if self.images.max_cache_size < 1:
            raise ValueError("NARRATOR_MASTER_IMAGE_MAX_CACHE_SIZE must be >= 1.")


def _validate_base_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid NARRATOR_MASTER_BASE_URL: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
