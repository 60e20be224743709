"""Image generator: scene illustrations and infographics for the table."""

from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from narrator_master.config import ImageSettings, Settings
from narrator_master.images import prompts
from narrator_master.images.models import GeneratedImage
from narrator_master.images.sanitization import sanitize_image_response
from narrator_master.pipeline.client import ServiceClient
from narrator_master.pipeline.errors import ConfigurationError
from narrator_master.pipeline.models import RequestSpec
from narrator_master.pipeline.retry import Invoker
from narrator_master.pipeline.transport import HttpTransport

logger = logging.getLogger(__name__)

IMAGE_GENERATIONS_PATH = "/images/generations"
STYLE_CAPABLE_MODEL = "dall-e-3"
MAX_GENERATION_HISTORY = 50


class ImageGenerator:
    """Generates images through the shared pipeline and keeps a prompt-keyed cache."""

    def __init__(
        self,
        client: ServiceClient,
        *,
        api_key: str = "",
        settings: ImageSettings | None = None,
    ) -> None:
        self.client = client
        self._api_key = api_key or ""
        config = settings or ImageSettings()
        self.model = config.model
        self.default_size = config.default_size
        self.default_quality = config.default_quality
        self.auto_cache = config.auto_cache
        self.max_cache_size = config.max_cache_size
        self._cache: OrderedDict[str, GeneratedImage] = OrderedDict()
        self._history: list[GeneratedImage] = []

    @classmethod
    def from_settings(cls, settings: Settings, *, transport: Invoker | None = None) -> ImageGenerator:
        invoker = transport or HttpTransport(
            base_url=settings.openai.base_url,
            timeout_seconds=settings.pipeline.request_timeout_seconds,
        )
        client = ServiceClient(invoker, settings=settings.pipeline, name="images")
        return cls(client, api_key=settings.openai.api_key, settings=settings.images)

    def set_api_key(self, api_key: str) -> None:
        self._api_key = api_key or ""

    def is_configured(self) -> bool:
        return bool(self._api_key.strip())

    async def generate(  # noqa: PLR0913
        self,
        prompt: str,
        *,
        size: str | None = None,
        quality: str | None = None,
        style: str | None = None,
        return_base64: bool = False,
        cache_image: bool = True,
    ) -> GeneratedImage:
        """Generate one image for `prompt` and record it in history and cache."""

        if not self.is_configured():
            raise ConfigurationError("OpenAI API key is not configured.")
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("A non-empty prompt is required for image generation.")

        size = size or self.default_size
        quality = quality or self.default_quality
        style = style or "vivid"
        logger.info("Generating image, prompt length: %d, size: %s", len(prompt), size)

        response = await self.client.request(
            RequestSpec(
                path=IMAGE_GENERATIONS_PATH,
                body=self._request_body(prompt, size, quality, style, return_base64),
                headers={"Authorization": f"Bearer {self._api_key}"},
                operation="Image generation",
            ),
        )
        image = sanitize_image_response(response.body, prompt=prompt, size=size, model=self.model)

        self._history.append(image)
        if len(self._history) > MAX_GENERATION_HISTORY:
            self._history = self._history[-MAX_GENERATION_HISTORY:]
        if cache_image and self.auto_cache and (image.url or image.base64):
            self._store(image)
        return image

    async def generate_infographic(
        self,
        description: str,
        *,
        style: str = "fantasy",
        mood: str = "dramatic",
        elements: Sequence[str] = (),
        size: str | None = None,
        quality: str | None = None,
    ) -> GeneratedImage:
        prompt = prompts.build_infographic_prompt(
            description,
            style=style,
            mood=mood,
            elements=elements,
        )
        return await self.generate(
            prompt,
            size=size or prompts.IMAGE_SIZES["large"],
            quality=quality,
            style="vivid",
        )

    async def generate_scene_illustration(
        self,
        description: str,
        *,
        location: str = "",
        lighting: str = "",
        characters: Sequence[str] = (),
        size: str | None = None,
        quality: str | None = None,
    ) -> GeneratedImage:
        prompt = prompts.build_scene_prompt(
            description,
            location=location,
            lighting=lighting,
            characters=characters,
        )
        return await self.generate(
            prompt,
            size=size or prompts.IMAGE_SIZES["wide"],
            quality=quality,
            style="vivid",
        )

    def get_cached_image(self, prompt: str, *, now: datetime | None = None) -> GeneratedImage | None:
        """Return the cached image for `prompt`, evicting it if its URL has expired."""

        key = cache_key(prompt)
        image = self._cache.get(key)
        if image is None:
            return None
        if image.is_expired(now or datetime.now(UTC)):
            del self._cache[key]
            return None
        return image

    def get_valid_cached_images(self, *, now: datetime | None = None) -> list[GeneratedImage]:
        moment = now or datetime.now(UTC)
        return [image for image in self._cache.values() if not image.is_expired(moment)]

    def clear_expired_cache(self, *, now: datetime | None = None) -> int:
        moment = now or datetime.now(UTC)
        expired = [key for key, image in self._cache.items() if image.is_expired(moment)]
        for key in expired:
            del self._cache[key]
        logger.info("Cleared %d expired cache entries", len(expired))
        return len(expired)

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_history(self, limit: int | None = None) -> list[GeneratedImage]:
        if limit is not None and limit > 0:
            return self._history[-limit:]
        return list(self._history)

    def clear_history(self) -> None:
        self._history = []

    def get_queue_size(self) -> int:
        return self.client.get_queue_size()

    def clear_queue(self) -> int:
        return self.client.clear_queue()

    def get_stats(self) -> dict[str, Any]:
        return {
            "configured": self.is_configured(),
            "model": self.model,
            "default_size": self.default_size,
            "default_quality": self.default_quality,
            "auto_cache": self.auto_cache,
            "cache_size": len(self._cache),
            "valid_cache_entries": len(self.get_valid_cached_images()),
            "history_size": len(self._history),
            "queue_size": self.client.get_queue_size(),
        }

    async def aclose(self) -> None:
        await self.client.aclose()

    def _request_body(
        self,
        prompt: str,
        size: str,
        quality: str,
        style: str,
        return_base64: bool,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "n": 1,
            "size": size,
            "response_format": "b64_json" if return_base64 else "url",
        }
        if quality:
            body["quality"] = quality
        if self.model == STYLE_CAPABLE_MODEL and style:
            body["style"] = style
        return body

    def _store(self, image: GeneratedImage) -> None:
        key = cache_key(image.prompt)
        self._cache[key] = image
        self._cache.move_to_end(key)
        while len(self._cache) > self.max_cache_size:
            self._cache.popitem(last=False)


def cache_key(prompt: str) -> str:
    return "img_" + hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:16]
