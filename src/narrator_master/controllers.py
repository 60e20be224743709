"""Controllers for narrator-master CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, TypeVar

import httpx

from narrator_master.assistant import AIAssistant, ContextAnalysis, OffTrackResult, Suggestion
from narrator_master.config import Settings
from narrator_master.images import GeneratedImage, ImageGenerator
from narrator_master.pipeline.transport import HttpTransport

T = TypeVar("T")


@dataclass(slots=True)
class AssistantAnalyzeCommand:
    """CLI input for a full transcript analysis."""

    transcription: str
    context_file: Path | None
    include_suggestions: bool
    check_off_track: bool
    sensitivity: str | None


@dataclass(slots=True)
class AssistantOffTrackCommand:
    """CLI input for off-track detection."""

    transcription: str
    context_file: Path | None
    sensitivity: str | None


@dataclass(slots=True)
class AssistantSuggestCommand:
    """CLI input for suggestion generation."""

    transcription: str
    context_file: Path | None
    max_suggestions: int


@dataclass(slots=True)
class AssistantBridgeCommand:
    """CLI input for narrative bridge generation."""

    current_situation: str
    target_scene: str
    context_file: Path | None


@dataclass(slots=True)
class ImageGenerateCommand:
    """CLI input for raw prompt image generation."""

    prompt: str
    size: str | None
    quality: str | None
    style: str | None
    base64: bool


@dataclass(slots=True)
class ImageSceneCommand:
    """CLI input for scene illustration."""

    description: str
    location: str
    lighting: str
    characters: tuple[str, ...]


@dataclass(slots=True)
class ImageInfographicCommand:
    """CLI input for infographic generation."""

    description: str
    style: str
    mood: str
    elements: tuple[str, ...]


class NarratorCliController:
    """Builds services from environment settings and renders their results as lines."""

    def __init__(self, http_transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._http_transport = http_transport

    def analyze(self, command: AssistantAnalyzeCommand) -> list[str]:
        assistant = self._assistant(command.context_file, command.sensitivity)
        analysis = _run(
            assistant,
            lambda: assistant.analyze_context(
                command.transcription,
                include_suggestions=command.include_suggestions,
                check_off_track=command.check_off_track,
            ),
        )
        return render_analysis(analysis)

    def off_track(self, command: AssistantOffTrackCommand) -> list[str]:
        assistant = self._assistant(command.context_file, command.sensitivity)
        result = _run(assistant, lambda: assistant.detect_off_track(command.transcription))
        return render_off_track(result)

    def suggest(self, command: AssistantSuggestCommand) -> list[str]:
        assistant = self._assistant(command.context_file, None)
        suggestions = _run(
            assistant,
            lambda: assistant.generate_suggestions(
                command.transcription,
                max_suggestions=command.max_suggestions,
            ),
        )
        if not suggestions:
            return ["No suggestions."]
        return render_suggestions(suggestions)

    def bridge(self, command: AssistantBridgeCommand) -> list[str]:
        assistant = self._assistant(command.context_file, None)
        text = _run(
            assistant,
            lambda: assistant.generate_narrative_bridge(
                command.current_situation,
                command.target_scene,
            ),
        )
        return [text or "(empty narrative bridge)"]

    def generate_image(self, command: ImageGenerateCommand) -> list[str]:
        generator = self._images()
        image = _run(
            generator,
            lambda: generator.generate(
                command.prompt,
                size=command.size,
                quality=command.quality,
                style=command.style,
                return_base64=command.base64,
            ),
        )
        return render_image(image)

    def scene(self, command: ImageSceneCommand) -> list[str]:
        generator = self._images()
        image = _run(
            generator,
            lambda: generator.generate_scene_illustration(
                command.description,
                location=command.location,
                lighting=command.lighting,
                characters=command.characters,
            ),
        )
        return render_image(image)

    def infographic(self, command: ImageInfographicCommand) -> list[str]:
        generator = self._images()
        image = _run(
            generator,
            lambda: generator.generate_infographic(
                command.description,
                style=command.style,
                mood=command.mood,
                elements=command.elements,
            ),
        )
        return render_image(image)

    def show_config(self) -> list[str]:
        settings = _settings()
        pipeline = settings.pipeline
        return [
            f"Base URL: {settings.openai.base_url}",
            f"API key: {'configured' if settings.openai.api_key else 'missing'}",
            f"Assistant: model={settings.assistant.model} "
            f"sensitivity={settings.assistant.sensitivity} "
            f"language={settings.assistant.primary_language}",
            f"Images: model={settings.images.model} size={settings.images.default_size} "
            f"quality={settings.images.default_quality} cache={settings.images.max_cache_size}",
            f"Queue: max_size={pipeline.max_queue_size}",
            "Retry: "
            f"enabled={pipeline.retry_enabled} attempts={pipeline.max_retry_attempts} "
            f"base_delay_ms={pipeline.retry_base_delay_ms:g} "
            f"max_delay_ms={pipeline.retry_max_delay_ms:g} "
            f"jitter={pipeline.retry_jitter_ratio:g}",
            f"Timeout: {pipeline.request_timeout_seconds:g}s",
        ]

    def _assistant(self, context_file: Path | None, sensitivity: str | None) -> AIAssistant:
        settings = _settings()
        assistant = AIAssistant.from_settings(settings, transport=self._transport(settings))
        if context_file is not None:
            assistant.set_adventure_context(context_file.read_text(encoding="utf-8"))
        if sensitivity:
            assistant.set_sensitivity(sensitivity.lower())
        return assistant

    def _images(self) -> ImageGenerator:
        settings = _settings()
        return ImageGenerator.from_settings(settings, transport=self._transport(settings))

    def _transport(self, settings: Settings) -> HttpTransport:
        return HttpTransport(
            base_url=settings.openai.base_url,
            timeout_seconds=settings.pipeline.request_timeout_seconds,
            transport=self._http_transport,
        )


def render_analysis(analysis: ContextAnalysis) -> list[str]:
    lines = [f"Summary: {analysis.summary or '-'}"]
    lines.extend(render_off_track(analysis.off_track_status))
    if analysis.suggestions:
        lines.extend(render_suggestions(analysis.suggestions))
    if analysis.relevant_pages:
        lines.append(f"Relevant pages: {', '.join(analysis.relevant_pages)}")
    return lines


def render_off_track(result: OffTrackResult) -> list[str]:
    status = "OFF TRACK" if result.is_off_track else "on track"
    lines = [f"Status: {status} severity={result.severity:.2f}"]
    if result.reason:
        lines.append(f"Reason: {result.reason}")
    if result.narrative_bridge:
        lines.append(f"Bridge: {result.narrative_bridge}")
    return lines


def render_suggestions(suggestions: list[Suggestion]) -> list[str]:
    lines = []
    for index, suggestion in enumerate(suggestions, start=1):
        line = (
            f"{index}. [{suggestion.type.value}] ({suggestion.confidence:.2f}) "
            f"{suggestion.content}"
        )
        if suggestion.page_reference:
            line += f" (see {suggestion.page_reference})"
        lines.append(line)
    return lines


def render_image(image: GeneratedImage) -> list[str]:
    lines = [f"Image: id={image.id} model={image.model} size={image.size}"]
    if image.url:
        lines.append(f"URL: {image.url}")
        lines.append(f"Expires at: {image.expires_at.isoformat()}")
    if image.base64:
        lines.append(f"Base64: {len(image.base64)} chars")
    if image.revised_prompt:
        lines.append(f"Revised prompt: {image.revised_prompt}")
    return lines


class _Closable(Protocol):
    async def aclose(self) -> None: ...


def _run(service: _Closable, operation: Callable[[], Awaitable[T]]) -> T:
    async def _invoke() -> T:
        try:
            return await operation()
        finally:
            await service.aclose()

    return asyncio.run(_invoke())


def _settings() -> Settings:
    settings = Settings.from_env()
    settings.validate()
    return settings
