"""Text assistant: contextual suggestions and off-track detection for the GM."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from narrator_master.assistant import prompts
from narrator_master.assistant.models import ContextAnalysis, OffTrackResult, Suggestion
from narrator_master.assistant.sanitization import (
    sanitize_analysis,
    sanitize_narrative_bridge,
    sanitize_off_track,
    sanitize_suggestions,
)
from narrator_master.config import SUPPORTED_SENSITIVITIES, AssistantSettings, Settings
from narrator_master.pipeline.client import ServiceClient
from narrator_master.pipeline.errors import ConfigurationError
from narrator_master.pipeline.models import RequestSpec
from narrator_master.pipeline.retry import Invoker
from narrator_master.pipeline.transport import HttpTransport

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/chat/completions"
MAX_CONVERSATION_HISTORY = 20
DEFAULT_MAX_SUGGESTIONS = 3
NO_CONTEXT_REASON = "No adventure context configured; off-track detection skipped."


@dataclass(slots=True)
class _SessionState:
    suggestions_count: int = 0
    last_off_track_check: datetime | None = None


class AIAssistant:
    """Builds prompts, sends them through the shared pipeline, and sanitizes replies."""

    def __init__(
        self,
        client: ServiceClient,
        *,
        api_key: str = "",
        settings: AssistantSettings | None = None,
    ) -> None:
        self.client = client
        self._api_key = api_key or ""
        config = settings or AssistantSettings()
        self.model = config.model
        self.temperature = config.temperature
        self.max_tokens = config.max_tokens
        self._sensitivity = (
            config.sensitivity if config.sensitivity in SUPPORTED_SENSITIVITIES else "medium"
        )
        self.primary_language = config.primary_language or "it"
        self.adventure_context = ""
        self._history: list[prompts.Message] = []
        self._session = _SessionState()

    @classmethod
    def from_settings(cls, settings: Settings, *, transport: Invoker | None = None) -> AIAssistant:
        """Wire an assistant with its own transport and queue."""

        invoker = transport or HttpTransport(
            base_url=settings.openai.base_url,
            timeout_seconds=settings.pipeline.request_timeout_seconds,
        )
        client = ServiceClient(invoker, settings=settings.pipeline, name="assistant")
        return cls(client, api_key=settings.openai.api_key, settings=settings.assistant)

    def set_api_key(self, api_key: str) -> None:
        self._api_key = api_key or ""

    def is_configured(self) -> bool:
        return bool(self._api_key.strip())

    @property
    def sensitivity(self) -> str:
        return self._sensitivity

    def set_sensitivity(self, sensitivity: str) -> None:
        """Update sensitivity; unsupported values are ignored."""

        if sensitivity in SUPPORTED_SENSITIVITIES:
            self._sensitivity = sensitivity

    def set_adventure_context(self, context: str | None) -> None:
        self.adventure_context = context or ""

    async def analyze_context(
        self,
        transcription: str,
        *,
        include_suggestions: bool = True,
        check_off_track: bool = True,
    ) -> ContextAnalysis:
        """Analyze a transcript window and return bounded suggestions and status."""

        self._require_configured()
        if not isinstance(transcription, str) or not transcription.strip():
            raise ValueError("A non-empty transcription is required for analysis.")

        logger.info("Analyzing context, transcription length: %d", len(transcription))
        languages = self._observe_languages(transcription)
        messages = prompts.build_analysis_messages(
            system_prompt=self._system_prompt(),
            adventure_context=self.adventure_context,
            history=self._history,
            transcription=transcription,
            include_suggestions=include_suggestions,
            check_off_track=check_off_track,
            detected_languages=languages,
        )
        body = await self._complete(messages, operation="Context analysis")
        analysis = sanitize_analysis(body)

        self._add_to_history("user", transcription)
        self._add_to_history("assistant", json.dumps(analysis.to_dict(), ensure_ascii=False))
        self._session.suggestions_count += 1
        logger.info("Analysis complete, %d suggestions", len(analysis.suggestions))
        return analysis

    async def detect_off_track(self, transcription: str) -> OffTrackResult:
        """Check whether the players drifted away from the adventure."""

        self._require_configured()
        if not self.adventure_context:
            logger.warning("No adventure context set, skipping off-track detection")
            return OffTrackResult(reason=NO_CONTEXT_REASON)

        languages = self._observe_languages(transcription or "")
        messages = prompts.build_off_track_messages(
            system_prompt=self._system_prompt(),
            adventure_context=self.adventure_context,
            transcription=transcription or "",
            detected_languages=languages,
        )
        body = await self._complete(messages, operation="Off-track detection")
        result = sanitize_off_track(body)
        self._session.last_off_track_check = datetime.now(UTC)
        return result

    async def generate_suggestions(
        self,
        transcription: str,
        *,
        max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
    ) -> list[Suggestion]:
        """Generate up to `max_suggestions` suggestions (never more than ten)."""

        self._require_configured()
        max_suggestions = max_suggestions or DEFAULT_MAX_SUGGESTIONS
        languages = self._observe_languages(transcription or "")
        messages = prompts.build_suggestion_messages(
            system_prompt=self._system_prompt(),
            adventure_context=self.adventure_context,
            transcription=transcription or "",
            max_suggestions=max_suggestions,
            detected_languages=languages,
        )
        body = await self._complete(messages, operation="Suggestion generation")
        return sanitize_suggestions(body, max_suggestions)

    async def generate_narrative_bridge(self, current_situation: str, target_scene: str) -> str:
        """Write a short narration steering the players back toward `target_scene`."""

        self._require_configured()
        messages = prompts.build_narrative_bridge_messages(
            system_prompt=self._system_prompt(),
            adventure_context=self.adventure_context,
            current_situation=current_situation,
            target_scene=target_scene,
        )
        body = await self._complete(messages, operation="Narrative bridge")
        return sanitize_narrative_bridge(body)

    def get_queue_size(self) -> int:
        return self.client.get_queue_size()

    def clear_queue(self) -> int:
        return self.client.clear_queue()

    def get_history(self, limit: int | None = None) -> list[prompts.Message]:
        if limit is not None and limit > 0:
            return [dict(entry) for entry in self._history[-limit:]]
        return [dict(entry) for entry in self._history]

    def clear_history(self) -> None:
        self._history = []

    def reset_session(self) -> None:
        self._history = []
        self._session = _SessionState()

    def get_stats(self) -> dict[str, Any]:
        return {
            "configured": self.is_configured(),
            "model": self.model,
            "sensitivity": self._sensitivity,
            "primary_language": self.primary_language,
            "has_context": bool(self.adventure_context),
            "context_length": len(self.adventure_context),
            "history_size": len(self._history),
            "suggestions_generated": self._session.suggestions_count,
            "last_off_track_check": self._session.last_off_track_check,
            "queue_size": self.client.get_queue_size(),
        }

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _complete(self, messages: list[prompts.Message], *, operation: str) -> Any:
        response = await self.client.request(
            RequestSpec(
                path=CHAT_COMPLETIONS_PATH,
                body={
                    "model": self.model,
                    "messages": messages,
                    "temperature": self.temperature,
                    "max_tokens": self.max_tokens,
                },
                headers={"Authorization": f"Bearer {self._api_key}"},
                operation=operation,
            ),
        )
        return response.body

    def _system_prompt(self) -> str:
        return prompts.build_system_prompt(
            sensitivity=self._sensitivity,
            primary_language=self.primary_language,
        )

    def _observe_languages(self, transcription: str) -> list[str]:
        languages = prompts.detect_languages(transcription)
        if len(languages) == 1:
            self.primary_language = languages[0]
        return languages

    def _add_to_history(self, role: str, content: str) -> None:
        self._history.append({"role": role, "content": content})
        if len(self._history) > MAX_CONVERSATION_HISTORY:
            self._history = self._history[-MAX_CONVERSATION_HISTORY:]

    def _require_configured(self) -> None:
        if not self.is_configured():
            raise ConfigurationError("OpenAI API key is not configured.")
