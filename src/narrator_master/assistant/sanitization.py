"""Schema-level sanitizers for chat-completion responses.

Model output is untrusted: every field is coerced and bounded with the
policy caps below. A body that cannot be interpreted at all degrades to a
safe default instead of raising, so the session flow never blocks on
formatting drift in the upstream service.
"""

from __future__ import annotations

from typing import Any

from narrator_master.assistant.models import (
    ContextAnalysis,
    OffTrackResult,
    Suggestion,
    SuggestionType,
)
from narrator_master.sanitization import (
    chat_message_content,
    extract_json_object,
    validate_array,
    validate_bool,
    validate_number,
    validate_string,
)

MAX_SUGGESTION_CONTENT_CHARS = 5_000
MAX_REASON_CHARS = 1_000
MAX_NARRATIVE_BRIDGE_CHARS = 2_000
MAX_SUMMARY_CHARS = 2_000
MAX_PAGE_REFERENCE_CHARS = 200
MAX_SUGGESTIONS = 10
MAX_RELEVANT_PAGES = 20
MIN_SCORE = 0.0
MAX_SCORE = 1.0


def sanitize_analysis(body: Any) -> ContextAnalysis:
    """Bound a full context-analysis response."""

    parsed = extract_json_object(chat_message_content(body))
    if parsed is None:
        return ContextAnalysis()

    raw_status = parsed.get("offTrackStatus")
    return ContextAnalysis(
        suggestions=_sanitize_suggestion_list(parsed.get("suggestions"), MAX_SUGGESTIONS),
        off_track_status=(
            _sanitize_off_track_fields(raw_status)
            if isinstance(raw_status, dict)
            else OffTrackResult()
        ),
        relevant_pages=[
            validate_string(page, MAX_PAGE_REFERENCE_CHARS)
            for page in validate_array(parsed.get("relevantPages"), MAX_RELEVANT_PAGES)
        ],
        summary=validate_string(parsed.get("summary"), MAX_SUMMARY_CHARS),
    )


def sanitize_off_track(body: Any) -> OffTrackResult:
    """Bound an off-track detection response."""

    parsed = extract_json_object(chat_message_content(body))
    if parsed is None:
        return OffTrackResult()
    return _sanitize_off_track_fields(parsed)


def sanitize_suggestions(body: Any, max_suggestions: int = MAX_SUGGESTIONS) -> list[Suggestion]:
    """Bound a suggestion-list response to `min(max_suggestions, MAX_SUGGESTIONS)` entries."""

    parsed = extract_json_object(chat_message_content(body))
    if parsed is None:
        return []
    limit = max(0, min(max_suggestions, MAX_SUGGESTIONS))
    return _sanitize_suggestion_list(parsed.get("suggestions"), limit)


def sanitize_narrative_bridge(body: Any) -> str:
    """Bound a free-text narrative bridge."""

    return validate_string(chat_message_content(body).strip(), MAX_NARRATIVE_BRIDGE_CHARS)


def _sanitize_suggestion_list(value: Any, limit: int) -> list[Suggestion]:
    suggestions: list[Suggestion] = []
    for item in validate_array(value, limit):
        if not isinstance(item, dict):
            continue
        page_reference = item.get("pageReference")
        suggestions.append(
            Suggestion(
                type=_suggestion_type(item.get("type")),
                content=validate_string(item.get("content"), MAX_SUGGESTION_CONTENT_CHARS),
                confidence=validate_number(item.get("confidence"), MIN_SCORE, MAX_SCORE),
                page_reference=(
                    validate_string(page_reference, MAX_PAGE_REFERENCE_CHARS)
                    if page_reference is not None
                    else None
                ),
            ),
        )
    return suggestions


def _sanitize_off_track_fields(raw: dict[str, Any]) -> OffTrackResult:
    bridge = raw.get("narrativeBridge")
    return OffTrackResult(
        is_off_track=validate_bool(raw.get("isOffTrack")),
        severity=validate_number(raw.get("severity"), MIN_SCORE, MAX_SCORE),
        reason=validate_string(raw.get("reason"), MAX_REASON_CHARS),
        narrative_bridge=(
            validate_string(bridge, MAX_NARRATIVE_BRIDGE_CHARS) if bridge is not None else None
        ),
    )


def _suggestion_type(value: Any) -> SuggestionType:
    if isinstance(value, str):
        try:
            return SuggestionType(value.strip().lower())
        except ValueError:
            pass
    return SuggestionType.NARRATION
