"""Prompt builders for the text assistant."""

from __future__ import annotations

import re

MAX_CONTEXT_TOKENS = 8_000
_CHARS_PER_TOKEN = 4
MAX_CONTEXT_CHARS = MAX_CONTEXT_TOKENS * _CHARS_PER_TOKEN
CONTEXT_TRUNCATION_MARKER = "\n\n[... content truncated ...]"

_LANGUAGE_LABEL = re.compile(r"\(([a-z]{2,3})\):", re.IGNORECASE)

LANGUAGE_NAMES: dict[str, str] = {
    "it": "Italian",
    "en": "English",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
    "pt": "Portuguese",
    "pl": "Polish",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "ar": "Arabic",
    "nl": "Dutch",
    "sv": "Swedish",
    "da": "Danish",
    "no": "Norwegian",
    "fi": "Finnish",
    "tr": "Turkish",
    "cs": "Czech",
    "hu": "Hungarian",
    "ro": "Romanian",
}

SENSITIVITY_GUIDES: dict[str, str] = {
    "low": "Be tolerant of minor deviations; flag only when the players abandon the story entirely.",
    "medium": "Balance tolerance for improvisation with adherence to the main plot.",
    "high": "Watch every deviation from the plot closely and flag even minor variations.",
}

ANALYSIS_FULL_SCHEMA = """\
{
  "suggestions": [{"type": "narration|dialogue|action|reference", "content": "...", "confidence": 0.0-1.0}],
  "offTrackStatus": {"isOffTrack": boolean, "severity": 0.0-1.0, "reason": "..."},
  "relevantPages": ["..."],
  "summary": "..."
}"""

ANALYSIS_SUGGESTIONS_SCHEMA = """\
{
  "suggestions": [{"type": "narration|dialogue|action|reference", "content": "...", "confidence": 0.0-1.0}],
  "summary": "..."
}"""

ANALYSIS_OFF_TRACK_SCHEMA = """\
{
  "offTrackStatus": {"isOffTrack": boolean, "severity": 0.0-1.0, "reason": "..."},
  "summary": "..."
}"""

OFF_TRACK_SCHEMA = """\
{
  "isOffTrack": boolean,
  "severity": 0.0-1.0,
  "reason": "short explanation",
  "narrativeBridge": "optional suggestion to bring them back on track"
}"""

SUGGESTIONS_SCHEMA = """\
{
  "suggestions": [
    {
      "type": "narration|dialogue|action|reference",
      "content": "the suggestion",
      "pageReference": "page name if applicable",
      "confidence": 0.0-1.0
    }
  ]
}"""

Message = dict[str, str]


def detect_languages(transcription: str) -> list[str]:
    """Return language codes from `Speaker (xx):` labels, in first-seen order."""

    seen: dict[str, None] = {}
    for match in _LANGUAGE_LABEL.finditer(transcription):
        seen.setdefault(match.group(1).lower(), None)
    return list(seen)


def truncate_context(context: str, max_chars: int = MAX_CONTEXT_CHARS) -> str:
    if len(context) <= max_chars:
        return context
    return context[:max_chars] + CONTEXT_TRUNCATION_MARKER


def build_system_prompt(*, sensitivity: str, primary_language: str) -> str:
    language = LANGUAGE_NAMES.get(primary_language, LANGUAGE_NAMES["it"])
    guide = SENSITIVITY_GUIDES.get(sensitivity, SENSITIVITY_GUIDES["medium"])
    return (
        "You are an assistant for a Game Master running a fantasy tabletop role-playing game.\n"
        "Help the GM during the session by providing:\n"
        "1. Contextual suggestions based on what the players are saying\n"
        "2. References to the relevant parts of the adventure\n"
        "3. Detection of when the players drift away from the adventure\n"
        "4. Gentle ways to bring the players back into the story\n\n"
        f"Answer in the same language as the transcript ({language}).\n"
        f"{guide}\n\n"
        "When the players are off track, suggest creative ways to lead them back "
        "without forcing them."
    )


def build_analysis_messages(  # noqa: PLR0913
    *,
    system_prompt: str,
    adventure_context: str,
    history: list[Message],
    transcription: str,
    include_suggestions: bool,
    check_off_track: bool,
    detected_languages: list[str],
) -> list[Message]:
    messages = _preamble(system_prompt, adventure_context)
    messages.extend(dict(entry) for entry in history[-5:])

    content = f'Analyze this session transcript:\n\n"{transcription}"\n\n'
    content += _multilanguage_note(detected_languages, detailed=True)
    if include_suggestions and check_off_track:
        content += f"Reply in JSON with this structure:\n{ANALYSIS_FULL_SCHEMA}"
    elif include_suggestions:
        content += f"Provide suggestions for the GM in JSON:\n{ANALYSIS_SUGGESTIONS_SCHEMA}"
    elif check_off_track:
        content += f"Assess whether the players are off track, in JSON:\n{ANALYSIS_OFF_TRACK_SCHEMA}"
    messages.append({"role": "user", "content": content})
    return messages


def build_off_track_messages(
    *,
    system_prompt: str,
    adventure_context: str,
    transcription: str,
    detected_languages: list[str],
) -> list[Message]:
    messages = _preamble(system_prompt, adventure_context)
    content = (
        "Analyze whether the players are following the adventure plot based on this "
        f'transcript:\n\n"{transcription}"\n\n'
    )
    content += _multilanguage_note(detected_languages, detailed=False)
    content += f"Reply in JSON:\n{OFF_TRACK_SCHEMA}"
    messages.append({"role": "user", "content": content})
    return messages


def build_suggestion_messages(
    *,
    system_prompt: str,
    adventure_context: str,
    transcription: str,
    max_suggestions: int,
    detected_languages: list[str],
) -> list[Message]:
    messages = _preamble(system_prompt, adventure_context)
    content = (
        f"Based on this transcript, generate up to {max_suggestions} suggestions for the GM:"
        f'\n\n"{transcription}"\n\n'
    )
    content += _multilanguage_note(detected_languages, detailed=False)
    content += f"Reply in JSON:\n{SUGGESTIONS_SCHEMA}"
    messages.append({"role": "user", "content": content})
    return messages


def build_narrative_bridge_messages(
    *,
    system_prompt: str,
    adventure_context: str,
    current_situation: str,
    target_scene: str,
) -> list[Message]:
    messages = _preamble(system_prompt, adventure_context)
    messages.append(
        {
            "role": "user",
            "content": (
                "The players have drifted away from the main plot.\n\n"
                f"Current situation: {current_situation}\n"
                f"Target scene: {target_scene}\n\n"
                "Write a short narration (2-3 sentences) the GM can use to gently steer the "
                "players toward the target scene while keeping narrative continuity. Do not "
                "force the transition; create a natural link."
            ),
        },
    )
    return messages


def _preamble(system_prompt: str, adventure_context: str) -> list[Message]:
    messages: list[Message] = [{"role": "system", "content": system_prompt}]
    if adventure_context:
        messages.append(
            {
                "role": "system",
                "content": f"ADVENTURE CONTEXT:\n{truncate_context(adventure_context)}",
            },
        )
    return messages


def _multilanguage_note(detected_languages: list[str], *, detailed: bool) -> str:
    if len(detected_languages) <= 1:
        return ""
    note = (
        f"NOTE: This transcript contains multiple languages ({', '.join(detected_languages)}). "
        "Language labels appear in parentheses after the speaker name"
    )
    if detailed:
        return (
            note + ' (e.g. "Speaker (en):"). Answer in the primary language identified or an '
            "appropriate mix of the languages used.\n\n"
        )
    return note + ".\n\n"
