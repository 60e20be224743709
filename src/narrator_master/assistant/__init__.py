"""Text assistant: suggestions, off-track detection, and narrative bridges."""

from narrator_master.assistant.models import (
    ContextAnalysis,
    OffTrackResult,
    Suggestion,
    SuggestionType,
)
from narrator_master.assistant.service import AIAssistant

__all__ = [
    "AIAssistant",
    "ContextAnalysis",
    "OffTrackResult",
    "Suggestion",
    "SuggestionType",
]
