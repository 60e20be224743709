"""Validated result types returned by the text assistant."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum


class SuggestionType(str, Enum):
    """Kinds of suggestion the assistant can offer the GM."""

    NARRATION = "narration"
    DIALOGUE = "dialogue"
    ACTION = "action"
    REFERENCE = "reference"


@dataclass(slots=True)
class Suggestion:
    """One contextual suggestion for the GM."""

    type: SuggestionType
    content: str
    confidence: float
    page_reference: str | None = None


@dataclass(slots=True)
class OffTrackResult:
    """Whether the players drifted away from the adventure, and how far."""

    is_off_track: bool = False
    severity: float = 0.0
    reason: str = ""
    narrative_bridge: str | None = None


@dataclass(slots=True)
class ContextAnalysis:
    """Full analysis of a transcript window."""

    suggestions: list[Suggestion] = field(default_factory=list)
    off_track_status: OffTrackResult = field(default_factory=OffTrackResult)
    relevant_pages: list[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["suggestions"] = [
            {**item, "type": suggestion.type.value}
            for item, suggestion in zip(payload["suggestions"], self.suggestions, strict=True)
        ]
        return payload
