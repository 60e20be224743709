from __future__ import annotations

import math

import allure
import pytest
from fakes import chat_body

from narrator_master.assistant.models import SuggestionType
from narrator_master.assistant.sanitization import (
    MAX_PAGE_REFERENCE_CHARS,
    MAX_REASON_CHARS,
    MAX_SUGGESTION_CONTENT_CHARS,
    sanitize_analysis,
    sanitize_narrative_bridge,
    sanitize_off_track,
    sanitize_suggestions,
)
from narrator_master.images.sanitization import MAX_IMAGE_URL_CHARS, sanitize_image_response
from narrator_master.sanitization import (
    chat_message_content,
    extract_json_object,
    validate_array,
    validate_bool,
    validate_number,
    validate_string,
)

pytestmark = [
    allure.epic("Response Sanitizer"),
    allure.feature("Bounding & Coercion"),
]


class TestPrimitives:
    def test_validate_string_coerces_and_truncates(self):
        assert validate_string(None, 10) == ""
        assert validate_string("abcdef", 3) == "abc"
        assert validate_string(42, 10) == "42"
        assert validate_string(True, 10) == "true"
        assert validate_string({"a": 1}, 100) == '{"a":1}'
        assert validate_string("x" * 10, 0) == ""

    def test_validate_number_clamps_and_defaults(self):
        assert validate_number(0.5, 0, 1) == 0.5
        assert validate_number(7, 0, 1) == 1.0
        assert validate_number(-3, 0, 1) == 0.0
        assert validate_number("0.25", 0, 1) == 0.25
        assert validate_number("high", 0, 1) == 0.0
        assert validate_number(None, 0, 1) == 0.0
        assert validate_number(True, 0, 1) == 0.0
        assert validate_number(math.nan, 0, 1) == 0.0
        assert validate_number(math.inf, 0, 1) == 1.0
        assert validate_number(-math.inf, 0, 1) == 0.0
        assert validate_number(10**400, 0, 1) == 1.0

    def test_validate_array_slices_lists_only(self):
        items = [{"a": 1}, {"b": 2}, {"c": 3}]

        sliced = validate_array(items, 2)

        assert sliced == items[:2]
        assert sliced[0] is items[0]
        assert validate_array("abc", 5) == []
        assert validate_array(None, 5) == []
        assert validate_array({"a": 1}, 5) == []

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (True, True),
            ("true", True),
            ("Yes", True),
            ("1", True),
            (1, True),
            (0.0, False),
            ("false", False),
            ("nope", False),
            (None, False),
            ([], False),
        ],
    )
    def test_validate_bool_is_permissive(self, value, expected):
        assert validate_bool(value) is expected

    def test_extract_json_object_handles_plain_fenced_and_embedded(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}
        assert extract_json_object('Here:\n```json\n{"a": 2}\n```') == {"a": 2}
        assert extract_json_object('Sure! {"a": 3} Hope it helps.') == {"a": 3}
        assert extract_json_object("[1, 2]") is None
        assert extract_json_object("no json here") is None
        assert extract_json_object("") is None

    def test_chat_message_content_tolerates_malformed_envelopes(self):
        assert chat_message_content(chat_body("hi")) == "hi"
        assert chat_message_content({"choices": []}) == ""
        assert chat_message_content({"choices": [{"message": {"content": 5}}]}) == ""
        assert chat_message_content(None) == ""


class TestAssistantSanitizers:
    def test_analysis_fields_are_bounded(self):
        body = chat_body(
            {
                "suggestions": [
                    {"type": "dialogue", "content": "x" * 9000, "confidence": 3},
                    "not-a-dict",
                    {"type": "weird", "content": "ok", "confidence": "0.4"},
                ]
                * 6,
                "offTrackStatus": {"isOffTrack": "yes", "severity": -1, "reason": "r" * 2000},
                "relevantPages": ["p" * 500] * 40,
                "summary": None,
            },
        )

        analysis = sanitize_analysis(body)

        assert len(analysis.suggestions) <= 10
        first = analysis.suggestions[0]
        assert first.type == SuggestionType.DIALOGUE
        assert len(first.content) == MAX_SUGGESTION_CONTENT_CHARS
        assert first.confidence == 1.0
        assert analysis.suggestions[1].type == SuggestionType.NARRATION
        assert analysis.suggestions[1].confidence == 0.4
        assert analysis.off_track_status.is_off_track is True
        assert analysis.off_track_status.severity == 0.0
        assert len(analysis.off_track_status.reason) == MAX_REASON_CHARS
        assert len(analysis.relevant_pages) == 20
        assert all(len(page) == MAX_PAGE_REFERENCE_CHARS for page in analysis.relevant_pages)
        assert analysis.summary == ""

    def test_analysis_of_non_json_content_is_safe_default(self):
        analysis = sanitize_analysis(chat_body("I cannot help with that."))

        assert analysis.suggestions == []
        assert analysis.off_track_status.is_off_track is False
        assert analysis.relevant_pages == []
        assert analysis.summary == ""

    def test_oversized_integer_literal_yields_safe_default(self):
        body = chat_body('{"summary": "ok", "severity": ' + "1" * 5000 + "}")

        analysis = sanitize_analysis(body)

        assert analysis.summary == ""
        assert analysis.suggestions == []
        assert sanitize_suggestions(body, 3) == []

    def test_deeply_nested_content_yields_safe_default(self):
        body = chat_body('{"summary": ' + "[" * 100_000 + "]" * 100_000 + "}")

        result = sanitize_off_track(body)

        assert result.is_off_track is False
        assert result.reason == ""
        assert sanitize_analysis(body).summary == ""

    def test_off_track_defaults_and_bridge(self):
        assert sanitize_off_track(None).is_off_track is False

        result = sanitize_off_track(
            chat_body({"isOffTrack": True, "severity": 0.7, "narrativeBridge": "Return..."}),
        )

        assert result.is_off_track is True
        assert result.severity == 0.7
        assert result.reason == ""
        assert result.narrative_bridge == "Return..."

    def test_suggestions_honour_requested_maximum(self):
        body = chat_body({"suggestions": [{"content": str(i)} for i in range(8)]})

        assert len(sanitize_suggestions(body, 3)) == 3
        assert len(sanitize_suggestions(body, 50)) == 8
        assert sanitize_suggestions(chat_body({"suggestions": "none"}), 3) == []

    def test_narrative_bridge_is_trimmed_and_capped(self):
        assert sanitize_narrative_bridge(chat_body("  A door creaks.  ")) == "A door creaks."
        assert len(sanitize_narrative_bridge(chat_body("z" * 5000))) == 2000
        assert sanitize_narrative_bridge({"unexpected": True}) == ""


class TestImageSanitizer:
    def test_url_response(self):
        image = sanitize_image_response(
            {"data": [{"url": "https://img.test/" + "a" * 3000, "revised_prompt": "a castle"}]},
            prompt="castle",
            size="1024x1024",
            model="gpt-image-1",
        )

        assert len(image.url) == MAX_IMAGE_URL_CHARS
        assert image.revised_prompt == "a castle"
        assert image.base64 is None
        assert image.expires_at > image.created_at

    def test_base64_response_never_expires(self):
        image = sanitize_image_response(
            {"data": [{"b64_json": "aGVsbG8="}]},
            prompt="p",
            size="256x256",
            model="dall-e-3",
        )

        assert image.url == ""
        assert image.base64 == "aGVsbG8="
        assert not image.is_expired(image.expires_at.replace(year=image.expires_at.year + 1))

    @pytest.mark.parametrize("body", [None, {}, {"data": []}, {"data": ["x"]}, "garbage"])
    def test_unreadable_response_yields_empty_url(self, body):
        image = sanitize_image_response(body, prompt="p", size="s", model="m")

        assert image.url == ""
        assert image.base64 is None
        assert image.revised_prompt is None
