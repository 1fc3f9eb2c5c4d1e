"""
Unit tests for advisory output normalization.
"""

import json

import pytest

from service_advisory.app.domain import normalizer
from service_advisory.app.domain.models import ADVISORY_CATEGORIES, UNAVAILABLE, AdvisoryContent
from shared.test_helpers import TestDataFactory


@pytest.fixture
def payload():
    return TestDataFactory.advisory_payload()


class TestExtract:
    """Test cases for normalizer.extract."""

    def test_bare_json(self, payload):
        content = normalizer.extract(json.dumps(payload))

        assert isinstance(content, AdvisoryContent)
        assert content.visa == payload["visa"]
        assert content.disclaimer == payload["disclaimer"]

    def test_fenced_block_wrapped_in_prose(self, payload):
        content = normalizer.extract(TestDataFactory.fenced(payload))

        assert content is not None
        assert content.emergency == ["Dial 112 for any emergency."]

    def test_fence_without_language_tag(self, payload):
        text = "Sure.\n```\n" + json.dumps(payload) + "\n```"

        assert normalizer.extract(text) is not None

    def test_embedded_object_without_fence(self, payload):
        text = "Travel notes follow " + json.dumps(payload) + " -- end of notes."

        content = normalizer.extract(text)

        assert content is not None
        assert content.health == payload["health"]

    @pytest.mark.parametrize("text", [
        "",
        "   ",
        "I cannot help with that.",
        "{not json at all}",
        "[1, 2, 3]",
        None,
    ])
    def test_unparseable_text_returns_none(self, text):
        assert normalizer.extract(text) is None

    @pytest.mark.parametrize("category", ADVISORY_CATEGORIES)
    def test_missing_category_rejects_whole_payload(self, payload, category):
        del payload[category]

        assert normalizer.extract(json.dumps(payload)) is None

    def test_non_string_bullets_rejected(self, payload):
        payload["laws"] = ["ok", 42]

        assert normalizer.extract(json.dumps(payload)) is None

    def test_category_as_string_rejected(self, payload):
        payload["visa"] = "Visa on arrival"

        assert normalizer.extract(json.dumps(payload)) is None

    @pytest.mark.parametrize("disclaimer", [None, "", "   ", 7])
    def test_disclaimer_required(self, payload, disclaimer):
        payload["disclaimer"] = disclaimer

        assert normalizer.extract(json.dumps(payload)) is None

    def test_empty_category_marked_unavailable(self, payload):
        payload["visa"] = []
        payload["laws"] = ["  ", ""]

        content = normalizer.extract(json.dumps(payload))

        assert content.visa == [UNAVAILABLE]
        assert content.laws == [UNAVAILABLE]

    def test_bullets_are_trimmed_and_capped(self, payload):
        payload["safety"] = [f"  Tip   number {i}.  " for i in range(10)]

        content = normalizer.extract(json.dumps(payload))

        assert len(content.safety) == normalizer.MAX_BULLETS
        assert content.safety[0] == "Tip number 0."

    def test_emergency_numbers_object_is_flattened(self, payload):
        del payload["emergency"]
        payload["emergency_numbers"] = {
            "police": "17",
            "ambulance": "15",
            "fire": "18",
            "notes": ["112 works from any phone."],
        }

        content = normalizer.extract(json.dumps(payload))

        assert content.emergency == [
            "Police: 17",
            "Ambulance: 15",
            "Fire: 18",
            "112 works from any phone.",
        ]

    def test_first_parse_wins_even_if_invalid(self, payload):
        # The whole text parses as an object, so the fenced block is not consulted.
        text = json.dumps({"note": "see below ```json " + json.dumps(payload) + " ```"})

        assert normalizer.extract(text) is None

    def test_reextracting_canonical_output_is_stable(self, payload):
        first = normalizer.extract(TestDataFactory.fenced(payload))

        second = normalizer.extract(json.dumps(first.model_dump(), sort_keys=True))

        assert second == first


class TestLocateOutputText:
    """Test cases for generation service response shapes."""

    def test_output_text_shortcut(self):
        assert normalizer.locate_output_text({"output_text": "hello"}) == "hello"

    def test_output_content_parts(self):
        body = TestDataFactory.responses_body("from output")

        assert normalizer.locate_output_text(body) == "from output"

    def test_skips_output_items_without_text(self):
        body = {
            "output": [
                {"type": "reasoning", "summary": []},
                {"type": "message", "content": [{"type": "output_text", "text": "second item"}]},
            ]
        }

        assert normalizer.locate_output_text(body) == "second item"

    def test_chat_completion_shape(self):
        body = {"choices": [{"message": {"role": "assistant", "content": "from chat"}}]}

        assert normalizer.locate_output_text(body) == "from chat"

    def test_strategy_order(self):
        body = {
            "output_text": "first",
            "choices": [{"message": {"content": "third"}}],
        }

        assert normalizer.locate_output_text(body) == "first"

    def test_plain_string_body(self):
        assert normalizer.locate_output_text("raw text") == "raw text"

    @pytest.mark.parametrize("body", [{}, {"output": "nope"}, {"choices": []}, [], 12])
    def test_unknown_shapes_return_none(self, body):
        assert normalizer.locate_output_text(body) is None
