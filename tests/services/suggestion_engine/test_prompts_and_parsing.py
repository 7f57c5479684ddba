"""Tests for prompt construction and strict model-reply parsing."""

import json
from uuid import UUID

import pytest

from pageadvisor.core.exceptions import ExternalModelError, ModelResponseParseError
from pageadvisor.services.suggestion_engine.models import (
    AnalyticsSnapshot,
    ContentSummary,
    PageSnapshot,
    Priority,
    Suggestion,
)
from pageadvisor.services.suggestion_engine.parsing import (
    parse_llm_json,
    parse_selection,
    parse_suggestions,
)
from pageadvisor.services.suggestion_engine.prompts import (
    SYSTEM_PROMPT,
    build_selection_prompt,
    build_user_prompt,
    detect_issues,
    estimate_tokens,
)

USER_ID = UUID("00000000-0000-0000-0000-000000000001")
PAGE_ID = UUID("00000000-0000-0000-0000-000000000002")


def _pending(title):
    return Suggestion(user_id=USER_ID, landing_page_id=PAGE_ID, title=title)


# =============================================================================
# Prompts
# =============================================================================

class TestDetectIssues:

    def test_struggling_page(self):
        snapshot = PageSnapshot(
            analytics=AnalyticsSnapshot(page_views=40, cta_clicks=0),
            content=ContentSummary(bio_word_count=8, services_count=0),
        )
        issues = detect_issues(snapshot)

        assert "Low traffic volume needs attention" in issues
        assert "Low conversion rate needs optimization" in issues
        assert "No CTA clicks detected - critical issue" in issues
        assert "Bio may be too short" in issues
        assert "No services listed" in issues

    def test_healthy_page(self):
        snapshot = PageSnapshot(
            analytics=AnalyticsSnapshot(page_views=1000, cta_clicks=50),
            content=ContentSummary(bio_word_count=60, services_count=3),
        )
        assert detect_issues(snapshot) == []

    def test_long_bio(self):
        snapshot = PageSnapshot(
            analytics=AnalyticsSnapshot(page_views=1000, cta_clicks=50),
            content=ContentSummary(bio_word_count=180, services_count=3),
        )
        assert detect_issues(snapshot) == ["Bio may be too long"]


class TestBuildUserPrompt:

    def test_includes_metrics_and_only_three_existing_titles(self, snapshot):
        existing = [_pending(f"Existing {i}") for i in range(5)]

        prompt = build_user_prompt(snapshot, existing, "full")

        assert "Total Page Views: 250" in prompt
        assert "Conversion Rate: 2.00%" in prompt
        assert "Existing 0, Existing 1, Existing 2" in prompt
        assert "Existing 3" not in prompt
        assert "ANALYSIS TYPE: full" in prompt

    def test_no_existing(self, snapshot):
        prompt = build_user_prompt(snapshot, [], "content")
        assert "EXISTING SUGGESTIONS (don't duplicate):\nNone" in prompt
        assert "No onboarding data available" in prompt

    def test_system_prompt_is_content_only(self):
        assert "NEVER suggest performance" in SYSTEM_PROMPT
        assert '"suggestions"' in SYSTEM_PROMPT


class TestBuildSelectionPrompt:

    def test_numbered_one_based(self, candidate, snapshot):
        candidates = [
            candidate(title="Rewrite CTA", section="cta", priority="high"),
            candidate(title="Shorten bio", section=None, priority="low"),
        ]
        prompt = build_selection_prompt(candidates, snapshot, pick=3)

        assert "1. Rewrite CTA (priority: high, section: cta)" in prompt
        assert "2. Shorten bio (priority: low, section: general)" in prompt
        assert "Page Views: 250" in prompt


class TestEstimateTokens:

    def test_four_chars_per_token(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2


# =============================================================================
# Parsing
# =============================================================================

def _reply(suggestions):
    return json.dumps({"suggestions": suggestions})


class TestParseLlmJson:

    def test_plain_json(self):
        assert parse_llm_json('{"a": 1}') == {"a": 1}

    def test_code_fence(self):
        assert parse_llm_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_text(self):
        assert parse_llm_json('Here you go: {"a": 1} hope it helps') == {"a": 1}

    @pytest.mark.parametrize("text", ["", "   ", "no json here", "[1, 2, 3]", "{broken"])
    def test_unparseable(self, text):
        with pytest.raises(ModelResponseParseError):
            parse_llm_json(text)

    def test_parse_error_is_external_model_error(self):
        assert issubclass(ModelResponseParseError, ExternalModelError)


class TestParseSuggestions:

    def test_valid_reply(self):
        candidates = parse_suggestions(_reply([
            {
                "suggestion_type": "conversion",
                "title": "Rewrite CTA",
                "description": "Use a benefit-led CTA",
                "priority": "HIGH",
                "target_section": "cta",
                "suggested_content": "Book your free call",
                "confidence_score": 0.8,
                "extra_field": "ignored",
            },
        ]))

        assert len(candidates) == 1
        assert candidates[0].priority == Priority.HIGH
        assert candidates[0].confidence_score == 0.8

    def test_confidence_is_clamped(self):
        candidates = parse_suggestions(_reply([
            {"title": "A", "description": "a", "confidence_score": 1.7},
            {"title": "B", "description": "b", "confidence_score": -0.2},
            {"title": "C", "description": "c", "confidence_score": None},
        ]))
        assert [c.confidence_score for c in candidates] == [1.0, 0.0, 0.5]

    def test_list_content_is_serialized(self):
        candidates = parse_suggestions(_reply([
            {"title": "Reorder", "description": "d", "suggested_content": [{"id": "x"}, {"id": "y"}]},
        ]))
        assert json.loads(candidates[0].suggested_content) == [{"id": "x"}, {"id": "y"}]

    def test_missing_title_fails(self):
        with pytest.raises(ModelResponseParseError):
            parse_suggestions(_reply([{"description": "no title"}]))

    def test_invalid_priority_fails(self):
        with pytest.raises(ModelResponseParseError):
            parse_suggestions(_reply([{"title": "A", "description": "a", "priority": "urgent"}]))

    def test_wrong_shape_fails(self):
        with pytest.raises(ModelResponseParseError):
            parse_suggestions('{"ideas": []}')


class TestParseSelection:

    def test_indices(self):
        assert parse_selection('{"selected_indices": [3, 1, 5]}') == [3, 1, 5]

    def test_missing_key(self):
        with pytest.raises(ModelResponseParseError):
            parse_selection('{"picked": [1]}')
