"""Tests for prompt construction and response truncation."""

import pytest

from reviewflow.ai.prompts import (
    FORMALITY_SCALE,
    BrandVoiceConfig,
    ResponseTone,
    ReviewContext,
    build_system_prompt,
    build_user_prompt,
    describe_formality,
    truncate_response,
)


pytestmark = pytest.mark.unit


class TestSystemPrompt:
    """Tests for build_system_prompt."""

    def test_includes_brand_voice_settings(self):
        brand_voice = BrandVoiceConfig(
            tone="friendly",
            formality=2,
            key_phrases=("Thanks a bunch", "See you soon"),
            style_notes="Sign off with the team name.",
        )

        prompt = build_system_prompt(brand_voice, language="English")

        assert "- Tone: friendly" in prompt
        assert f"- Formality Level: {FORMALITY_SCALE[2]}" in prompt
        assert (
            "- Key Phrases (use at least one or two of these naturally): "
            "Thanks a bunch, See you soon"
        ) in prompt
        assert "- Style Guidelines: Sign off with the team name." in prompt
        assert "Write the response in English" in prompt
        assert "under 500 characters" in prompt

    def test_empty_optional_sections_are_omitted(self):
        prompt = build_system_prompt(BrandVoiceConfig(), language="German")

        assert "Key Phrases" not in prompt
        assert "Style Guidelines" not in prompt
        assert "SAMPLE RESPONSES" not in prompt
        assert prompt.endswith(
            "Respond ONLY with the response text. Do not include any explanations, "
            "notes, or meta-commentary."
        )

    def test_tone_override_replaces_configured_tone(self):
        prompt = build_system_prompt(
            BrandVoiceConfig(tone="professional"),
            language="English",
            tone_override=ResponseTone.EMPATHETIC,
        )

        assert "- Tone: empathetic (understanding and compassionate" in prompt
        assert "- Tone: professional" not in prompt

    def test_default_override_keeps_configured_tone(self):
        prompt = build_system_prompt(
            BrandVoiceConfig(tone="friendly"),
            language="English",
            tone_override=ResponseTone.DEFAULT,
        )

        assert "- Tone: friendly" in prompt

    def test_sample_responses_are_capped(self):
        samples = tuple(f"Sample number {i}" for i in range(1, 8))

        prompt = build_system_prompt(
            BrandVoiceConfig(sample_responses=samples),
            language="English",
            max_samples=5,
        )

        assert '5. "Sample number 5"' in prompt
        assert "Sample number 6" not in prompt

    def test_prompt_is_deterministic(self):
        brand_voice = BrandVoiceConfig(key_phrases=("a", "b"), sample_responses=("x",))
        assert build_system_prompt(brand_voice, "English") == build_system_prompt(
            brand_voice, "English"
        )

    def test_unknown_formality_uses_balanced_description(self):
        assert describe_formality(9) == FORMALITY_SCALE[3]


class TestUserPrompt:
    """Tests for build_user_prompt."""

    def test_with_rating(self):
        review = ReviewContext(review_text="Lovely stay", platform="TripAdvisor", rating=4)

        assert build_user_prompt(review) == (
            'Write a response to this TripAdvisor review (4/5 stars) in English:\n\n"Lovely stay"'
        )

    def test_without_rating(self):
        review = ReviewContext(review_text="Ok", platform="Yelp", language="French")

        assert build_user_prompt(review) == 'Write a response to this Yelp review in French:\n\n"Ok"'


class TestTruncateResponse:
    """Tests for truncate_response."""

    def test_short_text_is_only_stripped(self):
        assert truncate_response("  Thanks!  ", max_chars=500) == "Thanks!"

    def test_cuts_after_sentence_boundary_in_window(self):
        text = "A" * 440 + ". " + "B" * 200

        result = truncate_response(text, max_chars=500, window=100)

        assert result == "A" * 440 + "."
        assert len(result) <= 500

    def test_hard_cut_when_no_boundary_in_window(self):
        text = "Short. " + "word " * 200

        result = truncate_response(text, max_chars=500, window=100)

        assert len(result) <= 500
        assert result == ("Short. " + "word " * 200)[:500].rstrip()

    def test_question_and_exclamation_count_as_boundaries(self):
        text = "x" * 450 + "?" + "y" * 20 + "!" + "z" * 100

        result = truncate_response(text, max_chars=500, window=100)

        assert result.endswith("!")
        assert len(result) == 472
