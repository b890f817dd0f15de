"""
Tests for emotional intelligence helpers.

These tests verify that:
1. Signal detection is whole-word and case-insensitive
2. Intensity is bounded and grows with stronger cues
3. Response approaches follow the intensity bands
4. Reply modulation prepends empathy and tone only when a signal is present
"""

import random

import pytest

from catalog.characters import EQConfig
from engine.eq import (
    CRISIS_RESPONSE,
    analyze_emotional_intensity,
    build_modulation_prefix,
    craft_assistant_reply,
    create_eq_system_prompt,
    detect_all_signals,
    detect_signal,
    get_response_approach,
    pick_empathy_line,
)


@pytest.fixture
def config():
    return EQConfig(
        detection=["confused", "worried", "urgent", "budget"],
        empathyPhrases=["I hear you.", "That makes sense.", "Thanks for telling me."],
        modulation={"confused": "simplifying", "worried": "reassuring", "urgent": "focused"},
    )


class TestSignalDetection:
    """Tests for keyword detection."""

    def test_detects_whole_word(self, config):
        assert detect_signal(config, "I'm a bit CONFUSED here") == "confused"

    def test_ignores_partial_words(self, config):
        assert detect_signal(config, "budgetary concerns aside") is None

    def test_all_signals_in_declared_order(self, config):
        assert detect_all_signals(config, "urgent, and I'm worried") == ["worried", "urgent"]

    def test_empty_text(self, config):
        assert detect_all_signals(config, "") == []


class TestIntensity:
    """Tests for the intensity score."""

    def test_calm_text_is_low(self, config):
        assert analyze_emotional_intensity(config, "a 3 bhk flat") == 0.0

    def test_intensity_never_decreases_with_more_cues(self, config):
        texts = [
            "hello",
            "I'm worried",
            "I'm worried and confused",
            "I'm worried and confused!",
            "I'm worried and confused!!!",
            "I'm worried and confused!!! Why??",
            "URGENT: I'm worried and confused!!! Why?? HELP",
        ]
        scores = [analyze_emotional_intensity(config, t) for t in texts]
        assert scores == sorted(scores)

    def test_intensity_is_bounded(self, config):
        text = "WORRIED CONFUSED URGENT BUDGET " + "!" * 20 + "?" * 20
        score = analyze_emotional_intensity(config, text)
        assert 0.0 <= score <= 1.0
        assert score == 1.0

    @pytest.mark.parametrize(
        "intensity,approach",
        [
            (0.0, "neutral"),
            (0.19, "neutral"),
            (0.2, "empathetic"),
            (0.5, "highly-empathetic"),
            (0.8, "crisis-response"),
            (1.0, "crisis-response"),
        ],
    )
    def test_response_approach_bands(self, intensity, approach):
        assert get_response_approach(intensity).approach == approach

    def test_crisis_guidelines(self):
        assert "Offer immediate next steps" in CRISIS_RESPONSE.guidelines


class TestReplyModulation:
    """Tests for craft_assistant_reply."""

    def test_no_signal_returns_base(self, config):
        assert craft_assistant_reply(config, "a villa", "What is the area?") == "What is the area?"

    def test_signal_adds_empathy_and_prefix(self, config):
        reply = craft_assistant_reply(config, "I'm confused", "What is the area?", random.Random(7))
        empathy, body = reply.split("\n\n")
        assert empathy in config.empathyPhrases
        assert body == "Let me simplify this: What is the area?"

    def test_seeded_rng_is_reproducible(self, config):
        first = craft_assistant_reply(config, "worried", "Next?", random.Random(42))
        second = craft_assistant_reply(config, "worried", "Next?", random.Random(42))
        assert first == second

    def test_signal_without_modulation_has_no_prefix(self, config):
        reply = craft_assistant_reply(config, "tight budget", "Next?", random.Random(1))
        assert reply.endswith("\n\nNext?")

    def test_no_phrases_no_empathy(self):
        bare = EQConfig(detection=["worried"])
        assert pick_empathy_line(bare, "worried") is None

    def test_unknown_modulation_has_no_prefix(self):
        assert build_modulation_prefix("sarcastic") == ""
        assert build_modulation_prefix(None) == ""

    def test_eq_system_prompt_lists_signals(self, config):
        prompt = create_eq_system_prompt(config)
        assert prompt.startswith("[EMOTIONAL INTELLIGENCE]")
        assert '- When user is "worried" -> Use "reassuring" tone' in prompt
