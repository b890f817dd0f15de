"""
Tests for persona-driven prompt composition.

These tests verify that:
1. The enquiry prompt contains every labelled section in a fixed order
2. Character guidance overrides defaults field by field
3. The turn prompt targets exactly the parameter chosen by the planner
4. The introduction and fallback question are deterministic
"""

import pytest

from catalog.characters import CharacterRegistry
from catalog.parameters import ParameterRegistry
from engine.planner import Role, Turn
from engine.prompt_composer import (
    ENQUIRY_GUARDRAILS,
    build_guardrail_preamble,
    build_introduction,
    compose_enquiry_prompt,
    compose_turn_prompt,
    compose_user_prompt,
    fallback_question,
    resolve_guidance,
)

SECTION_ORDER = [
    "[ROLE]",
    "[PERSONA]",
    "[QUALIFICATION]",
    "[TONE]",
    "[LANGUAGE]",
    "[OPENING PHRASES]",
    "[EMOTIONAL INTELLIGENCE]",
    "[EQ MODULATION]",
    "[GUARDRAILS]",
    "[SIMPLICITY RULES]",
    "[QUESTION STYLE]",
    "[CONVERSATIONAL COLLECTION FLOW]",
    "[PARAMETER GUIDANCE]",
    "[STYLE]",
    "[OUTPUT]",
]


@pytest.fixture(scope="module")
def characters():
    return CharacterRegistry()


@pytest.fixture(scope="module")
def parameters():
    return ParameterRegistry()


@pytest.fixture
def ananya(characters):
    return characters.pick("interior_design")


class TestEnquiryPrompt:
    """Tests for compose_enquiry_prompt."""

    def test_sections_in_order(self, ananya, parameters):
        prompt = compose_enquiry_prompt(
            ananya, build_guardrail_preamble(ananya), parameters.get("interior_design")
        )
        positions = [prompt.index(section) for section in SECTION_ORDER]
        assert positions == sorted(positions)

    def test_role_line_names_character_and_region(self, ananya, parameters):
        prompt = compose_enquiry_prompt(ananya, "[GUARDRAILS]", parameters.get("interior_design"))
        assert prompt.startswith(
            "[ROLE] You are Ananya Rao - Interior Design Consultant, "
            "a interior_design consultant for home services in Karnataka, Bengaluru."
        )

    def test_every_parameter_listed_in_order(self, ananya, parameters):
        declared = parameters.get("interior_design")
        prompt = compose_enquiry_prompt(ananya, "[GUARDRAILS]", declared)
        assert f"You must collect these {len(declared)} key parameters" in prompt
        positions = [prompt.index(f"(ID: {p.id})") for p in declared]
        assert positions == sorted(positions)

    def test_secondary_languages_joined(self, ananya, parameters):
        prompt = compose_enquiry_prompt(ananya, "[GUARDRAILS]", parameters.get("interior_design"))
        assert "Secondary: Kannada/Hindi" in prompt

    def test_default_collection_flow_used_when_missing(self, characters, parameters):
        meera = characters.pick("painting")
        prompt = compose_enquiry_prompt(meera, "[GUARDRAILS]", parameters.get("painting"))
        assert "[CONVERSATIONAL COLLECTION FLOW] Ask questions one at a time" in prompt


class TestGuardrailPreamble:
    """Tests for build_guardrail_preamble."""

    def test_universal_rules_then_character_rules(self, ananya):
        preamble = build_guardrail_preamble(ananya)
        lines = preamble.splitlines()
        assert lines[0] == "[GUARDRAILS]"
        assert lines[1] == f"1. {ENQUIRY_GUARDRAILS[0]}"
        assert lines[-1] == f"{len(ENQUIRY_GUARDRAILS) + 1}. Do not recommend specific furniture brands"


class TestGuidance:
    """Tests for guidance resolution."""

    def test_character_override_wins(self, ananya, parameters):
        parameter = parameters.get_parameter("interior_design", "stylePreference")
        guidance = resolve_guidance(ananya, parameter)
        assert guidance.purpose == "Set the creative direction for the moodboard"
        assert guidance.validation.followUps == ["Any colours you definitely want to avoid?"]

    def test_unset_fields_keep_defaults(self, ananya, parameters):
        parameter = parameters.get_parameter("interior_design", "stylePreference")
        guidance = resolve_guidance(ananya, parameter)
        assert guidance.label == "Style Preference"

    def test_default_guidance_for_multi_select(self, characters, parameters):
        painter = characters.pick("painting")
        parameter = parameters.get_parameter("home_automation", "automationFocus")
        guidance = resolve_guidance(painter, parameter)
        assert guidance.responseType == "multiple choice"
        assert guidance.validation.rules[0].startswith("One of: Lighting & Ambience")


class TestTurnPrompt:
    """Tests for compose_turn_prompt."""

    def test_targets_given_parameter_with_options(self, characters, parameters):
        arjun = characters.pick("solar_services")
        parameter = parameters.get_parameter("solar_services", "desiredSolarType")
        turns = [Turn(role=Role.USER, text="it's a villa"), Turn(role=Role.ASSISTANT, text="Lovely.")]
        prompt = compose_turn_prompt(arjun, parameter, turns)

        assert 'ask ONE concise next question about "Desired Solar Type"' in prompt
        assert "(Options: On-grid | Hybrid | Off-grid | Not Sure)" in prompt
        assert "USER: it's a villa" in prompt
        assert "ASSISTANT: Lovely." in prompt
        assert "[CRITICAL GUARDRAILS]" in prompt
        assert "Do not quote subsidy amounts as guaranteed" in prompt

    def test_text_parameter_has_no_options(self, ananya, parameters):
        parameter = parameters.get_parameter("interior_design", "inspirationsMoodboard")
        prompt = compose_turn_prompt(ananya, parameter, [])
        assert "include exactly: (no options)" in prompt

    def test_guardrail_block_can_be_left_off(self, characters, parameters):
        arjun = characters.pick("solar_services")
        parameter = parameters.get_parameter("solar_services", "interestedInSubsidy")
        prompt = compose_turn_prompt(arjun, parameter, [], include_guardrails=False)
        assert "[CRITICAL GUARDRAILS]" not in prompt
        assert prompt.endswith("Keep it natural and warm.")

    def test_user_prompt_joins_transcript(self):
        turns = [Turn(role=Role.USER, text="hi"), Turn(role=Role.ASSISTANT, text="Hello")]
        assert compose_user_prompt(turns) == "hi\nHello"


class TestIntroductionAndFallback:
    """Tests for deterministic text."""

    def test_introduction_uses_first_name_and_role(self, ananya):
        assert build_introduction(ananya) == "Hello! I'm Ananya, your Interior Design Consultant."

    def test_introduction_without_role_suffix(self, ananya):
        plain = ananya.model_copy(update={"name": "Kiran"})
        assert build_introduction(plain) == "Hello! I'm Kiran, your interior design consultant."

    def test_fallback_question_uses_label(self, parameters):
        parameter = parameters.get_parameter("solar_services", "roofTypeOrientation")
        assert fallback_question(parameter) == "Could you tell me the roof type & orientation?"
