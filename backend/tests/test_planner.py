"""
Tests for the parameter registry and the deterministic planner.

These tests verify that:
1. Every service declares unique parameter ids in a fixed order
2. next_missing_parameter is strictly positional for every prefix of slots
3. The first user message is a trigger only and never fills a slot
4. Empty replies keep the slot open and count re-prompts
5. Completion produces exactly one completion event with the captured slots
"""

import pytest

from catalog.parameters import (
    SERVICE_PARAMETERS,
    ParameterDefinition,
    ParameterRegistry,
    ParameterType,
)
from engine.planner import (
    Role,
    SessionStatus,
    TurnAction,
    apply_user_turn,
    get_missing_parameters,
    is_first_assistant_reply,
    next_missing_parameter,
    record_assistant_turn,
    start_session,
)


@pytest.fixture
def registry():
    return ParameterRegistry()


def _collecting(service: str, registry: ParameterRegistry):
    """A session that has already received its trigger message."""
    session = start_session(service, "char_test")
    return apply_user_turn(session, "hi", registry).session


class TestParameterRegistry:
    """Tests for the declarative parameter tables."""

    def test_all_services_registered(self, registry):
        assert set(registry.services()) == {
            "interior_design",
            "construction",
            "home_automation",
            "painting",
            "solar_services",
            "electrical_services",
        }

    def test_parameter_ids_unique_per_service(self, registry):
        for service in registry.services():
            ids = registry.get_parameter_ids(service)
            assert len(ids) == len(set(ids)), f"{service} has duplicate ids"

    def test_choice_parameters_have_options(self):
        for service, parameters in SERVICE_PARAMETERS.items():
            for parameter in parameters:
                if parameter.type == ParameterType.CHOICE:
                    assert parameter.options, f"{service}.{parameter.id} has no options"

    def test_solar_order_starts_with_property_then_roof(self, registry):
        ids = registry.get_parameter_ids("solar_services")
        assert ids[:2] == ["propertyType", "roofTypeOrientation"]

    def test_automation_focus_allows_multiple(self, registry):
        parameter = registry.get_parameter("home_automation", "automationFocus")
        assert parameter.allow_multiple is True

    def test_unknown_service_is_empty(self, registry):
        assert registry.get("plumbing") == []
        assert registry.get_parameter("plumbing", "anything") is None

    def test_duplicate_ids_rejected(self):
        duplicate = ParameterDefinition(id="a", label="A", type=ParameterType.TEXT, goal="g")
        with pytest.raises(ValueError, match="Duplicate parameter ids"):
            ParameterRegistry({"svc": [duplicate, duplicate]})


class TestNextMissingParameter:
    """Tests for positional slot selection."""

    def test_every_prefix_returns_next_declared_id(self, registry):
        """For each service, filling the first k slots makes slot k the next one."""
        for service in registry.services():
            parameters = registry.get(service)
            for k in range(len(parameters) + 1):
                collected = {p.id: "x" for p in parameters[:k]}
                expected = parameters[k].id if k < len(parameters) else None
                assert next_missing_parameter(parameters, collected) == expected

    def test_out_of_order_slot_is_skipped(self, registry):
        parameters = registry.get("solar_services")
        collected = {"roofTypeOrientation": "Metal sheet roof"}
        assert next_missing_parameter(parameters, collected) == "propertyType"
        collected["propertyType"] = "villa"
        assert next_missing_parameter(parameters, collected) == "availableRoofAreaSqft"

    def test_false_and_zero_count_as_filled(self, registry):
        parameters = registry.get("solar_services")
        collected = {p.id: "x" for p in parameters}
        collected["backupRequirement"] = False
        collected["monthlyBillInr"] = 0
        assert next_missing_parameter(parameters, collected) is None

    def test_none_counts_as_missing(self, registry):
        parameters = registry.get("painting")
        collected = {parameters[0].id: None}
        assert next_missing_parameter(parameters, collected) == parameters[0].id

    def test_get_missing_parameters_in_order(self, registry):
        parameters = registry.get("solar_services")
        collected = {"propertyType": "villa"}
        missing = get_missing_parameters(parameters, collected)
        assert missing[0] == "roofTypeOrientation"
        assert len(missing) == len(parameters) - 1


class TestApplyUserTurn:
    """Tests for session transitions."""

    def test_start_session_is_new_and_empty(self):
        session = start_session("painting", "char_painting_meera", channel="web", user_ref="u1")
        assert session.status == SessionStatus.NEW
        assert session.transcript == []
        assert session.parameters == {}
        assert session.id.startswith("q_")
        assert session.channel == "web"

    def test_first_message_is_trigger_only(self, registry):
        session = start_session("solar_services", "char_solar_arjun")
        outcome = apply_user_turn(session, "Independent House", registry)

        assert outcome.trigger_only is True
        assert outcome.action == TurnAction.ASK_QUESTION
        assert outcome.session.status == SessionStatus.COLLECTING
        assert outcome.session.parameters == {}
        assert outcome.next_parameter == "propertyType"
        assert outcome.answered_parameter is None

    def test_input_session_not_mutated(self, registry):
        session = start_session("solar_services", "char_solar_arjun")
        apply_user_turn(session, "hello", registry)
        assert session.status == SessionStatus.NEW
        assert session.transcript == []

    def test_solar_end_to_end_first_slot(self, registry):
        """propertyType is asked first and an independent house fills it."""
        session = _collecting("solar_services", registry)
        assert next_missing_parameter(registry.get("solar_services"), session.parameters) == "propertyType"

        outcome = apply_user_turn(session, "it's an independent house for my home", registry)

        assert outcome.answered_parameter == "propertyType"
        assert outcome.session.parameters["propertyType"] == "independent house"
        assert outcome.next_parameter == "roofTypeOrientation"

    def test_empty_reply_reasks_same_parameter(self, registry):
        session = _collecting("solar_services", registry)
        outcome = apply_user_turn(session, "   ", registry)

        assert outcome.session.parameters == {}
        assert outcome.next_parameter == "propertyType"
        assert outcome.session.reprompt_count == 1
        assert outcome.stalled is False

    def test_reprompt_cap_flags_stalled(self, registry):
        session = _collecting("painting", registry)
        session = apply_user_turn(session, "", registry, max_reprompts=2).session
        outcome = apply_user_turn(session, "", registry, max_reprompts=2)
        assert outcome.stalled is True
        assert outcome.action == TurnAction.ASK_QUESTION

    def test_successful_answer_resets_reprompts(self, registry):
        session = _collecting("painting", registry)
        session = apply_user_turn(session, "", registry).session
        outcome = apply_user_turn(session, "something", registry)
        assert outcome.session.reprompt_count == 0

    def test_completion_emits_event(self, registry):
        session = _collecting("electrical_services", registry)
        for parameter in registry.get("electrical_services"):
            outcome = apply_user_turn(session, parameter.options[0], registry)
            session = outcome.session

        assert outcome.action == TurnAction.COMPLETE
        assert session.status == SessionStatus.COMPLETED
        assert outcome.completion is not None
        payload = outcome.completion.payload()
        assert payload["sessionId"] == session.id
        assert payload["service"] == "electrical_services"
        assert payload["parameters"]["timeline"] == "ASAP"
        assert "completedAt" in payload

    def test_completed_session_ignores_turns(self, registry):
        session = _collecting("electrical_services", registry)
        for parameter in registry.get("electrical_services"):
            session = apply_user_turn(session, parameter.options[0], registry).session

        outcome = apply_user_turn(session, "one more thing", registry)
        assert outcome.action == TurnAction.COMPLETE
        assert outcome.completion is None
        assert outcome.session.transcript == session.transcript

    def test_status_never_regresses(self, registry):
        session = start_session("painting", "char_painting_meera")
        seen = [session.status]
        for text in ["hi", "", "Interior", "x"]:
            session = apply_user_turn(session, text, registry).session
            seen.append(session.status)
        order = [SessionStatus.NEW, SessionStatus.COLLECTING, SessionStatus.COMPLETED]
        indices = [order.index(s) for s in seen]
        assert indices == sorted(indices)


class TestAssistantTurns:
    """Tests for assistant turn bookkeeping."""

    def test_first_assistant_reply_flag(self, registry):
        session = _collecting("painting", registry)
        assert is_first_assistant_reply(session) is True
        session = record_assistant_turn(session, "Hello!")
        assert is_first_assistant_reply(session) is False
        assert session.turns(Role.ASSISTANT)[0].text == "Hello!"
