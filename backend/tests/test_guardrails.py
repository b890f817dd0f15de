"""
Tests for content-safety guardrails.

These tests verify that:
1. Each violation kind is detected from its table pattern
2. Repair removes the detected phrase and appends the disclaimer once
3. Compliant text passes through smart_repair unchanged
4. Unknown kinds reaching repair fail loudly
"""

import pytest

from engine import guardrails
from engine.guardrails import (
    GUARDRAIL_RULES,
    GuardrailTableError,
    RULES_BY_KIND,
    ViolationKind,
    create_report,
    preamble,
    preflight_prompt,
    repair,
    scan,
    scan_detailed,
    smart_repair,
    validate,
)


class TestRuleTable:
    """The rule table covers every violation kind."""

    def test_every_kind_has_a_rule(self):
        assert set(RULES_BY_KIND) == set(ViolationKind)
        assert len(GUARDRAIL_RULES) == len(ViolationKind)


class TestScan:
    """Tests for violation detection."""

    def test_exact_rupee_amount_detected(self):
        assert ViolationKind.PRICING_EXACT in scan("The full kitchen will cost ₹45,000.")

    def test_rs_amount_detected(self):
        assert ViolationKind.PRICING_EXACT in scan("Expect around Rs. 2,50,000 for this")

    def test_approval_guarantee_detected(self):
        kinds = scan("You will definitely get approval within a week.")
        assert ViolationKind.APPROVAL_GUARANTEE in kinds

    def test_legal_promise_detected(self):
        assert ViolationKind.LEGAL_PROMISE in scan("We guarantee permit clearance for you.")

    def test_privacy_leak_detected(self):
        assert ViolationKind.PRIVACY_LEAK in scan("Here is the admin portal password")

    def test_timeline_guarantee_detected(self):
        assert ViolationKind.TIMELINE_GUARANTEE in scan("It will be completed in 30 days")

    def test_unsafe_advice_detected(self):
        assert ViolationKind.UNSAFE_ADVICE in scan("You can skip inspection to save time")

    def test_vendor_bias_detected(self):
        assert ViolationKind.VENDOR_BIAS in scan("You must use brand Xyz panels")

    def test_ranges_without_currency_pass(self):
        assert scan("Most projects fall between 3 and 5 lakhs depending on scope.") == []

    def test_matches_are_deduplicated(self):
        details = scan_detailed("₹500 now and ₹500 later")
        assert details[0].matches == ["₹500"]


class TestRepair:
    """Tests for repair and smart_repair."""

    def test_pricing_repair_removes_amount(self):
        result = smart_repair("The full kitchen will cost ₹45,000.")
        assert result.changed is True
        assert "₹45,000" not in result.repaired
        rule = RULES_BY_KIND[ViolationKind.PRICING_EXACT]
        assert not rule.pattern.search(result.repaired)
        assert rule.disclaimer in result.repaired

    def test_compliant_text_unchanged(self):
        text = "Could you tell me the roof type?"
        result = smart_repair(text)
        assert result.repaired == text
        assert result.changed is False
        assert result.violations == []

    def test_shared_disclaimer_appended_once(self):
        text = "We guarantee approval and you will get permit soon."
        kinds = scan(text)
        assert ViolationKind.LEGAL_PROMISE in kinds
        assert ViolationKind.APPROVAL_GUARANTEE in kinds
        repaired = repair(text, kinds)
        disclaimer = RULES_BY_KIND[ViolationKind.APPROVAL_GUARANTEE].disclaimer
        assert repaired.count(disclaimer) == 1

    def test_disclaimer_separated_by_blank_line(self):
        repaired = repair("Cost is ₹900", [ViolationKind.PRICING_EXACT])
        assert "\n\n**Note:**" in repaired

    def test_unknown_kind_raises(self):
        with pytest.raises(GuardrailTableError):
            repair("text", ["made:up"])

    def test_missing_table_row_raises(self, monkeypatch):
        trimmed = dict(RULES_BY_KIND)
        del trimmed[ViolationKind.VENDOR_BIAS]
        monkeypatch.setattr(guardrails, "RULES_BY_KIND", trimmed)
        with pytest.raises(GuardrailTableError):
            repair("text", [ViolationKind.VENDOR_BIAS])


class TestReports:
    """Tests for validation, reporting and prompt helpers."""

    def test_validate_is_read_only(self):
        text = "It costs ₹1,000"
        report = validate(text)
        assert report.compliant is False
        assert report.issues[0].kind == ViolationKind.PRICING_EXACT

    def test_create_report_flags_high_severity(self):
        report = create_report("Send me the admin password")
        assert report["compliant"] is False
        assert report["requiresRepair"] is True
        assert report["violations"][0]["type"] == "privacy:leak"
        assert report["textLength"] == len("Send me the admin password")

    def test_preflight_warns_on_exact_price_request(self):
        result = preflight_prompt("Please tell exact price for this")
        assert result.safe is False
        assert result.warnings

    def test_preflight_clean_prompt(self):
        assert preflight_prompt("What roof do you have?").safe is True

    def test_preamble_lists_universal_then_extra(self):
        text = preamble(["No brand names"])
        lines = text.splitlines()
        assert lines[0] == "[CRITICAL GUARDRAILS]"
        assert lines[1].startswith("1. ")
        assert lines[-1].endswith("No brand names")
