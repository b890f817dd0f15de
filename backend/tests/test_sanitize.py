"""
Tests for the assistant output sanitizer.

These tests verify that:
1. Role labels, dashes and extra whitespace are removed
2. Option listings are stripped while prose mentioning an option survives
"""

from engine.sanitize import sanitize_assistant, strip_option_phrases

OPTIONS = ["On-grid", "Hybrid", "Off-grid", "Not Sure"]


class TestSanitizeAssistant:
    """Tests for sanitize_assistant."""

    def test_strips_leading_role_prefix(self):
        assert sanitize_assistant("assistant: What is the roof type?") == "What is the roof type?"

    def test_strips_role_prefix_on_each_line(self):
        assert sanitize_assistant("Great.\nuser: hi\nAssistant: Next?") == "Great.\nhi\nNext?"

    def test_replaces_dashes_and_collapses_whitespace(self):
        assert sanitize_assistant("Lovely  choice — modern   lines") == "Lovely choice modern lines"

    def test_none_safe(self):
        assert sanitize_assistant(None) == ""


class TestStripOptionPhrases:
    """Tests for strip_option_phrases."""

    def test_leading_options_clause_removed(self):
        result = strip_option_phrases("Options: A | B | C. Do you prefer A?", ["A", "B", "C"])
        assert result == "Do you prefer A?"

    def test_inline_options_annotation_removed(self):
        text = "Which system suits you? (Options: On-grid | Hybrid | Off-grid | Not Sure)"
        assert strip_option_phrases(text, OPTIONS) == "Which system suits you?"

    def test_option_only_lines_removed(self):
        text = "Which system suits you?\n- On-grid\n- Hybrid\n- Off-grid\n- Not Sure"
        assert strip_option_phrases(text, OPTIONS) == "Which system suits you?"

    def test_enumerating_line_removed(self):
        text = "Which system suits you?\nOn-grid, Hybrid, Off-grid or Not Sure"
        assert strip_option_phrases(text, OPTIONS) == "Which system suits you?"

    def test_trailing_run_removed_keeps_punctuation(self):
        text = "Which system suits you: On-grid, Hybrid or Off-grid?"
        assert strip_option_phrases(text, OPTIONS) == "Which system suits you?"

    def test_prose_mentioning_one_option_kept(self):
        text = "A hybrid setup keeps lights on during cuts. Is Hybrid what you want?"
        assert strip_option_phrases(text, OPTIONS) == text

    def test_without_options_only_annotations_removed(self):
        text = "Choose from: red, blue.\nWhat colour do you like?"
        assert strip_option_phrases(text) == "What colour do you like?"

    def test_trailing_run_takes_its_label(self):
        options = ["Home", "Apartment", "Villa/Farmhouse"]
        text = "What is your space type? Options: Home, Apartment, Villa/Farmhouse"
        assert strip_option_phrases(text, options) == "What is your space type?"
