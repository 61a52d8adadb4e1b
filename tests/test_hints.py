"""Tests for error classification."""

import pytest

from agentic_reporter.hints import DEFAULT_CLASSIFICATION, classify_error, rules_from_config
from agentic_reporter.models import HintRule


class TestClassifyError:
    """Tests for the built-in rule table."""

    @pytest.mark.parametrize("message,expected", [
        ("Timeout 30000ms exceeded", "timeout"),
        ("page.waitForSelector: waiting for selector '#id'", "timeout"),
        ("locator.click: element is not attached", "timeout"),
        ("expect(received).toBe(expected)", "assertion"),
        ("Expected: 'a' Received: 'b'", "assertion"),
        ("toBeVisible failed", "assertion"),
        ("toHaveURL mismatch", "assertion"),
        ("AssertionError: assert 1 == 2", "assertion"),
        ("Request failed with status code 500", "network"),
        ("status 403 Forbidden", "network"),
        ("GET /api/users returned 404", "network"),
        ("connect ECONNREFUSED 127.0.0.1:3000", "network"),
        ("fetch request failed", "network"),
        ("Test was interrupted", "interrupted"),
        ("Run cancelled by user", "interrupted"),
        ("Something weird happened", "unknown"),
    ])
    def test_categories(self, message, expected):
        assert classify_error(message).type == expected

    def test_case_insensitive(self):
        assert classify_error("TIMEOUT").type == "timeout"

    def test_first_match_wins(self):
        # matches both the timeout and the assertion rules
        result = classify_error("Timeout while waiting: expect(received).toBe")
        assert result.type == "timeout"

    def test_status_codes_need_word_boundary(self):
        assert classify_error("took 5000ms").type == "unknown"

    def test_empty_message(self):
        assert classify_error("") == DEFAULT_CLASSIFICATION
        assert classify_error(None) == DEFAULT_CLASSIFICATION

    def test_hint_text(self):
        result = classify_error("Timeout 30000ms exceeded")
        assert "Selector missing/hidden" in result.hint


class TestCustomRules:
    """Tests for user-supplied rules."""

    def test_custom_rule_takes_precedence(self):
        rule = HintRule(r"timeout", "infra", "The grid is overloaded.")
        result = classify_error("Timeout 30000ms exceeded", [rule])
        assert result.type == "infra"
        assert result.hint == "The grid is overloaded."

    def test_falls_back_to_builtin(self):
        rule = HintRule(r"database", "db", "Check the database.")
        assert classify_error("Timeout", [rule]).type == "timeout"

    def test_rules_from_config(self):
        rules = rules_from_config([
            {"pattern": "flaky backend", "type": "backend", "hint": "Retry later."},
            {"pattern": "quota", "category": "limits"},
        ])
        assert [r.category for r in rules] == ["backend", "limits"]
        assert rules[0].matches("FLAKY BACKEND detected")
        assert rules[1].hint == ""

    def test_rules_from_config_requires_pattern(self):
        with pytest.raises(KeyError):
            rules_from_config([{"type": "x"}])
