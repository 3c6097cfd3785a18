"""
Unit Tests: Pattern Rules

Tests:
    - First-match evaluation order
    - Presign line parsing (timeout prefix, default timeout)
    - Invalid expressions and timeouts
"""

import pytest

from bucketfs.core.constants import DEFAULT_PRESIGN_TIMEOUT_SECONDS
from bucketfs.core.errors import ConfigurationError
from bucketfs.core.patterns import (
    PatternRule,
    PatternRuleSet,
    parse_presign_lines,
    parse_rule_lines,
)


class TestPatternRuleSet:
    """Tests for ordered evaluation."""

    def test_first_match_wins(self):
        rules = PatternRuleSet.of([
            PatternRule("secure/", 120),
            PatternRule("\\.pdf$", 30),
        ])
        assert rules.first_match("secure/report.pdf").value == 120
        assert rules.first_match("docs/report.pdf").value == 30
        assert rules.first_match("docs/report.txt") is None

    def test_search_not_fullmatch(self):
        assert PatternRule("video").matches("media/video/intro.mp4")

    def test_anchors_respected(self):
        rule = PatternRule("^videos/")
        assert rule.matches("videos/a.mp4")
        assert not rule.matches("old/videos/a.mp4")

    def test_empty_set(self):
        rules = PatternRuleSet()
        assert not rules
        assert len(rules) == 0
        assert rules.first_match("anything") is None

    def test_invalid_expression(self):
        with pytest.raises(ConfigurationError):
            PatternRule("([unclosed")


class TestParsing:
    """Tests for settings text parsing."""

    def test_rule_lines_skip_blanks(self):
        rules = parse_rule_lines("  ^videos/ \n\n\\.iso$\n")
        assert [r.pattern for r in rules] == ["^videos/", "\\.iso$"]

    def test_rule_lines_empty(self):
        assert len(parse_rule_lines(None)) == 0
        assert len(parse_rule_lines("")) == 0

    def test_presign_with_timeout(self):
        rules = parse_presign_lines("120|secure/")
        rule = rules.first_match("secure/a.pdf")
        assert rule.value == 120
        assert rule.pattern == "secure/"

    def test_presign_default_timeout(self):
        rules = parse_presign_lines("^private-")
        assert rules.first_match("private-a.pdf").value == DEFAULT_PRESIGN_TIMEOUT_SECONDS

    def test_presign_pipe_inside_pattern(self):
        rules = parse_presign_lines("a|b")
        rule = list(rules)[0]
        assert rule.pattern == "a|b"
        assert rule.value == DEFAULT_PRESIGN_TIMEOUT_SECONDS
        assert rules.first_match("xb") is rule

    def test_presign_non_positive_timeout(self):
        with pytest.raises(ConfigurationError):
            parse_presign_lines("0|secure/")
        with pytest.raises(ConfigurationError):
            parse_presign_lines("-5|secure/")
