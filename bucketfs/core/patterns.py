"""
Ordered Path Pattern Rules

Pattern rules drive the URL policy: presigned delivery, forced download
("save as") and torrent eligibility. Each rule pairs a regular expression
with a value; a rule set is evaluated in declared order and the first rule
whose expression is found anywhere in the path wins.

Patterns are compiled as-is. No delimiter characters are spliced around
them, so anchors and alternation behave as ordinary regular expressions:

    >>> rules = parse_presign_lines("120|secure/\\n^private-.*\\.pdf$")
    >>> rules.first_match("secure/report.pdf").value
    120

Complexity: O(n * m) per lookup, n = rules, m = path length
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional

from bucketfs.core.constants import DEFAULT_PRESIGN_TIMEOUT_SECONDS
from bucketfs.core.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class PatternRule:
    """
    A compiled path pattern plus its associated value.

    Attributes:
        pattern: Regular expression source, searched within the path.
        value: Rule payload (presign timeout in seconds, or None).
    """

    pattern: str
    value: Any = None
    _compiled: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            compiled = re.compile(self.pattern)
        except re.error as e:
            raise ConfigurationError.invalid_setting(
                "pattern", self.pattern, f"not a valid regular expression ({e})", cause=e
            ) from e
        object.__setattr__(self, "_compiled", compiled)

    def matches(self, path: str) -> bool:
        return self._compiled.search(path) is not None


@dataclass(frozen=True, slots=True)
class PatternRuleSet:
    """Immutable, ordered collection of rules."""

    rules: tuple[PatternRule, ...] = ()

    @classmethod
    def of(cls, rules: Iterable[PatternRule]) -> PatternRuleSet:
        return cls(rules=tuple(rules))

    def first_match(self, path: str) -> Optional[PatternRule]:
        """Return the first rule matching `path`, or None."""
        for rule in self.rules:
            if rule.matches(path):
                return rule
        return None

    def __iter__(self) -> Iterator[PatternRule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __bool__(self) -> bool:
        return bool(self.rules)


# =============================================================================
# SETTINGS TEXT PARSING
# =============================================================================
def _lines(text: Optional[str]) -> list[str]:
    if not text:
        return []
    return [line.strip() for line in text.splitlines() if line.strip()]


def parse_rule_lines(text: Optional[str]) -> PatternRuleSet:
    """
    Parse a newline-delimited pattern list (torrent / save-as settings).

    Lines are trimmed; blank lines are skipped.
    """
    return PatternRuleSet.of(PatternRule(line) for line in _lines(text))


def parse_presign_lines(
    text: Optional[str],
    default_timeout: int = DEFAULT_PRESIGN_TIMEOUT_SECONDS,
) -> PatternRuleSet:
    """
    Parse presign settings, one `timeout|pattern` or bare `pattern` per line.

    The text before the first `|` is taken as the timeout only when it is an
    integer; otherwise the whole line is the pattern.

    Raises:
        ConfigurationError: If a timeout is not positive.
    """
    rules = []
    for line in _lines(text):
        timeout = default_timeout
        pattern = line
        head, sep, tail = line.partition("|")
        if sep and re.fullmatch(r"-?\d+", head.strip()):
            timeout = int(head.strip())
            pattern = tail.strip()
            if timeout <= 0:
                raise ConfigurationError.invalid_setting(
                    "presigned_urls", line, "timeout must be a positive number of seconds"
                )
        rules.append(PatternRule(pattern, timeout))
    return PatternRuleSet.of(rules)
