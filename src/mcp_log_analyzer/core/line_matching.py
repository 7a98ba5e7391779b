"""Cross-file exact-line matching.

Lines are normalized (timestamps, UUIDs, hex literals, pid/tid tokens and
bracketed counters removed, then lowercased) and grouped; a group is
reported when it shows up in at least two different files.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from .models import ExactLineMatch, LineCategory, LineOccurrence, LogText

MIN_LINE_LENGTH = 10
MAX_LINE_NUMBERS_PER_FILE = 10
MAX_MATCHES = 50
MIN_FILES_PER_MATCH = 2
# A lone shared line is usually boilerplate (banner, startup message).
MIN_MATCH_GROUPS = 2

_NUMERIC_ONLY_RE = re.compile(r"^\d+$")


@dataclass(frozen=True, slots=True)
class NormalizationRule:
    """One substitution step of line normalization."""

    name: str
    pattern: re.Pattern[str]
    replacement: str = ""

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


# Applied in order. The leading-timestamp rules are anchored to line start.
NORMALIZATION_RULES: tuple[NormalizationRule, ...] = (
    NormalizationRule(
        "iso_timestamp",
        re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}[.,]?\d*Z?\s*", re.IGNORECASE),
    ),
    NormalizationRule(
        "bracketed_iso_timestamp",
        re.compile(r"^\[\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}[.,]?\d*Z?\]\s*", re.IGNORECASE),
    ),
    NormalizationRule(
        "us_timestamp",
        re.compile(r"^\d{2}/\d{2}/\d{4}\s+\d{2}:\d{2}:\d{2}\s*"),
    ),
    NormalizationRule(
        "clock_time",
        re.compile(r"^\d{2}:\d{2}:\d{2}[.,]?\d*\s*"),
    ),
    NormalizationRule(
        "uuid",
        re.compile(
            r"\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b", re.IGNORECASE
        ),
    ),
    NormalizationRule("hex_literal", re.compile(r"\b0x[0-9a-f]+\b", re.IGNORECASE)),
    NormalizationRule("process_id", re.compile(r"\bpid[:\s]*\d+\b", re.IGNORECASE)),
    NormalizationRule("thread_id", re.compile(r"\btid[:\s]*\d+\b", re.IGNORECASE)),
    NormalizationRule("bracketed_number", re.compile(r"\[\d+\]")),
)

# First match wins.
_CATEGORY_RULES: tuple[tuple[LineCategory, re.Pattern[str]], ...] = (
    (LineCategory.ERROR, re.compile(r"\berror\b|\bfailed\b|\bexception\b|\bcrash\b|\bfatal\b")),
    (LineCategory.WARNING, re.compile(r"\bwarn(?:ing)?\b|\bcaution\b")),
    (LineCategory.INFO, re.compile(r"\binfo\b")),
    (LineCategory.DEBUG, re.compile(r"\bdebug\b|\btrace\b|\bverbose\b")),
)

CATEGORY_ORDER: dict[LineCategory, int] = {
    LineCategory.ERROR: 0,
    LineCategory.WARNING: 1,
    LineCategory.INFO: 2,
    LineCategory.DEBUG: 3,
    LineCategory.OTHER: 4,
}


def normalize_line(
    line: str, rules: Sequence[NormalizationRule] = NORMALIZATION_RULES
) -> str:
    """Strip volatile substrings from a trimmed line and lowercase it."""
    for rule in rules:
        line = rule.apply(line)
    return line.strip().lower()


def categorize_line(line: str) -> LineCategory:
    lower = line.lower()
    for category, pattern in _CATEGORY_RULES:
        if pattern.search(lower):
            return category
    return LineCategory.OTHER


@dataclass(slots=True)
class _LineGroup:
    original: str
    # file index -> 1-indexed line numbers (capped) and uncapped count
    line_numbers: dict[int, list[int]] = field(default_factory=dict)
    counts: dict[int, int] = field(default_factory=dict)

    def add(self, file_index: int, line_no: int, cap: int) -> None:
        numbers = self.line_numbers.setdefault(file_index, [])
        if len(numbers) < cap:
            numbers.append(line_no)
        self.counts[file_index] = self.counts.get(file_index, 0) + 1


def find_exact_line_matches(
    files: Sequence[LogText],
    *,
    rules: Sequence[NormalizationRule] = NORMALIZATION_RULES,
    min_files: int = MIN_FILES_PER_MATCH,
    min_groups: int = MIN_MATCH_GROUPS,
    max_matches: int = MAX_MATCHES,
    max_line_numbers: int = MAX_LINE_NUMBERS_PER_FILE,
) -> list[ExactLineMatch]:
    """Find normalized lines shared by two or more files.

    Results are ordered error, warning, info, debug, other, then by total
    occurrences descending. Fewer than ``min_groups`` qualifying lines yields
    an empty list.
    """
    if len(files) < 2:
        return []

    groups: dict[str, _LineGroup] = {}

    for file_index, f in enumerate(files):
        for line_no, raw in enumerate(f.content.split("\n"), start=1):
            original = raw.strip()
            if len(original) < MIN_LINE_LENGTH or _NUMERIC_ONLY_RE.match(original):
                continue

            normalized = normalize_line(original, rules)
            # Lines that were only a timestamp collapse to nothing.
            if len(normalized) < MIN_LINE_LENGTH:
                continue

            group = groups.get(normalized)
            if group is None:
                group = groups[normalized] = _LineGroup(original=original)
            group.add(file_index, line_no, max_line_numbers)

    matches: list[ExactLineMatch] = []
    for group in groups.values():
        if len(group.line_numbers) < min_files:
            continue
        matches.append(
            ExactLineMatch(
                line=group.original,
                occurrences=[
                    LineOccurrence(filename=files[i].filename, line_numbers=numbers)
                    for i, numbers in group.line_numbers.items()
                ],
                category=categorize_line(group.original),
                total_count=sum(group.counts.values()),
            )
        )

    if len(matches) < min_groups:
        return []

    matches.sort(key=lambda m: (CATEGORY_ORDER[m.category], -m.total_count))
    return matches[:max_matches]
