"""Parsing of titled-section model responses.

Responses are expected to look like::

    ## PATTERNS
    - item
    ## ANOMALIES
    1. item
    ## ROOT CAUSES
    **Item**: description
    ## SUMMARY
    free text

Sections may appear in any order and any subset; anything off-format simply
produces empty fields.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from .models import LogAnalysisResult, SimilarityResult


def _section_re(label: str) -> re.Pattern[str]:
    """Match a ``##`` heading for ``label`` and capture its body up to the next ``##``.

    Text after ``label:`` on the heading line belongs to the body; any other
    trailing heading text (``## PATTERNS DETECTED``) does not.
    """
    return re.compile(
        rf"^[ \t]*\#{{2,}}[ \t*]*{label}\b(?:[ \t*]*:|[^\n]*)(?P<body>.*?)(?=^[ \t]*\#{{2,}}|\Z)",
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )


ANALYSIS_SECTIONS: Mapping[str, re.Pattern[str]] = {
    "patterns": _section_re(r"PATTERNS?"),
    "anomalies": _section_re(r"ANOMAL(?:Y|IES)"),
    "root_causes": _section_re(r"ROOT[ \t]*CAUSES?"),
    "summary": _section_re(r"SUMMARY"),
}

SIMILARITY_SECTIONS: Mapping[str, re.Pattern[str]] = {
    "shared_patterns": _section_re(r"SHARED[ \t]+PATTERNS?"),
    "shared_anomalies": _section_re(r"SHARED[ \t]+ANOMAL(?:Y|IES)"),
    "shared_root_causes": _section_re(r"SHARED[ \t]+ROOT[ \t]*CAUSES?"),
    "correlations": _section_re(r"CORRELATIONS?"),
}

# A leading "**" is bold text, not a bullet.
_BULLET_RE = re.compile(r"^[-*•](?!\*)\s*(.+)")
_NUMBERED_RE = re.compile(r"^\d+[.)]\s*(.+)")
_BOLD_RE = re.compile(r"^\*\*(.+?)\*\*[:\s]*(.*)")
_BRACKETED_RE = re.compile(r"^\[.+\]$")

_NEGATIVE_PHRASES = frozenset({"none found", "no patterns", "no anomalies", "no root causes"})


def find_sections(content: str, sections: Mapping[str, re.Pattern[str]]) -> dict[str, str]:
    """Return the raw body of each section found, keyed like ``sections``."""
    found: dict[str, str] = {}
    for key, pattern in sections.items():
        m = pattern.search(content)
        if m:
            found[key] = m.group("body")
    return found


def _is_placeholder(item: str) -> bool:
    lowered = item.lower()
    return (
        "[List" in item
        or "list here" in lowered
        or _BRACKETED_RE.match(item) is not None
        or lowered.rstrip(".") in _NEGATIVE_PHRASES
    )


def extract_list_items(text: str) -> list[str]:
    """Extract list entries from bullet, numbered, bold-header or bare-line text.

    Indented lines continue the open item. Template placeholders and
    "nothing found" phrases are dropped; duplicates are kept.
    """
    items: list[str] = []
    current: str | None = None

    def flush() -> None:
        nonlocal current
        if current is not None:
            items.append(current.strip())
            current = None

    for line in text.split("\n"):
        trimmed = line.strip()

        if not trimmed:
            flush()
            continue

        m = _BULLET_RE.match(trimmed) or _NUMBERED_RE.match(trimmed)
        if m:
            flush()
            current = m.group(1)
            continue

        m = _BOLD_RE.match(trimmed)
        if m:
            flush()
            phrase, description = m.group(1), m.group(2)
            current = f"**{phrase}**: {description}" if description else phrase
            continue

        if current is not None and line.startswith(("  ", "\t")):
            current = f"{current} {trimmed}"
            continue

        if current is None and not trimmed.startswith("#"):
            current = trimmed

    flush()

    return [item for item in items if item and not _is_placeholder(item)]


def parse_analysis_response(content: str) -> LogAnalysisResult:
    """Parse a PATTERNS/ANOMALIES/ROOT CAUSES/SUMMARY response."""
    found = find_sections(content, ANALYSIS_SECTIONS)
    return LogAnalysisResult(
        patterns=extract_list_items(found.get("patterns", "")),
        anomalies=extract_list_items(found.get("anomalies", "")),
        root_causes=extract_list_items(found.get("root_causes", "")),
        summary=found.get("summary", "").strip(),
    )


def parse_similarities_response(content: str) -> SimilarityResult:
    """Parse a SHARED PATTERNS/SHARED ANOMALIES/SHARED ROOT CAUSES/CORRELATIONS response."""
    found = find_sections(content, SIMILARITY_SECTIONS)
    return SimilarityResult(
        **{key: extract_list_items(found.get(key, "")) for key in SIMILARITY_SECTIONS}
    )


def _format_list(items: Sequence[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def format_analysis_sections(result: LogAnalysisResult) -> str:
    """Render a result back into the section format ``parse_analysis_response`` reads."""
    return (
        f"## PATTERNS\n{_format_list(result.patterns)}\n\n"
        f"## ANOMALIES\n{_format_list(result.anomalies)}\n\n"
        f"## ROOT CAUSES\n{_format_list(result.root_causes)}\n\n"
        f"## SUMMARY\n{result.summary}\n"
    )
