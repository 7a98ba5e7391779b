"""Issue suggestions derived from analysis findings and raw error lines."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from urllib.parse import quote

from pydantic import TypeAdapter, ValidationError

from ..config import AnalyzerConfig, resolve_analyzer_config
from ..errors import NotInitializedError
from ..models import FileAnalysisResult, LogAnalysisResult
from ..oracle.base import Oracle
from ..oracle.gemini import GeminiOracle
from .models import GitHubIssue, IssueSuggestion
from .prompt import build_issue_suggestion_prompt
from .search import GitHubIssueSearch, IssueSearch, build_search_query

logger = logging.getLogger(__name__)

MAX_SIGNATURES = 10
MAX_ERROR_LINES = 20
SHORT_FINDING_LENGTH = 100

_SIGNATURE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"Error:\s*.+", re.IGNORECASE),
    re.compile(r"Exception:\s*.+", re.IGNORECASE),
    re.compile(r"ECONNREFUSED\s*\S+", re.IGNORECASE),
    re.compile(r"ETIMEDOUT\s*\S+", re.IGNORECASE),
    re.compile(r"ENOTFOUND\s*\S+", re.IGNORECASE),
    re.compile(r"ENOMEM", re.IGNORECASE),
    re.compile(r"OOM", re.IGNORECASE),
    re.compile(r"timeout", re.IGNORECASE),
    re.compile(r"failed to\s+.+", re.IGNORECASE),
    re.compile(r"cannot\s+.+", re.IGNORECASE),
    re.compile(r"unable to\s+.+", re.IGNORECASE),
    re.compile(r"\b[A-Z][A-Z0-9_]+Error\b"),
    re.compile(r"HTTP\s*(?:4\d{2}|5\d{2})", re.IGNORECASE),
    re.compile(r"status\s*code\s*(?:4\d{2}|5\d{2})", re.IGNORECASE),
)

_ERROR_LINE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\berror\b", re.IGNORECASE),
    re.compile(r"\bexception\b", re.IGNORECASE),
    re.compile(r"\bfailed\b", re.IGNORECASE),
    re.compile(r"\bfailure\b", re.IGNORECASE),
    re.compile(r"\bcrash(?:ed)?\b", re.IGNORECASE),
    re.compile(r"\bfatal\b", re.IGNORECASE),
    re.compile(r"\bE[A-Z]{4,}"),  # ECONNREFUSED, ETIMEDOUT, ...
    re.compile(r"\bHTTP\s*[45]\d{2}\b", re.IGNORECASE),
    re.compile(r"\bstatus\s*code\s*[45]\d{2}\b", re.IGNORECASE),
    re.compile(r"\bpanic\b", re.IGNORECASE),
    re.compile(r"\bsegfault\b", re.IGNORECASE),
    re.compile(r"\bcannot\b", re.IGNORECASE),
    re.compile(r"\bunable to\b", re.IGNORECASE),
)

_LEADING_TIMESTAMP_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}[.,]?\d*Z?\s*", re.IGNORECASE),
    re.compile(r"^\[\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}[.,]?\d*Z?\]\s*", re.IGNORECASE),
    re.compile(r"^\d{2}:\d{2}:\d{2}[.,]?\d*\s*"),
)

_LEVEL_PREFIX_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\[(?:ERROR|WARN|INFO|DEBUG)\]\s*", re.IGNORECASE),
    re.compile(r"^(?:ERROR|WARN|INFO|DEBUG)[:\s]+", re.IGNORECASE),
)

_ERROR_CODE_RE = re.compile(r"\b(E[A-Z]{4,})\b")
_HTTP_STATUS_RE = re.compile(r"HTTP\s*([45]\d{2})", re.IGNORECASE)
_EXCEPTION_TYPE_RE = re.compile(r"\b(\w+(?:Exception|Error|Failure))\b")
_JSON_FENCE_RE = re.compile(r"```json\s*(.*?)```", re.DOTALL)
_URL_UNSAFE_RE = re.compile(r"[^\w\s\-:]")

_SUGGESTIONS = TypeAdapter(list[IssueSuggestion])


def _dedupe(items: list[str], limit: int) -> list[str]:
    return list(dict.fromkeys(items))[:limit]


def extract_error_signatures(result: LogAnalysisResult) -> list[str]:
    """Collect short error-like strings from the findings."""
    signatures: list[str] = []

    def matches(text: str) -> list[str]:
        return [m.group(0) for p in _SIGNATURE_PATTERNS for m in p.finditer(text)]

    for anomaly in result.anomalies:
        signatures.extend(matches(anomaly))
        if len(anomaly) < SHORT_FINDING_LENGTH:
            signatures.append(anomaly)

    for cause in result.root_causes:
        if len(cause) < SHORT_FINDING_LENGTH:
            signatures.append(cause)

    for pattern in result.patterns:
        signatures.extend(matches(pattern))
        if len(pattern) < SHORT_FINDING_LENGTH and "error" in pattern.lower():
            signatures.append(pattern)

    if not signatures and result.summary:
        signatures.extend(matches(result.summary))

    return _dedupe(signatures, MAX_SIGNATURES)


def extract_exact_error_lines(content: str) -> list[str]:
    """Return error-looking raw lines with leading timestamps removed."""
    lines: list[str] = []
    for raw in content.split("\n"):
        trimmed = raw.strip()
        if len(trimmed) < 10 or len(trimmed) > 200:
            continue
        if not any(p.search(trimmed) for p in _ERROR_LINE_PATTERNS):
            continue

        cleaned = trimmed
        for ts in _LEADING_TIMESTAMP_RES:
            cleaned = ts.sub("", cleaned)
        cleaned = cleaned.strip()
        if len(cleaned) >= 10:
            lines.append(cleaned)

    return _dedupe(lines, MAX_ERROR_LINES)


def extract_search_terms_from_line(line: str) -> str | None:
    """Pick the most searchable fragment of an error line."""
    cleaned = line
    for prefix in _LEVEL_PREFIX_RES:
        cleaned = prefix.sub("", cleaned)
    cleaned = cleaned.strip()

    m = _ERROR_CODE_RE.search(cleaned)
    if m:
        snippet = cleaned[m.start(1) : m.start(1) + 50]
        return " ".join(snippet.split()[:4])

    m = _HTTP_STATUS_RE.search(cleaned)
    if m:
        return f"HTTP {m.group(1)} {cleaned[:30]}".strip()

    m = _EXCEPTION_TYPE_RE.search(cleaned)
    if m:
        start = max(0, m.start(1) - 10)
        return cleaned[start : m.end(1) + 30].strip()[:60]

    words = [w for w in cleaned.split() if len(w) > 2]
    if len(words) >= 3:
        return " ".join(words[:5])
    return None


def parse_issue_suggestions(content: str) -> list[IssueSuggestion]:
    """Read the model's JSON array; anything malformed yields ``[]``."""
    m = _JSON_FENCE_RE.search(content)
    candidates = [m.group(1)] if m else []
    candidates.append(content)

    for candidate in candidates:
        try:
            return _SUGGESTIONS.validate_json(candidate.strip())
        except ValidationError:
            continue

    logger.warning("Failed to parse issue suggestions from model response")
    return []


def generate_search_url(error_message: str, repository: str | None = None) -> str:
    """Build a github.com issue search URL for an error message."""
    terms = " ".join(_URL_UNSAFE_RE.sub(" ", error_message).split())[:100]
    query = build_search_query(terms, repository)
    return f"https://github.com/search?q={quote(query, safe='')}&type=issues"


def _word_overlap(a: str, b: str) -> int:
    b_words = set(b.lower().split())
    return sum(1 for w in a.lower().split() if w in b_words)


class IssueSuggester:
    """Turn findings into issue searches and link matching GitHub issues."""

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        *,
        oracle_factory: Callable[[AnalyzerConfig], Oracle] = GeminiOracle,
        searcher: IssueSearch | None = None,
    ) -> None:
        self._cfg = resolve_analyzer_config(config)
        self._oracle_factory = oracle_factory
        self._searcher = searcher if searcher is not None else GitHubIssueSearch()
        self._oracle: Oracle | None = None

    async def initialize(self) -> None:
        if self._oracle is None:
            self._oracle = self._oracle_factory(self._cfg)

    async def cleanup(self) -> None:
        if self._oracle is not None:
            await self._oracle.close()
            self._oracle = None

    async def __aenter__(self) -> IssueSuggester:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.cleanup()

    async def suggest_issues(
        self,
        analysis: LogAnalysisResult,
        *,
        repository_hint: str | None = None,
        fetch_real_issues: bool = True,
        raw_log_content: str | None = None,
    ) -> list[IssueSuggestion]:
        if self._oracle is None:
            raise NotInitializedError("Suggester not initialized. Call initialize() first.")

        signatures = extract_error_signatures(analysis)
        error_lines = extract_exact_error_lines(raw_log_content) if raw_log_content else []
        if not signatures and not error_lines:
            return []

        prompt = build_issue_suggestion_prompt(
            analysis,
            error_signatures=signatures,
            exact_error_lines=error_lines,
            repository_hint=repository_hint,
        )
        resp = await self._oracle.send_and_wait(prompt)
        if not resp.content.strip():
            return []

        suggestions = parse_issue_suggestions(resp.content)
        if not fetch_real_issues:
            return suggestions

        return [
            s.model_copy(
                update={"linked_issues": await self._link_issues(s, error_lines, repository_hint)}
            )
            for s in suggestions
        ]

    async def _link_issues(
        self,
        suggestion: IssueSuggestion,
        error_lines: list[str],
        repository: str | None,
    ) -> list[GitHubIssue]:
        issues = await self._searcher.search(suggestion.error_signature, repository, 5)

        if not issues and suggestion.search_query != suggestion.error_signature:
            issues = await self._searcher.search(suggestion.search_query, repository, 5)

        if not issues:
            for line in error_lines:
                if _word_overlap(line, suggestion.error_signature) < 2:
                    continue
                terms = extract_search_terms_from_line(line)
                if terms:
                    issues = await self._searcher.search(terms, repository, 5)
                    if issues:
                        break

        return issues


def combine_file_analyses(file_results: Sequence[FileAnalysisResult]) -> LogAnalysisResult:
    """Concatenate per-file findings into one analysis for suggestion."""
    return LogAnalysisResult(
        patterns=[p for f in file_results for p in f.analysis.patterns],
        anomalies=[a for f in file_results for a in f.analysis.anomalies],
        root_causes=[r for f in file_results for r in f.analysis.root_causes],
        summary="\n\n".join(f.analysis.summary for f in file_results),
    )


def attribute_source_files(
    suggestion: IssueSuggestion, file_results: Sequence[FileAnalysisResult]
) -> list[str]:
    """Name the files whose findings mention a suggestion's error signature."""
    signature = suggestion.error_signature.lower()
    sig_words = [w for w in signature.split() if len(w) > 3]
    needed = min(2, len(sig_words))

    sources: list[str] = []
    for f in file_results:
        a = f.analysis
        text = " ".join([*a.patterns, *a.anomalies, *a.root_causes, a.summary]).lower()
        score = sum(1 for w in sig_words if w in text)
        if signature in text or (sig_words and score >= needed):
            sources.append(f.filename)

    if not sources:
        for f in file_results:
            a = f.analysis
            for item in (*a.patterns, *a.anomalies, *a.root_causes):
                key = item.strip().lower()
                if key in signature or signature in key or (key and key[:50] in signature):
                    sources.append(f.filename)
                    break

    if not sources and len(file_results) == 1:
        sources.append(file_results[0].filename)
    return list(dict.fromkeys(sources))
