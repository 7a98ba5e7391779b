from __future__ import annotations

from collections.abc import Callable
from urllib.parse import unquote

import pytest

from mcp_log_analyzer.core.config import AnalyzerConfig
from mcp_log_analyzer.core.errors import NotInitializedError
from mcp_log_analyzer.core.issues import (
    GitHubIssue,
    IssueSuggester,
    IssueSuggestion,
    attribute_source_files,
    combine_file_analyses,
    extract_error_signatures,
    extract_exact_error_lines,
    extract_search_terms_from_line,
    generate_search_url,
    parse_issue_suggestions,
)
from mcp_log_analyzer.core.models import FileAnalysisResult, LogAnalysisResult

SUGGESTION_JSON = """Here you go:
```json
[
  {
    "errorSignature": "ECONNREFUSED 127.0.0.1:5432",
    "searchQuery": "postgres ECONNREFUSED",
    "description": "Database refused the connection",
    "potentialSolutions": ["Start PostgreSQL"]
  }
]
```
"""


class FakeSearch:
    def __init__(self, results: dict[str, list[GitHubIssue]]) -> None:
        self.results = results
        self.queries: list[tuple[str, str | None, int]] = []

    async def search(self, terms: str, repository: str | None = None, limit: int = 3) -> list[GitHubIssue]:
        self.queries.append((terms, repository, limit))
        return self.results.get(terms, [])


def _issue(number: int) -> GitHubIssue:
    return GitHubIssue(
        number=number,
        title=f"Issue {number}",
        url=f"https://github.com/o/r/issues/{number}",
        state="open",
        repository="o/r",
    )


ANALYSIS = LogAnalysisResult(
    patterns=["Repeated Error: connection reset by peer", "health checks every 30s"],
    anomalies=["connect ECONNREFUSED 127.0.0.1:5432 during startup"],
    root_causes=["PostgreSQL is not running"],
    summary="Database unavailable.",
)


def test_error_signatures_from_findings() -> None:
    signatures = extract_error_signatures(ANALYSIS)

    assert "ECONNREFUSED 127.0.0.1:5432" in signatures
    assert "connect ECONNREFUSED 127.0.0.1:5432 during startup" in signatures
    assert "PostgreSQL is not running" in signatures
    assert "Repeated Error: connection reset by peer" in signatures
    assert "health checks every 30s" not in signatures
    assert len(signatures) == len(set(signatures)) <= 10


def test_error_signatures_fall_back_to_summary() -> None:
    result = LogAnalysisResult(summary="Workers failed to start after deploy.")

    assert extract_error_signatures(result) == ["failed to start after deploy."]


def test_exact_error_lines_strip_timestamps_and_dedupe() -> None:
    content = "\n".join(
        [
            "2024-01-01T00:00:00Z ERROR db down",
            "2024-01-01T00:00:05Z ERROR db down",
            "[2024-01-01 00:00:06] request failed with HTTP 503",
            "INFO all good here",
            "short err",
            "x" * 250 + " error",
        ]
    )

    assert extract_exact_error_lines(content) == [
        "ERROR db down",
        "request failed with HTTP 503",
    ]


@pytest.mark.parametrize(
    ("line", "terms"),
    [
        ("ERROR: connect ECONNREFUSED 127.0.0.1:5432 now", "ECONNREFUSED 127.0.0.1:5432 now"),
        ("[ERROR] upstream returned HTTP 502", "HTTP 502 upstream returned HTTP 502"),
        ("worker raised ValueError: bad input", "er raised ValueError: bad input"),
        ("disk quota exceeded on volume", "disk quota exceeded volume"),
        ("no", None),
    ],
)
def test_search_terms_from_line(line: str, terms: str | None) -> None:
    assert extract_search_terms_from_line(line) == terms


def test_parse_suggestions_from_fenced_json() -> None:
    [s] = parse_issue_suggestions(SUGGESTION_JSON)

    assert s.error_signature == "ECONNREFUSED 127.0.0.1:5432"
    assert s.search_query == "postgres ECONNREFUSED"
    assert s.potential_solutions == ["Start PostgreSQL"]
    assert s.linked_issues is None


def test_parse_suggestions_from_bare_json_and_garbage() -> None:
    assert len(parse_issue_suggestions('[{"errorSignature": "x", "searchQuery": "x"}]')) == 1
    assert parse_issue_suggestions("not json at all") == []
    assert parse_issue_suggestions('{"errorSignature": "not a list"}') == []


def test_generate_search_url() -> None:
    url = generate_search_url("Error: can't connect (pool)", "o/r")

    assert url.startswith("https://github.com/search?q=")
    assert url.endswith("&type=issues")
    assert unquote(url) == "https://github.com/search?q=repo:o/r Error: can t connect pool is:issue&type=issues"


def _suggester(oracle, search: FakeSearch) -> IssueSuggester:
    return IssueSuggester(AnalyzerConfig(), oracle_factory=lambda _cfg: oracle, searcher=search)


@pytest.mark.asyncio
async def test_suggest_requires_initialize(fake_oracle) -> None:
    with pytest.raises(NotInitializedError):
        await _suggester(fake_oracle, FakeSearch({})).suggest_issues(ANALYSIS)


@pytest.mark.asyncio
async def test_nothing_to_suggest_skips_the_oracle(fake_oracle) -> None:
    quiet = LogAnalysisResult(patterns=["steady traffic"], summary="All healthy.")

    async with _suggester(fake_oracle, FakeSearch({})) as suggester:
        assert await suggester.suggest_issues(quiet, raw_log_content="INFO fine\n") == []

    assert fake_oracle.sent == []


@pytest.mark.asyncio
async def test_suggestions_link_issues_by_signature_then_query(make_oracle: Callable) -> None:
    oracle = make_oracle(replies=[SUGGESTION_JSON])
    search = FakeSearch({"postgres ECONNREFUSED": [_issue(7)]})

    async with _suggester(oracle, search) as suggester:
        [s] = await suggester.suggest_issues(ANALYSIS, repository_hint="o/r")

    assert [i.number for i in s.linked_issues] == [7]
    assert search.queries == [
        ("ECONNREFUSED 127.0.0.1:5432", "o/r", 5),
        ("postgres ECONNREFUSED", "o/r", 5),
    ]
    assert "The user is interested in issues from the repository: o/r" in oracle.sent[0].prompt


@pytest.mark.asyncio
async def test_suggestions_fall_back_to_overlapping_error_lines(make_oracle: Callable) -> None:
    oracle = make_oracle(replies=[SUGGESTION_JSON])
    search = FakeSearch({"ECONNREFUSED 127.0.0.1:5432": [], "ECONNREFUSED 127.0.0.1:5432 (db)": [_issue(9)]})
    raw = "2024-01-01T00:00:00Z ERROR connect ECONNREFUSED 127.0.0.1:5432 (db)\n"

    async with _suggester(oracle, search) as suggester:
        [s] = await suggester.suggest_issues(ANALYSIS, raw_log_content=raw)

    assert [i.number for i in s.linked_issues] == [9]
    assert "**Exact Error Lines from Log:**" in oracle.sent[0].prompt


@pytest.mark.asyncio
async def test_fetch_real_issues_can_be_disabled(make_oracle: Callable) -> None:
    oracle = make_oracle(replies=[SUGGESTION_JSON])
    search = FakeSearch({})

    async with _suggester(oracle, search) as suggester:
        [s] = await suggester.suggest_issues(ANALYSIS, fetch_real_issues=False)

    assert s.linked_issues is None
    assert search.queries == []


def _file(name: str, anomalies: list[str]) -> FileAnalysisResult:
    return FileAnalysisResult(
        filename=name, file_size=1, analysis=LogAnalysisResult(anomalies=anomalies, summary="s")
    )


def test_source_files_follow_signature_words() -> None:
    files = [
        _file("db.log", ["connection refused by postgres server"]),
        _file("web.log", ["slow responses"]),
    ]
    suggestion = IssueSuggestion(error_signature="Postgres connection refused")

    assert attribute_source_files(suggestion, files) == ["db.log"]


def test_single_file_is_the_default_source() -> None:
    suggestion = IssueSuggestion(error_signature="unrelated thing entirely")

    assert attribute_source_files(suggestion, [_file("only.log", ["x"])]) == ["only.log"]


def test_combine_file_analyses_concatenates_findings() -> None:
    combined = combine_file_analyses([_file("a.log", ["one"]), _file("b.log", ["two"])])

    assert combined.anomalies == ["one", "two"]
    assert combined.summary == "s\n\ns"
