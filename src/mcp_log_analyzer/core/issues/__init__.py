"""Issue-suggestion package."""

from __future__ import annotations

from .models import GitHubIssue, IssueSuggestion
from .search import GitHubIssueSearch, IssueSearch
from .suggester import (
    IssueSuggester,
    attribute_source_files,
    combine_file_analyses,
    extract_error_signatures,
    extract_exact_error_lines,
    extract_search_terms_from_line,
    generate_search_url,
    parse_issue_suggestions,
)

__all__ = [
    "GitHubIssue",
    "GitHubIssueSearch",
    "IssueSearch",
    "IssueSuggester",
    "IssueSuggestion",
    "attribute_source_files",
    "combine_file_analyses",
    "extract_error_signatures",
    "extract_exact_error_lines",
    "extract_search_terms_from_line",
    "generate_search_url",
    "parse_issue_suggestions",
]
