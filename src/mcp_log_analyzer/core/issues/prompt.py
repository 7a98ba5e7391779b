"""Prompt construction for issue suggestions."""

from __future__ import annotations

from collections.abc import Sequence

from ..models import LogAnalysisResult


def build_issue_suggestion_prompt(
    analysis: LogAnalysisResult,
    *,
    error_signatures: Sequence[str],
    exact_error_lines: Sequence[str],
    repository_hint: str | None,
) -> str:
    repo_context = (
        f"The user is interested in issues from the repository: {repository_hint}"
        if repository_hint
        else "Generate generic GitHub search queries that could work across repositories."
    )
    exact_lines = (
        "\n**Exact Error Lines from Log:**\n" + "\n".join(exact_error_lines[:10])
        if exact_error_lines
        else ""
    )
    anomalies = "\n".join(analysis.anomalies) or "None"
    root_causes = "\n".join(analysis.root_causes) or "None"
    signatures = "\n".join(error_signatures)

    return (
        "You are an expert at finding relevant GitHub issues based on log analysis.\n\n"
        "Given the following error signatures and anomalies found in a log file:\n\n"
        f"**Anomalies:**\n{anomalies}\n\n"
        f"**Root Causes:**\n{root_causes}\n\n"
        f"**Error Signatures:**\n{signatures}\n"
        f"{exact_lines}\n\n"
        f"{repo_context}\n\n"
        "For each significant error or issue, provide:\n"
        "1. A concise error signature (use EXACT text from the log when possible)\n"
        "2. GitHub search keywords (specific error codes, function names, or unique "
        "identifiers from the log)\n"
        "3. A brief description of what the issue likely is\n"
        "4. Potential solutions based on your knowledge\n\n"
        "Format your response as a JSON array:\n"
        "```json\n"
        "[\n"
        "  {\n"
        '    "errorSignature": "ECONNREFUSED 127.0.0.1:5432",\n'
        '    "searchQuery": "ECONNREFUSED 127.0.0.1:5432",\n'
        '    "description": "Database connection refused, likely PostgreSQL is not running",\n'
        '    "potentialSolutions": ["Start PostgreSQL service", "Check if port 5432 is blocked"]\n'
        "  }\n"
        "]\n"
        "```\n\n"
        "Provide suggestions for the top 3-5 most significant issues only."
    )
