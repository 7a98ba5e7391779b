"""MCP prompt registry.

Templates that steer a client through analyze_logs and find_exact_line_matches
for the common jobs: one file, a comparison, and a bug report.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP


def _format_paths(paths: Sequence[str] | str) -> str:
    """Return paths as a JSON array literal for prompt display."""
    if isinstance(paths, str):
        items = [s.strip() for s in paths.split(",") if s.strip()]
    else:
        items = [str(s).strip() for s in paths if str(s).strip()]
    if not items:
        return "[]"
    quoted = ", ".join(f'"{item}"' for item in items)
    return f"[{quoted}]"


_SYSTEM = (
    "You are a senior incident analyst for backend services. "
    "Provide concise, evidence-based conclusions from log analysis. "
    "When the logs do not support a conclusion, state that instead of guessing."
)


def register_prompts(mcp: FastMCP) -> None:
    """Attach the analyzer prompt templates to ``mcp``."""

    @mcp.prompt()
    def analyze_log_file(log_path: str, suggest_issues: bool = False) -> list[dict[str, Any]]:
        """Build a prompt for a single-file analysis."""
        call_lines = [f"- log_paths: {_format_paths([log_path])}"]
        if suggest_issues:
            call_lines.append("- suggest_issues: true")
        call_block = "\n".join(call_lines)
        return [
            {"role": "system", "content": _SYSTEM},
            {
                "role": "user",
                "content": (
                    "Analyze the log file using analyze_logs. Follow this workflow:\n"
                    "- Always call analyze_logs first with the parameters below.\n"
                    "- log_paths must be a list of strings (JSON array), even for one file.\n"
                    "- Use only tool output or the log resource for evidence; "
                    "do not fabricate lines.\n\n"
                    "Call analyze_logs with:\n"
                    f"{call_block}\n\n"
                    "Return this structure:\n"
                    "1) Health summary (1-2 sentences)\n"
                    "2) Most important anomalies (2-5 bullets)\n"
                    "3) Likely root causes (1-3 bullets; say 'Unknown' if unclear)\n"
                    "4) Recommended follow-ups (2-4 bullets)\n"
                ),
            },
            {
                "role": "user",
                "content": [
                    {
                        "type": "text",
                        "text": "The raw log is available here if the tool output is not enough:",
                    },
                    {"type": "resource", "uri": f"log://{log_path}"},
                ],
            },
        ]

    @mcp.prompt()
    def compare_log_files(log_paths: Sequence[str] | str) -> list[dict[str, Any]]:
        """Build a prompt that compares several log files."""
        paths_display = _format_paths(log_paths)
        return [
            {"role": "system", "content": _SYSTEM},
            {
                "role": "user",
                "content": (
                    "Compare these log files. Follow this workflow:\n"
                    f"- Call find_exact_line_matches with log_paths: {paths_display} "
                    "to see which lines recur across files.\n"
                    f"- Call analyze_logs with log_paths: {paths_display}.\n"
                    "- Pass log_paths as list[str] (not a comma-separated string).\n\n"
                    "Return this structure:\n"
                    "1) What the files have in common (shared patterns, anomalies, root causes)\n"
                    "2) Shared error lines (quote up to 5, with file names and line numbers)\n"
                    "3) Differences that matter (1-3 bullets)\n"
                    "4) Overall assessment and next actions\n"
                ),
            },
        ]

    @mcp.prompt()
    def create_bug_report(
        title: str,
        log_path: str,
        steps: str = "",
        repository: str | None = None,
    ) -> list[dict[str, Any]]:
        """Build a prompt that produces a Markdown bug report."""
        repo_line = f" and repository: {repository}" if repository else ""
        return [
            {
                "role": "system",
                "content": (
                    "Write a Markdown bug report grounded in log evidence. Mask tokens, passwords "
                    "and personal data before quoting any line."
                ),
            },
            {
                "role": "user",
                "content": (
                    f"Title: {title}\n\n"
                    "Sections, in this order:\n"
                    "- Summary\n"
                    "- Environment (write 'unknown' when the logs do not say)\n"
                    "- Steps to Reproduce\n"
                    "- Expected vs Actual\n"
                    "- Log Evidence (quoted lines with file and line number)\n"
                    "- Suspected Cause\n"
                    "- Related Issues (from issue_suggestions, if any)\n"
                    "- Proposed Fix\n\n"
                    f"Reproduction notes from the reporter:\n{steps or '(none)'}\n\n"
                    f"Use tool analyze_logs on {_format_paths([log_path])} with "
                    f"suggest_issues=true{repo_line}.\n"
                ),
            },
            {
                "role": "user",
                "content": [
                    {
                        "type": "text",
                        "text": "You may also cite lines from the log:",
                    },
                    {"type": "resource", "uri": f"log://{log_path}"},
                ],
            },
        ]
