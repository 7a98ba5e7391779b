"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: model-backed log analysis and local shared-line matching
- Resources: help text, schemas, normalization rules and log files via URI
- Prompts: reusable conversation templates that clients can invoke

Run locally (stdio):
    python -m mcp_log_analyzer.server.log_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_log_analyzer.prompts.registry import register_prompts
from mcp_log_analyzer.resources.registry import register_resources
from mcp_log_analyzer.tools.analyze import analyze_logs_impl, find_exact_matches_impl

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Send log records to stderr; stdout carries the MCP protocol."""
    level_name = os.getenv("LOG_ANALYZER_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


mcp = FastMCP("log-analyzer", json_response=True)

register_resources(mcp)
register_prompts(mcp)


@mcp.tool()
async def analyze_logs(
    log_paths: list[str],
    suggest_issues: bool = False,
    repository: str | None = None,
    parallel_chunks: int | None = None,
) -> dict[str, Any]:
    """Analyze one or more log files for patterns, anomalies and root causes.

    Parameters
    ----------
    log_paths:
        Paths to local log files. One path yields a single-file analysis;
        several paths also compare the files (shared findings, shared lines,
        executive summary).
    suggest_issues:
        When true, propose GitHub issue searches for the errors found and
        link matching issues.
    repository:
        Optional owner/repo to scope issue searches to.
    parallel_chunks:
        How many chunks of a large file are analyzed at once.

    Returns
    -------
    dict:
        Single file: {"filename", "file_size", "analysis"}.
        Several files: {"file_results", "similarities", "overall_summary"}.
        Plus "issue_suggestions" when requested.
    """
    return await analyze_logs_impl(
        log_paths=log_paths,
        suggest_issues=suggest_issues,
        repository=repository,
        parallel_chunks=parallel_chunks,
    )


@mcp.tool()
def find_exact_line_matches(log_paths: list[str]) -> dict[str, Any]:
    """Find log lines that occur in two or more files, ignoring timestamps and ids.

    Runs locally without model calls. Returns {"count": int, "matches": list[dict]},
    errors first, then by total occurrence count.
    """
    return find_exact_matches_impl(log_paths=log_paths)


def main(argv: Sequence[str] | None = None) -> None:
    """Run the log-analyzer MCP server until the client disconnects."""
    _configure_logging()
    LOGGER.debug("log-analyzer MCP server starting on stdio")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
