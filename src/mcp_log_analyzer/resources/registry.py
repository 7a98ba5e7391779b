"""MCP resource registry.

Read-only data the analyzer exposes by URI: help text, result schemas,
the line-normalization rules, and log files under a configured base directory.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import aiofiles
from mcp.server.fastmcp import FastMCP

from mcp_log_analyzer.core.issues import IssueSuggestion
from mcp_log_analyzer.core.line_matching import NORMALIZATION_RULES
from mcp_log_analyzer.core.models import LogAnalysisResult, MultiFileAnalysisResult

ALLOWED_FILE_SUFFIXES = {".log", ".txt", ".out", ".err"}
BASE_DIR_ENV = "LOG_ANALYZER_BASE_DIR"
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "replace"


def _base_dir() -> Path:
    """Directory that file:// and log:// resources are confined to."""
    raw = os.getenv(BASE_DIR_ENV, os.getcwd())
    return Path(raw).resolve()


def _safe_resolve(path: str) -> Path:
    """Resolve ``path`` relative to the base directory, refusing anything outside it."""
    base = _base_dir()
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = base / candidate
    candidate = candidate.resolve()
    if candidate != base and base not in candidate.parents:
        raise ValueError(f"Path escapes {BASE_DIR_ENV}: {path}")
    return candidate


def _resolve_resource_path(path: str) -> Path:
    """Resolve a log file for reading; it must exist and carry a log-like suffix."""
    resolved = _safe_resolve(path)
    if not resolved.is_file():
        raise FileNotFoundError(f"No such log file: {resolved}")
    if resolved.suffix.lower() not in ALLOWED_FILE_SUFFIXES:
        allowed = ", ".join(sorted(ALLOWED_FILE_SUFFIXES))
        raise ValueError(f"Suffix {resolved.suffix!r} not allowed (expected one of {allowed})")
    return resolved


async def _read_text(path: Path) -> str:
    async with aiofiles.open(path, encoding=TEXT_ENCODING, errors=TEXT_ERRORS) as f:
        return await f.read()


def normalization_rules_table() -> list[dict[str, str]]:
    """Return the ordered line-normalization rules as plain data."""
    return [
        {"name": r.name, "pattern": r.pattern.pattern, "replacement": r.replacement}
        for r in NORMALIZATION_RULES
    ]


def register_resources(mcp: FastMCP) -> None:
    """Attach the analyzer resources to ``mcp``."""

    @mcp.resource("app://log-analyzer/help")
    def help_resource() -> str:
        """List the resource URIs this server answers."""
        allowed = ", ".join(sorted(ALLOWED_FILE_SUFFIXES))
        base = _base_dir()
        return (
            "Resources:\n"
            "- app://log-analyzer/help\n"
            "- app://log-analyzer/config/normalization-rules\n"
            "- app://log-analyzer/schemas/analysis-result\n"
            "- app://log-analyzer/schemas/multi-file-result\n"
            "- app://log-analyzer/schemas/issue-suggestion\n"
            "- app://log-analyzer/examples/sample-log\n"
            f"- file://{{path}} (restricted to {BASE_DIR_ENV}; allowed: {allowed})\n"
            "- log://{path} (alias of file:// for log files)\n"
            f"\n{BASE_DIR_ENV} = {base}\n"
        )

    @mcp.resource("app://log-analyzer/examples/sample-log")
    def sample_log() -> str:
        """A few lines with a recurring failure, handy for trying analyze_logs."""
        return (
            "2025-12-30T08:12:01Z [INFO] service started pid=4121\n"
            "2025-12-30T08:12:03Z [WARN] retrying request id=abc123\n"
            "2025-12-30T08:12:04Z [ERROR] pool exhausted waiting for db connection\n"
            "2025-12-30T08:12:05Z [ERROR] connect ECONNREFUSED 127.0.0.1:5432\n"
        )

    @mcp.resource("app://log-analyzer/config/normalization-rules")
    def normalization_rules() -> list[dict[str, str]]:
        """Return the ordered rules used to normalize lines before matching."""
        return normalization_rules_table()

    @mcp.resource("app://log-analyzer/schemas/analysis-result")
    def analysis_result_schema() -> dict[str, Any]:
        """Return the JSON schema for single-file analysis results."""
        return LogAnalysisResult.model_json_schema()

    @mcp.resource("app://log-analyzer/schemas/multi-file-result")
    def multi_file_result_schema() -> dict[str, Any]:
        """Return the JSON schema for multi-file analysis results."""
        return MultiFileAnalysisResult.model_json_schema()

    @mcp.resource("app://log-analyzer/schemas/issue-suggestion")
    def issue_suggestion_schema() -> dict[str, Any]:
        """Return the JSON schema for issue suggestions."""
        return IssueSuggestion.model_json_schema()

    @mcp.resource("file://{path}")
    async def read_file(path: str) -> str:
        """Read a text file from within LOG_ANALYZER_BASE_DIR."""
        return await _read_text(_resolve_resource_path(path))

    @mcp.resource("log://{path}")
    async def read_log(path: str) -> str:
        """Read a log file from within LOG_ANALYZER_BASE_DIR."""
        return await _read_text(_resolve_resource_path(path))
