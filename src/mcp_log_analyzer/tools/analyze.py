"""MCP tool implementations.

This module contains the *implementation* behind the exposed MCP tools.
Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import replace
from pathlib import Path
from typing import Any

from mcp_log_analyzer.core.analyzer import LogAnalyzer
from mcp_log_analyzer.core.config import AnalyzerConfig, resolve_analyzer_config
from mcp_log_analyzer.core.errors import InputNotFoundError
from mcp_log_analyzer.core.issues import (
    IssueSuggester,
    IssueSuggestion,
    attribute_source_files,
    combine_file_analyses,
)
from mcp_log_analyzer.core.line_matching import find_exact_line_matches
from mcp_log_analyzer.core.models import FileAnalysisResult, LogAnalysisResult, LogText
from mcp_log_analyzer.core.oracle import GeminiOracle, Oracle

OracleFactory = Callable[[AnalyzerConfig], Oracle]

MAX_LOG_PATHS = 10
FILE_SEPARATOR = "\n\n---FILE SEPARATOR---\n\n"


def _resolve_paths(log_paths: Sequence[str] | str) -> list[Path]:
    """Validate user-supplied paths and return them as Path objects."""
    if isinstance(log_paths, str):
        log_paths = [log_paths]
    paths = [Path(p).expanduser() for p in log_paths if str(p).strip()]
    if not paths:
        raise ValueError("log_paths must contain at least one path")
    if len(paths) > MAX_LOG_PATHS:
        raise ValueError(f"At most {MAX_LOG_PATHS} log files can be analyzed at once")
    for p in paths:
        if not p.is_file():
            raise InputNotFoundError(f"Log file not found: {p}")
    return paths


def _read_texts(paths: Sequence[Path]) -> list[LogText]:
    return [
        LogText(filename=p.name, content=p.read_text(encoding="utf-8", errors="replace"))
        for p in paths
    ]


async def _suggest(
    cfg: AnalyzerConfig,
    oracle_factory: OracleFactory,
    analysis: LogAnalysisResult,
    *,
    repository: str | None,
    raw_log_content: str,
) -> list[IssueSuggestion]:
    async with IssueSuggester(cfg, oracle_factory=oracle_factory) as suggester:
        return await suggester.suggest_issues(
            analysis, repository_hint=repository, raw_log_content=raw_log_content
        )


def _suggestions_to_dicts(suggestions: Sequence[IssueSuggestion]) -> list[dict[str, Any]]:
    return [s.model_dump(mode="json", exclude_none=True) for s in suggestions]


async def analyze_logs_impl(
    *,
    log_paths: Sequence[str] | str,
    suggest_issues: bool = False,
    repository: str | None = None,
    parallel_chunks: int | None = None,
    config: AnalyzerConfig | None = None,
    oracle_factory: OracleFactory = GeminiOracle,
) -> dict[str, Any]:
    """Implementation for the `analyze_logs` MCP tool.

    Notes
    -----
    - One path returns ``{"filename", "file_size", "analysis"}``.
    - Several paths return ``{"file_results", "similarities", "overall_summary"}``.
    - ``issue_suggestions`` is added when suggest_issues is true.
    """
    if parallel_chunks is not None and parallel_chunks < 1:
        raise ValueError("parallel_chunks must be >= 1")

    paths = _resolve_paths(log_paths)
    cfg = resolve_analyzer_config(config)
    if parallel_chunks is not None:
        cfg = replace(cfg, parallel_chunks=parallel_chunks)

    texts = await asyncio.to_thread(_read_texts, paths)

    async with LogAnalyzer(cfg, oracle_factory=oracle_factory) as analyzer:
        if len(paths) == 1:
            analysis = await analyzer.analyze_log_file(paths[0])
            single = FileAnalysisResult(
                filename=paths[0].name,
                file_size=paths[0].stat().st_size,
                analysis=analysis,
            )
            out: dict[str, Any] = single.model_dump(mode="json")
            file_results = [single]
        else:
            result = await analyzer.analyze_multiple_texts(texts)
            out = result.model_dump(mode="json")
            file_results = result.file_results
            analysis = combine_file_analyses(file_results)

    if suggest_issues:
        suggestions = await _suggest(
            cfg,
            oracle_factory,
            analysis,
            repository=repository,
            raw_log_content=FILE_SEPARATOR.join(t.content for t in texts),
        )
        suggestions = [
            s.model_copy(update={"source_files": attribute_source_files(s, file_results)})
            for s in suggestions
        ]
        out["issue_suggestions"] = _suggestions_to_dicts(suggestions)

    return out


def find_exact_matches_impl(*, log_paths: Sequence[str] | str) -> dict[str, Any]:
    """Implementation for the `find_exact_line_matches` MCP tool (no model calls)."""
    paths = _resolve_paths(log_paths)
    if len(paths) < 2:
        raise ValueError("At least two log files are needed to find shared lines")

    matches = find_exact_line_matches(_read_texts(paths))
    return {
        "count": len(matches),
        "matches": [m.model_dump(mode="json") for m in matches],
    }
