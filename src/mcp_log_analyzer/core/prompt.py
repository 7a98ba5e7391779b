"""Prompt construction for log analysis."""

from __future__ import annotations

from collections.abc import Sequence

from .models import ChunkAnalysisResult, FileAnalysisResult, SimilarityResult

_RESPONSE_FORMAT = (
    "Please structure your response in the following format:\n"
    "## PATTERNS\n"
    "- [List patterns here]\n\n"
    "## ANOMALIES\n"
    "- [List anomalies here]\n\n"
    "## ROOT CAUSES\n"
    "- [List root causes here]\n\n"
    "## SUMMARY\n"
    "[Provide a brief summary of the overall health and key findings]"
)


def _joined(items: Sequence[str]) -> str:
    return "; ".join(items) or "None found"


def build_file_analysis_prompt() -> str:
    """Prompt for a log file sent as an attachment."""
    return (
        "You are an expert log analyzer. Please analyze the attached log file and provide:\n\n"
        "1. **Patterns**: Common patterns found in the logs (e.g., recurring error messages, "
        "API endpoints being called, user behaviors)\n"
        "2. **Anomalies**: Unusual or unexpected events, errors, or behaviors that stand out\n"
        "3. **Root Causes**: Potential root causes for any errors or issues found in the logs\n\n"
        f"{_RESPONSE_FORMAT}"
    )


def build_content_analysis_prompt(log_content: str) -> str:
    """Prompt with the log text embedded inline."""
    return (
        "You are an expert log analyzer. Please analyze the following log content and provide:\n\n"
        "1. **Patterns**: Common patterns found in the logs\n"
        "2. **Anomalies**: Unusual or unexpected events, errors, or behaviors\n"
        "3. **Root Causes**: Potential root causes for any errors or issues\n\n"
        f"{_RESPONSE_FORMAT}\n\n"
        f"Log Content:\n```\n{log_content}\n```"
    )


def build_consolidation_prompt(chunks: Sequence[ChunkAnalysisResult]) -> str:
    """Ask the model to merge per-segment findings into one analysis."""
    segments = "\n".join(
        f"### Segment {c.chunk_id + 1} (Lines {c.line_range.start}-{c.line_range.end})\n"
        f"**Patterns:** {_joined(c.patterns)}\n"
        f"**Anomalies:** {_joined(c.anomalies)}\n"
        f"**Root Causes:** {_joined(c.root_causes)}\n"
        for c in chunks
    )
    return (
        f"You analyzed a log file in {len(chunks)} segments. "
        "Here are the findings from each segment:\n\n"
        f"{segments}\n"
        "Please consolidate these findings into a unified analysis, removing duplicates "
        "and identifying cross-segment patterns.\n\n"
        "Provide your response in this format:\n"
        "## PATTERNS\n"
        "- [Consolidated patterns across all segments]\n\n"
        "## ANOMALIES\n"
        "- [Consolidated anomalies across all segments]\n\n"
        "## ROOT CAUSES\n"
        "- [Consolidated root causes across all segments]\n\n"
        "## SUMMARY\n"
        "[A comprehensive summary of the entire log file based on all segments]"
    )


def build_similarity_prompt(file_results: Sequence[FileAnalysisResult]) -> str:
    """Ask the model which findings recur across files and how files correlate."""
    files = "\n".join(
        f"### File {i}: {fr.filename} ({fr.file_size / 1024:.1f} KB)\n"
        f"**Patterns:** {_joined(fr.analysis.patterns)}\n"
        f"**Anomalies:** {_joined(fr.analysis.anomalies)}\n"
        f"**Root Causes:** {_joined(fr.analysis.root_causes)}\n"
        f"**Summary:** {fr.analysis.summary}\n"
        for i, fr in enumerate(file_results, start=1)
    )
    return (
        f"You are analyzing {len(file_results)} different log files. "
        "Here are the analysis results for each:\n\n"
        f"{files}\n"
        "Please identify:\n"
        "1. **Shared Patterns**: Patterns that appear in multiple files (indicate which files)\n"
        "2. **Shared Anomalies**: Anomalies that appear in multiple files\n"
        "3. **Shared Root Causes**: Root causes that are common across files\n"
        "4. **Correlations**: Any correlations between events in different files "
        "(e.g., timing relationships, cascading failures)\n\n"
        "Format your response as:\n"
        "## SHARED PATTERNS\n"
        "- [Pattern that appears in multiple files]\n\n"
        "## SHARED ANOMALIES\n"
        "- [Anomaly that appears in multiple files]\n\n"
        "## SHARED ROOT CAUSES\n"
        "- [Root cause common across files]\n\n"
        "## CORRELATIONS\n"
        "- [Correlation between files]"
    )


def build_multi_file_summary_prompt(
    file_results: Sequence[FileAnalysisResult], similarities: SimilarityResult
) -> str:
    summaries = "\n".join(f"- {fr.filename}: {fr.analysis.summary}" for fr in file_results)
    return (
        f"Based on the analysis of {len(file_results)} log files, "
        "provide a concise executive summary:\n\n"
        f"Individual file summaries:\n{summaries}\n\n"
        "Cross-file similarities found:\n"
        f"- Shared patterns: {len(similarities.shared_patterns)}\n"
        f"- Shared anomalies: {len(similarities.shared_anomalies)}\n"
        f"- Shared root causes: {len(similarities.shared_root_causes)}\n"
        f"- Correlations: {len(similarities.correlations)}\n\n"
        "Provide a 2-3 sentence executive summary of the overall system health "
        "and key findings across all files."
    )
