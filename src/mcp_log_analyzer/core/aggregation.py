"""Combining per-chunk findings into a single analysis."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .errors import OracleUnavailableError
from .models import ChunkAnalysisResult, LogAnalysisResult
from .oracle.base import Oracle
from .parsing import parse_analysis_response
from .prompt import build_consolidation_prompt

logger = logging.getLogger(__name__)

SINGLE_CHUNK_SUMMARY = "Single chunk analysis completed."


def _union(lists: Iterable[Sequence[str]]) -> list[str]:
    """Case-sensitive union preserving first-seen order."""
    return list(dict.fromkeys(item for items in lists for item in items))


def merge_chunk_results(chunks: Sequence[ChunkAnalysisResult]) -> LogAnalysisResult:
    """Deterministic merge used when the model cannot consolidate."""
    return LogAnalysisResult(
        patterns=_union(c.patterns for c in chunks),
        anomalies=_union(c.anomalies for c in chunks),
        root_causes=_union(c.root_causes for c in chunks),
        summary=f"Analyzed {len(chunks)} segments of the log file.",
    )


async def aggregate_chunk_results(
    chunks: Sequence[ChunkAnalysisResult], *, oracle: Oracle
) -> LogAnalysisResult:
    """Consolidate chunk results, asking the model to de-duplicate when there are several.

    A failed or empty consolidation call degrades to ``merge_chunk_results``.
    """
    if not chunks:
        raise ValueError("chunks must not be empty")

    if len(chunks) == 1:
        only = chunks[0]
        return LogAnalysisResult(
            patterns=list(only.patterns),
            anomalies=list(only.anomalies),
            root_causes=list(only.root_causes),
            summary=SINGLE_CHUNK_SUMMARY,
        )

    prompt = build_consolidation_prompt(chunks)
    try:
        resp = await oracle.send_and_wait(prompt)
    except OracleUnavailableError as e:
        logger.warning("Consolidation call failed, merging %s chunks locally: %s", len(chunks), e)
        return merge_chunk_results(chunks)

    if not resp.content.strip():
        logger.warning("Empty consolidation response, merging %s chunks locally", len(chunks))
        return merge_chunk_results(chunks)

    return parse_analysis_response(resp.content)
