"""Cross-file comparison of per-file findings."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Sequence

from .models import FileAnalysisResult, LogAnalysisResult, SimilarityResult
from .oracle.base import Oracle
from .parsing import parse_similarities_response
from .prompt import build_similarity_prompt

logger = logging.getLogger(__name__)

# An item counts as shared once it appears in this many files.
SHARED_ITEM_MIN_FILES = 2


def _shared(
    file_results: Sequence[FileAnalysisResult],
    select: Callable[[LogAnalysisResult], Sequence[str]],
    min_files: int,
) -> list[str]:
    counts: Counter[str] = Counter()
    for fr in file_results:
        counts.update(list(dict.fromkeys(item.lower() for item in select(fr.analysis))))
    return [item for item, count in counts.items() if count >= min_files]


def find_similarities_locally(
    file_results: Sequence[FileAnalysisResult],
    *,
    min_files: int = SHARED_ITEM_MIN_FILES,
) -> SimilarityResult:
    """Case-insensitive frequency count of findings across files.

    Shared items are reported lowercased, in first-seen order. Correlations
    need the model and are always empty here.
    """
    if len(file_results) < 2:
        return SimilarityResult()
    return SimilarityResult(
        shared_patterns=_shared(file_results, lambda a: a.patterns, min_files),
        shared_anomalies=_shared(file_results, lambda a: a.anomalies, min_files),
        shared_root_causes=_shared(file_results, lambda a: a.root_causes, min_files),
        correlations=[],
    )


async def find_similarities(
    file_results: Sequence[FileAnalysisResult], *, oracle: Oracle
) -> SimilarityResult:
    """Ask the model for shared findings; fall back to local counting on an empty reply."""
    if len(file_results) < 2:
        return SimilarityResult()

    resp = await oracle.send_and_wait(build_similarity_prompt(file_results))
    if not resp.content.strip():
        logger.warning("Empty similarity response, counting shared findings locally")
        return find_similarities_locally(file_results)

    return parse_similarities_response(resp.content)
