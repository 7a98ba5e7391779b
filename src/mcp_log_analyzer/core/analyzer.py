"""Model-backed log analysis.

Sequences model calls with the local chunking, parsing, aggregation and
matching stages, reporting milestones to an optional progress sink.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

import aiofiles

from .aggregation import aggregate_chunk_results
from .chunking import split_into_chunks
from .config import AnalyzerConfig, resolve_analyzer_config
from .errors import InputNotFoundError, NotInitializedError, OracleUnavailableError
from .line_matching import find_exact_line_matches
from .models import (
    AnalysisProgress,
    AnalysisStage,
    ChunkAnalysisResult,
    ChunkDescriptor,
    FileAnalysisResult,
    LogAnalysisResult,
    LogText,
    MultiFileAnalysisResult,
    SimilarityResult,
)
from .oracle.base import Attachment, Oracle
from .oracle.gemini import GeminiOracle
from .parsing import parse_analysis_response
from .pool import map_bounded
from .prompt import (
    build_content_analysis_prompt,
    build_file_analysis_prompt,
    build_multi_file_summary_prompt,
)
from .sanitize import sanitize_log_content
from .similarity import find_similarities

logger = logging.getLogger(__name__)

ProgressSink = Callable[[AnalysisProgress], None]
StreamSink = Callable[[str, str], None]  # (delta, full_text)

# Rough length of a complete analysis response, used to estimate progress while streaming.
_EXPECTED_RESPONSE_CHARS = 2000


def _emit(progress: ProgressSink | None, stage: AnalysisStage, pct: int, message: str, **kw) -> None:
    if progress is not None:
        progress(AnalysisProgress(stage=stage, progress=pct, message=message, **kw))


def _require_file(path: Path) -> None:
    if not path.is_file():
        raise InputNotFoundError(f"Log file not found: {path}")


async def _read_text(path: Path) -> str:
    async with aiofiles.open(path, encoding="utf-8", errors="replace") as f:
        return await f.read()


class LogAnalyzer:
    """Analyze log files through a model session.

    Call ``initialize()`` (or use ``async with``) before any analysis.
    """

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        *,
        oracle_factory: Callable[[AnalyzerConfig], Oracle] = GeminiOracle,
    ) -> None:
        self.config = resolve_analyzer_config(config)
        self._oracle_factory = oracle_factory
        self._oracle: Oracle | None = None

    async def initialize(self) -> None:
        if self._oracle is None:
            self._oracle = self._oracle_factory(self.config)

    async def cleanup(self) -> None:
        if self._oracle is not None:
            await self._oracle.close()
            self._oracle = None

    async def __aenter__(self) -> LogAnalyzer:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.cleanup()

    def _session(self) -> Oracle:
        if self._oracle is None:
            raise NotInitializedError("Analyzer not initialized. Call initialize() first.")
        return self._oracle

    def _prepare(self, content: str) -> str:
        return sanitize_log_content(content) if self.config.sanitize else content

    async def analyze_log_file(
        self,
        log_path: str | Path,
        *,
        progress: ProgressSink | None = None,
        stream: StreamSink | None = None,
    ) -> LogAnalysisResult:
        """Analyze one file, chunking it when it exceeds ``chunk_size`` bytes."""
        oracle = self._session()
        path = Path(log_path)
        _require_file(path)

        size = path.stat().st_size
        if size == 0:
            raise ValueError(f"Log file is empty: {path}")

        if size > self.config.chunk_size:
            return await self.analyze_in_chunks(
                await _read_text(path), progress=progress, stream=stream
            )

        _emit(progress, AnalysisStage.ANALYZING, 0, "Analyzing log file...")
        resp = await oracle.send_and_wait(
            build_file_analysis_prompt(),
            attachments=[Attachment(display_name=path.name, path=path)],
        )
        if not resp.content.strip():
            raise OracleUnavailableError("No response received from the model")
        result = parse_analysis_response(resp.content)
        _emit(progress, AnalysisStage.COMPLETE, 100, "Analysis complete")
        return result

    async def analyze_log_content(
        self,
        log_content: str,
        *,
        progress: ProgressSink | None = None,
        stream: StreamSink | None = None,
    ) -> LogAnalysisResult:
        """Analyze in-memory log text with a single model call."""
        oracle = self._session()
        full_text: list[str] = []

        def on_delta(delta: str) -> None:
            full_text.append(delta)
            if stream is not None:
                stream(delta, "".join(full_text))
            chars = sum(len(part) for part in full_text)
            pct = min(90, 20 + round(chars / _EXPECTED_RESPONSE_CHARS * 70))
            _emit(progress, AnalysisStage.ANALYZING, pct, "AI generating analysis...")

        wants_deltas = stream is not None or progress is not None
        resp = await oracle.send_and_wait(
            build_content_analysis_prompt(self._prepare(log_content)),
            on_delta=on_delta if wants_deltas else None,
        )
        if not resp.content.strip():
            raise OracleUnavailableError("No response received from the model")
        return parse_analysis_response(resp.content)

    async def analyze_log_text(
        self,
        content: str,
        filename: str,
        *,
        progress: ProgressSink | None = None,
        stream: StreamSink | None = None,
    ) -> LogAnalysisResult:
        """Analyze uploaded text: one call when small, chunked when large."""
        self._session()
        if not content.strip():
            raise ValueError(f"Log content is empty: {filename}")

        line_count = content.count("\n") + 1
        _emit(progress, AnalysisStage.SCANNING, 5, f"Scanning {filename} ({line_count} lines)...")

        if len(content.encode("utf-8")) > self.config.chunk_size:
            return await self.analyze_in_chunks(content, progress=progress, stream=stream)

        _emit(progress, AnalysisStage.ANALYZING, 15, "Sending to AI for analysis...")
        result = await self.analyze_log_content(content, stream=stream)
        _emit(progress, AnalysisStage.COMPLETE, 100, "Analysis complete")
        return result

    async def analyze_in_chunks(
        self,
        content: str,
        *,
        progress: ProgressSink | None = None,
        stream: StreamSink | None = None,
    ) -> LogAnalysisResult:
        """Split, analyze chunks with bounded parallelism, then consolidate.

        Any failed chunk fails the whole analysis.
        """
        oracle = self._session()
        _emit(progress, AnalysisStage.SCANNING, 0, "Scanning file structure...")

        chunks = split_into_chunks(
            content,
            max_size=self.config.chunk_size,
            max_lines=self.config.max_lines_per_chunk,
        )
        if not chunks:
            raise ValueError("Log content is empty")

        total = len(chunks)
        concurrency = self.config.parallel_chunks
        _emit(
            progress,
            AnalysisStage.ANALYZING,
            0,
            f"Processing {total} chunks in parallel (concurrency: {concurrency})...",
            current_chunk=0,
            total_chunks=total,
        )
        logger.debug("Analyzing %s chunks with concurrency %s", total, concurrency)

        completed = 0

        async def analyze_chunk(index: int, chunk: ChunkDescriptor) -> ChunkAnalysisResult:
            nonlocal completed
            analysis = await self.analyze_log_content(chunk.content, stream=stream)
            completed += 1
            _emit(
                progress,
                AnalysisStage.ANALYZING,
                round(completed / total * 80),
                f"Analyzed chunk {completed} of {total}...",
                current_chunk=completed,
                total_chunks=total,
            )
            return ChunkAnalysisResult.from_analysis(index, chunk, analysis)

        chunk_results = await map_bounded(chunks, analyze_chunk, concurrency=concurrency)

        _emit(progress, AnalysisStage.AGGREGATING, 85, "Aggregating results...")
        result = await aggregate_chunk_results(chunk_results, oracle=oracle)
        _emit(progress, AnalysisStage.COMPLETE, 100, "Analysis complete")
        return result

    async def analyze_multiple_log_files(
        self,
        log_paths: Sequence[str | Path],
        *,
        progress: ProgressSink | None = None,
    ) -> MultiFileAnalysisResult:
        """Analyze several files and compare their findings."""
        self._session()
        if not log_paths:
            raise ValueError("No log files provided")

        paths = [Path(p) for p in log_paths]
        for path in paths:
            _require_file(path)

        files = [LogText(filename=path.name, content=await _read_text(path)) for path in paths]
        return await self.analyze_multiple_texts(files, progress=progress)

    async def analyze_multiple_texts(
        self,
        files: Sequence[LogText],
        *,
        progress: ProgressSink | None = None,
    ) -> MultiFileAnalysisResult:
        """Analyze in-memory files, then find shared findings and shared lines."""
        oracle = self._session()
        if not files:
            raise ValueError("No files provided")

        n = len(files)
        _emit(progress, AnalysisStage.ANALYZING, 0, f"Analyzing {n} files...")

        file_results: list[FileAnalysisResult] = []
        for i, f in enumerate(files):
            _emit(
                progress,
                AnalysisStage.ANALYZING,
                round(i / n * 70),
                f"Analyzing file {i + 1} of {n}: {f.filename}",
            )
            analysis = await self.analyze_log_text(f.content, f.filename)
            file_results.append(
                FileAnalysisResult(
                    filename=f.filename,
                    file_size=len(f.content.encode("utf-8")),
                    analysis=analysis,
                )
            )

        _emit(progress, AnalysisStage.AGGREGATING, 75, "Detecting similarities across files...")
        similarities = await find_similarities(file_results, oracle=oracle)

        _emit(progress, AnalysisStage.AGGREGATING, 82, "Finding exact line matches...")
        similarities = similarities.model_copy(
            update={"exact_matches": find_exact_line_matches(files)}
        )

        _emit(progress, AnalysisStage.AGGREGATING, 90, "Generating summary...")
        overall_summary = await self.generate_multi_file_summary(file_results, similarities)

        _emit(progress, AnalysisStage.COMPLETE, 100, "Multi-file analysis complete")
        return MultiFileAnalysisResult(
            file_results=file_results,
            similarities=similarities,
            overall_summary=overall_summary,
        )

    async def generate_multi_file_summary(
        self,
        file_results: Sequence[FileAnalysisResult],
        similarities: SimilarityResult,
    ) -> str:
        oracle = self._session()
        resp = await oracle.send_and_wait(
            build_multi_file_summary_prompt(file_results, similarities)
        )
        if resp.content.strip():
            return resp.content.strip()

        logger.warning("Empty summary response, using templated multi-file summary")
        return (
            f"Analyzed {len(file_results)} log files. "
            f"Found {len(similarities.shared_patterns)} shared patterns, "
            f"{len(similarities.shared_anomalies)} shared anomalies, and "
            f"{len(similarities.shared_root_causes)} common root causes."
        )
