from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from mcp_log_analyzer.core.analyzer import LogAnalyzer
from mcp_log_analyzer.core.config import AnalyzerConfig
from mcp_log_analyzer.core.errors import (
    InputNotFoundError,
    NotInitializedError,
    OracleUnavailableError,
)
from mcp_log_analyzer.core.models import AnalysisProgress, AnalysisStage, LogText


def _analyzer(oracle, **cfg) -> LogAnalyzer:
    return LogAnalyzer(AnalyzerConfig(**cfg), oracle_factory=lambda _cfg: oracle)


def _reply_for(prompt: str) -> str:
    """Answer analysis prompts by echoing a marker found in the embedded log."""
    if "consolidate" in prompt:
        return "## PATTERNS\n- consolidated\n## SUMMARY\nWhole file."
    if "executive summary" in prompt:
        return "Two files, one outage."
    if "different log files" in prompt:
        return "## SHARED ROOT CAUSES\n- db down\n"
    marker = next((w for w in prompt.split() if w.startswith("chunk-")), "chunk-?")
    return f"## PATTERNS\n- seen {marker}\n## ROOT CAUSES\n- db down\n## SUMMARY\nok"


@pytest.mark.asyncio
async def test_methods_require_initialize(fake_oracle) -> None:
    analyzer = _analyzer(fake_oracle)

    with pytest.raises(NotInitializedError):
        await analyzer.analyze_log_content("ERROR x")
    with pytest.raises(NotInitializedError):
        await analyzer.analyze_multiple_texts([LogText("a.log", "x")])


@pytest.mark.asyncio
async def test_context_manager_closes_the_oracle(fake_oracle) -> None:
    async with _analyzer(fake_oracle):
        pass

    assert fake_oracle.closed


@pytest.mark.asyncio
async def test_small_file_is_sent_as_attachment(
    tmp_path: Path, write_log: Callable[[Path], None], make_oracle: Callable, analysis_reply: str
) -> None:
    log = tmp_path / "app.log"
    write_log(log)
    oracle = make_oracle(replies=[analysis_reply])
    events: list[AnalysisProgress] = []

    async with _analyzer(oracle) as analyzer:
        result = await analyzer.analyze_log_file(log, progress=events.append)

    assert result.anomalies == ["Database connection refused"]
    assert result.summary == "Service cannot reach its database."
    [sent] = oracle.sent
    assert sent.attachments[0].display_name == "app.log"
    assert b"ECONNREFUSED" in await sent.attachments[0].read_bytes()
    assert events[-1].stage == AnalysisStage.COMPLETE
    assert events[-1].progress == 100


@pytest.mark.asyncio
async def test_missing_and_empty_files_are_rejected(tmp_path: Path, fake_oracle) -> None:
    empty = tmp_path / "empty.log"
    empty.write_text("", encoding="utf-8")

    async with _analyzer(fake_oracle) as analyzer:
        with pytest.raises(InputNotFoundError):
            await analyzer.analyze_log_file(tmp_path / "missing.log")
        with pytest.raises(ValueError):
            await analyzer.analyze_log_file(empty)


@pytest.mark.asyncio
async def test_large_file_is_chunked_and_consolidated(tmp_path: Path, make_oracle: Callable) -> None:
    log = tmp_path / "big.log"
    log.write_text("\n".join(f"chunk-{i} line" for i in range(6)), encoding="utf-8")
    oracle = make_oracle(responder=_reply_for)
    events: list[AnalysisProgress] = []

    async with _analyzer(oracle, chunk_size=40, max_lines_per_chunk=2) as analyzer:
        result = await analyzer.analyze_log_file(log, progress=events.append)

    assert result.patterns == ["consolidated"]
    assert len(oracle.sent) == 4  # three chunks + consolidation
    assert oracle.sent[0].attachments == []
    stages = [e.stage for e in events]
    assert stages[0] == AnalysisStage.SCANNING
    assert AnalysisStage.AGGREGATING in stages
    assert stages[-1] == AnalysisStage.COMPLETE
    chunk_events = [e for e in events if e.total_chunks == 3 and e.current_chunk]
    assert [e.progress for e in chunk_events] == [27, 53, 80]


@pytest.mark.asyncio
async def test_chunk_results_keep_chunk_order(make_oracle: Callable) -> None:
    content = "\n".join(f"chunk-{i}" for i in range(5))
    # consolidation reply is empty so the local merge exposes chunk order
    oracle = make_oracle(
        responder=lambda p: "" if "consolidate" in p else _reply_for(p),
        delay=0.001,
    )

    async with _analyzer(oracle, chunk_size=1000, max_lines_per_chunk=1, parallel_chunks=2) as analyzer:
        result = await analyzer.analyze_in_chunks(content)

    assert result.patterns == [f"seen chunk-{i}" for i in range(5)]
    assert result.summary == "Analyzed 5 segments of the log file."
    assert oracle.max_in_flight <= 2


@pytest.mark.asyncio
async def test_failed_chunk_fails_the_whole_analysis(make_oracle: Callable) -> None:
    def responder(prompt: str) -> str:
        if "chunk-2" in prompt:
            raise OracleUnavailableError("model down")
        return _reply_for(prompt)

    oracle = make_oracle(responder=responder)

    async with _analyzer(oracle, max_lines_per_chunk=1) as analyzer:
        with pytest.raises(OracleUnavailableError):
            await analyzer.analyze_in_chunks("chunk-0\nchunk-1\nchunk-2\nchunk-3")


@pytest.mark.asyncio
async def test_content_analysis_streams_deltas(make_oracle: Callable, analysis_reply: str) -> None:
    oracle = make_oracle(replies=[analysis_reply])
    deltas: list[tuple[str, str]] = []
    events: list[AnalysisProgress] = []

    async with _analyzer(oracle) as analyzer:
        await analyzer.analyze_log_content(
            "ERROR boom", stream=lambda d, full: deltas.append((d, full)), progress=events.append
        )

    assert "".join(d for d, _ in deltas) == analysis_reply
    assert deltas[-1][1] == analysis_reply
    assert all(20 <= e.progress <= 90 for e in events)


@pytest.mark.asyncio
async def test_content_is_sanitized_before_prompting(make_oracle: Callable, analysis_reply: str) -> None:
    oracle = make_oracle(replies=[analysis_reply])

    async with _analyzer(oracle) as analyzer:
        await analyzer.analyze_log_content("bad\0byte\n" + "z" * 10_005)

    prompt = oracle.sent[0].prompt
    assert "\0" not in prompt
    assert "badbyte" in prompt
    assert "z" * 10_000 + "... [truncated]" in prompt


@pytest.mark.asyncio
async def test_empty_model_reply_is_an_error(fake_oracle) -> None:
    async with _analyzer(fake_oracle) as analyzer:
        with pytest.raises(OracleUnavailableError):
            await analyzer.analyze_log_content("ERROR boom")


@pytest.mark.asyncio
async def test_multiple_texts_combine_similarities_and_exact_matches(make_oracle: Callable) -> None:
    shared = "2024-01-01T00:00:00Z ERROR db down\n2024-01-01T00:00:01Z WARN pool exhausted\n"
    files = [LogText("a.log", "chunk-a\n" + shared), LogText("b.log", shared + "chunk-b\n")]
    oracle = make_oracle(responder=_reply_for)
    events: list[AnalysisProgress] = []

    async with _analyzer(oracle) as analyzer:
        result = await analyzer.analyze_multiple_texts(files, progress=events.append)

    assert [fr.filename for fr in result.file_results] == ["a.log", "b.log"]
    assert result.file_results[0].analysis.patterns == ["seen chunk-a"]
    assert result.similarities.shared_root_causes == ["db down"]
    assert [m.category.value for m in result.similarities.exact_matches] == ["error", "warning"]
    assert result.overall_summary == "Two files, one outage."
    assert [e.progress for e in events] == [0, 0, 35, 75, 82, 90, 100]


@pytest.mark.asyncio
async def test_empty_summary_reply_uses_template(make_oracle: Callable) -> None:
    oracle = make_oracle(
        responder=lambda p: "" if "executive summary" in p else _reply_for(p)
    )

    async with _analyzer(oracle) as analyzer:
        result = await analyzer.analyze_multiple_texts(
            [LogText("a.log", "chunk-a"), LogText("b.log", "chunk-b")]
        )

    assert result.overall_summary == (
        "Analyzed 2 log files. Found 0 shared patterns, 0 shared anomalies, "
        "and 1 common root causes."
    )
    assert result.similarities.exact_matches == []


@pytest.mark.asyncio
async def test_multiple_files_reject_bad_input(tmp_path: Path, fake_oracle) -> None:
    async with _analyzer(fake_oracle) as analyzer:
        with pytest.raises(ValueError):
            await analyzer.analyze_multiple_log_files([])
        with pytest.raises(InputNotFoundError):
            await analyzer.analyze_multiple_log_files([tmp_path / "nope.log"])
