from __future__ import annotations

import argparse
import asyncio
import glob
import json
import logging
import os
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from mcp_log_analyzer.core.analyzer import LogAnalyzer
from mcp_log_analyzer.core.config import resolve_analyzer_config
from mcp_log_analyzer.core.errors import LogAnalyzerError
from mcp_log_analyzer.core.issues import (
    IssueSuggester,
    IssueSuggestion,
    attribute_source_files,
    combine_file_analyses,
)
from mcp_log_analyzer.core.line_matching import find_exact_line_matches
from mcp_log_analyzer.core.models import (
    AnalysisProgress,
    AnalysisStage,
    ExactLineMatch,
    FileAnalysisResult,
    LogAnalysisResult,
    LogText,
    MultiFileAnalysisResult,
)
from mcp_log_analyzer.core.sanitize import truncate

RULE = "=" * 80
SUBRULE = "-" * 80
BAR_WIDTH = 30
FILE_SEPARATOR = "\n\n---FILE SEPARATOR---\n\n"


def _positive_int(s: str) -> int:
    try:
        value = int(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError("must be an integer") from e
    if value < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return value


def _expand_files(files: Sequence[str], patterns: Sequence[str]) -> list[Path]:
    out = [Path(f).resolve() for f in files]
    for pattern in patterns:
        matches = sorted(p for p in glob.glob(pattern) if os.path.isfile(p))
        # An unmatched pattern is treated as a literal path so the error names it.
        out.extend(Path(m).resolve() for m in matches or [pattern])
    return list(dict.fromkeys(out))


def _print_progress(progress: AnalysisProgress) -> None:
    filled = round(progress.progress / 100 * BAR_WIDTH)
    bar = "#" * filled + "." * (BAR_WIDTH - filled)
    sys.stderr.write(f"\r[{bar}] {progress.progress:3d}% {progress.message:<50.50}")
    if progress.stage in (AnalysisStage.COMPLETE, AnalysisStage.ERROR):
        sys.stderr.write("\n")
    sys.stderr.flush()


def _print_items(title: str, items: Sequence[str]) -> None:
    if not items:
        return
    print(f"\n{title}:")
    print(SUBRULE)
    for idx, item in enumerate(items, start=1):
        print(f"{idx}. {item}")


def _print_single(result: LogAnalysisResult) -> None:
    print("\n" + RULE)
    print("LOG ANALYSIS RESULTS")
    print(RULE)
    _print_items("PATTERNS DETECTED", result.patterns)
    _print_items("ANOMALIES FOUND", result.anomalies)
    _print_items("ROOT CAUSES", result.root_causes)
    if result.summary:
        print("\nSUMMARY:")
        print(SUBRULE)
        print(result.summary)
    print("\n" + RULE)


def _print_matches(matches: Sequence[ExactLineMatch]) -> None:
    print("\n" + RULE)
    print("EXACT LINE MATCHES")
    print(RULE)
    if not matches:
        print("\nNo lines are shared between the files.")
        return
    for idx, m in enumerate(matches, start=1):
        print(f"\n{idx}. [{m.category.value}] {truncate(m.line, 120)} (x{m.total_count})")
        for occ in m.occurrences:
            lines = ", ".join(str(n) for n in occ.line_numbers)
            print(f"   {occ.filename}: lines {lines}")


def _print_multi(result: MultiFileAnalysisResult) -> None:
    print("\n" + RULE)
    print("MULTI-FILE ANALYSIS RESULTS")
    print(RULE)

    for fr in result.file_results:
        a = fr.analysis
        print(f"\n{fr.filename} ({fr.file_size / 1024:.1f} KB)")
        print(SUBRULE)
        if a.patterns:
            print("  Patterns:", truncate("; ".join(a.patterns[:3]), 200))
        if a.anomalies:
            print("  Anomalies:", truncate("; ".join(a.anomalies[:3]), 200))
        if a.root_causes:
            print("  Root Causes:", truncate("; ".join(a.root_causes[:3]), 200))

    print("\n" + RULE)
    print("CROSS-FILE SIMILARITIES")
    print(RULE)
    sim = result.similarities
    _print_items("SHARED PATTERNS", sim.shared_patterns)
    _print_items("SHARED ANOMALIES", sim.shared_anomalies)
    _print_items("SHARED ROOT CAUSES", sim.shared_root_causes)
    _print_items("CORRELATIONS", sim.correlations)
    if sim.exact_matches:
        _print_matches(sim.exact_matches)

    print("\nOVERALL SUMMARY:")
    print(SUBRULE)
    print(result.overall_summary)
    print("\n" + RULE)


def _print_suggestions(suggestions: Sequence[IssueSuggestion]) -> None:
    if not suggestions:
        print("\nNo issue suggestions generated.")
        return

    print("\n" + RULE)
    print("GITHUB ISSUE SUGGESTIONS")
    print(RULE)
    for idx, s in enumerate(suggestions, start=1):
        print(f"\n{idx}. {s.error_signature}")
        print(SUBRULE)
        print(f"   {s.description}")
        print(f"   Search: {s.search_query}")
        if s.source_files:
            print(f"   Files: {', '.join(s.source_files)}")
        if s.linked_issues:
            print("   Related GitHub Issues:")
            for issue in s.linked_issues:
                print(f"      [{issue.state}] #{issue.number} - {issue.title}")
                print(f"         {issue.url}")
        else:
            print("   No matching GitHub issues found")
        if s.potential_solutions:
            print("   Potential solutions:")
            for sol in s.potential_solutions:
                print(f"      * {sol}")
    print("\n" + RULE)


async def _run(args: argparse.Namespace, paths: list[Path]) -> None:
    cfg = resolve_analyzer_config(None)
    if args.parallel_chunks is not None:
        cfg = replace(cfg, parallel_chunks=args.parallel_chunks)
    if args.model:
        cfg = replace(cfg, model=args.model)

    progress = None if args.json else _print_progress
    texts = [
        LogText(filename=p.name, content=p.read_text(encoding="utf-8", errors="replace"))
        for p in paths
    ]

    async with LogAnalyzer(cfg) as analyzer:
        if len(paths) == 1:
            analysis = await analyzer.analyze_log_file(paths[0], progress=progress)
            file_results = [
                FileAnalysisResult(
                    filename=paths[0].name, file_size=paths[0].stat().st_size, analysis=analysis
                )
            ]
            result: LogAnalysisResult | MultiFileAnalysisResult = analysis
        else:
            result = await analyzer.analyze_multiple_texts(texts, progress=progress)
            file_results = result.file_results
            analysis = combine_file_analyses(file_results)

    suggestions: list[IssueSuggestion] | None = None
    if args.suggest_issues:
        if not args.json:
            print("\nGenerating issue suggestions...", file=sys.stderr)
        async with IssueSuggester(cfg) as suggester:
            suggestions = await suggester.suggest_issues(
                analysis,
                repository_hint=args.repo,
                raw_log_content=FILE_SEPARATOR.join(t.content for t in texts),
            )
        suggestions = [
            s.model_copy(update={"source_files": attribute_source_files(s, file_results)})
            for s in suggestions
        ]

    if args.json:
        out = result.model_dump(mode="json")
        if suggestions is not None:
            out["issue_suggestions"] = [
                s.model_dump(mode="json", exclude_none=True) for s in suggestions
            ]
        print(json.dumps(out, indent=2))
        return

    if isinstance(result, MultiFileAnalysisResult):
        _print_multi(result)
    else:
        _print_single(result)
    if suggestions is not None:
        _print_suggestions(suggestions)


def main() -> None:
    p = argparse.ArgumentParser(
        description="Analyze log files with an AI model: patterns, anomalies, root causes."
    )
    p.add_argument("files", nargs="*", metavar="FILE", help="Log files to analyze")
    p.add_argument("--file", "-f", dest="extra_files", action="append", default=[],
                   help="Log file to analyze (repeatable)")
    p.add_argument("--files", dest="patterns", action="append", default=[],
                   help='Glob pattern of log files (e.g., "logs/*.log")')
    p.add_argument("--suggest-issues", action="store_true",
                   help="Suggest GitHub issue searches for the errors found")
    p.add_argument("--repo", default=None, help="owner/repo to scope issue searches to")
    p.add_argument("--parallel-chunks", type=_positive_int, default=None,
                   help="Chunks of a large file analyzed at once (default: 3)")
    p.add_argument("--model", default=None, help="Model name (default: gemini-2.5-flash)")
    p.add_argument("--json", action="store_true", help="Print results as JSON")
    p.add_argument("--matches-only", action="store_true",
                   help="Only find lines shared between files (no model calls)")

    args = p.parse_args()

    level_name = os.getenv("LOG_ANALYZER_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    paths = _expand_files([*args.files, *args.extra_files], args.patterns)
    if not paths:
        p.error("at least one log file is required")

    try:
        for path in paths:
            if not path.is_file():
                raise FileNotFoundError(f"Log file not found: {path}")

        if args.matches_only:
            if len(paths) < 2:
                raise ValueError("--matches-only needs at least two files")
            matches = find_exact_line_matches(
                [LogText(filename=path.name, content=path.read_text(encoding="utf-8", errors="replace"))
                 for path in paths]
            )
            if args.json:
                print(json.dumps([m.model_dump(mode="json") for m in matches], indent=2))
            else:
                _print_matches(matches)
            return

        if not args.json:
            print(f"\nAnalyzing {len(paths)} log file(s)...", file=sys.stderr)
            for path in paths:
                print(f"  * {path}", file=sys.stderr)

        asyncio.run(_run(args, paths))
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)
    except LogAnalyzerError as e:
        print(f"\nError during analysis: {e}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
