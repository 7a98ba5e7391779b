"""Core data models for log analysis."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LineCategory(str, Enum):
    """Severity bucket assigned to a matched log line."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"
    OTHER = "other"


class AnalysisStage(str, Enum):
    UPLOADING = "uploading"
    SCANNING = "scanning"
    ANALYZING = "analyzing"
    AGGREGATING = "aggregating"
    COMPLETE = "complete"
    ERROR = "error"


class LogAnalysisResult(BaseModel):
    """Structured findings extracted from one model response."""

    model_config = ConfigDict(frozen=True)

    patterns: list[str] = Field(default_factory=list, description="Recurring patterns.")
    anomalies: list[str] = Field(default_factory=list, description="Unusual events.")
    root_causes: list[str] = Field(default_factory=list, description="Likely root causes.")
    summary: str = Field(default="", description="Free-text summary, verbatim.")

    def is_empty(self) -> bool:
        return not (self.patterns or self.anomalies or self.root_causes or self.summary)


@dataclass(frozen=True, slots=True)
class LineRange:
    """1-indexed, inclusive line span."""

    start: int
    end: int


@dataclass(frozen=True, slots=True)
class ChunkDescriptor:
    """A line-aligned slice of a larger log text."""

    content: str
    line_range: LineRange


@dataclass(frozen=True, slots=True)
class ChunkAnalysisResult:
    """Per-chunk findings tagged with where they came from."""

    chunk_id: int
    line_range: LineRange
    patterns: tuple[str, ...]
    anomalies: tuple[str, ...]
    root_causes: tuple[str, ...]

    @classmethod
    def from_analysis(
        cls, chunk_id: int, chunk: ChunkDescriptor, analysis: LogAnalysisResult
    ) -> ChunkAnalysisResult:
        return cls(
            chunk_id=chunk_id,
            line_range=chunk.line_range,
            patterns=tuple(analysis.patterns),
            anomalies=tuple(analysis.anomalies),
            root_causes=tuple(analysis.root_causes),
        )


@dataclass(frozen=True, slots=True)
class LogText:
    """Raw text of one input file, keyed by its display name."""

    filename: str
    content: str


class FileAnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    file_size: int
    analysis: LogAnalysisResult


class LineOccurrence(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    line_numbers: list[int] = Field(description="1-indexed line numbers (first 10 only).")


class ExactLineMatch(BaseModel):
    """A normalized line found verbatim in two or more files."""

    model_config = ConfigDict(frozen=True)

    line: str = Field(description="First-seen original line, trimmed.")
    occurrences: list[LineOccurrence]
    category: LineCategory
    total_count: int = Field(description="Occurrences across all files, uncapped.")


class SimilarityResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    shared_patterns: list[str] = Field(default_factory=list)
    shared_anomalies: list[str] = Field(default_factory=list)
    shared_root_causes: list[str] = Field(default_factory=list)
    correlations: list[str] = Field(default_factory=list)
    exact_matches: list[ExactLineMatch] | None = None


class MultiFileAnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_results: list[FileAnalysisResult]
    similarities: SimilarityResult
    overall_summary: str


@dataclass(frozen=True, slots=True)
class AnalysisProgress:
    """Milestone reported to a progress sink."""

    stage: AnalysisStage
    progress: int  # 0..100
    message: str
    current_chunk: int | None = None
    total_chunks: int | None = None
