"""Analyzer configuration and environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from .chunking import DEFAULT_CHUNK_SIZE, DEFAULT_MAX_LINES_PER_CHUNK


@dataclass(frozen=True, slots=True)
class AnalyzerConfig:
    model: str = "gemini-2.5-flash"

    # Files above chunk_size bytes are split and analyzed in parallel.
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_lines_per_chunk: int = DEFAULT_MAX_LINES_PER_CHUNK
    parallel_chunks: int = 3

    temperature: float = 0.2
    max_retries: int = 3

    # Strip NUL bytes and truncate huge lines before embedding logs in prompts.
    sanitize: bool = True


_INT_OVERRIDES = {
    "LOG_ANALYZER_PARALLEL_CHUNKS": "parallel_chunks",
    "LOG_ANALYZER_CHUNK_SIZE": "chunk_size",
    "LOG_ANALYZER_MAX_LINES_PER_CHUNK": "max_lines_per_chunk",
}


def _env_positive_int(name: str) -> int | None:
    env = os.getenv(name)
    if env is None or env == "":
        return None
    try:
        value = int(env)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 1:
        raise ValueError(f"{name} must be >= 1")
    return value


def resolve_analyzer_config(cfg: AnalyzerConfig | None) -> AnalyzerConfig:
    """Return config with optional env overrides applied."""
    if cfg is None:
        cfg = AnalyzerConfig()

    changes: dict[str, object] = {}
    for env_name, field_name in _INT_OVERRIDES.items():
        value = _env_positive_int(env_name)
        if value is not None and value != getattr(cfg, field_name):
            changes[field_name] = value

    model = os.getenv("LOG_ANALYZER_MODEL")
    if model and model != cfg.model:
        changes["model"] = model

    if not changes:
        return cfg
    return replace(cfg, **changes)
