from __future__ import annotations

from pathlib import Path

import pytest

from mcp_log_analyzer.core.line_matching import NORMALIZATION_RULES
from mcp_log_analyzer.resources.registry import (
    _resolve_resource_path,
    _safe_resolve,
    normalization_rules_table,
)


def test_relative_paths_resolve_under_base_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_ANALYZER_BASE_DIR", str(tmp_path))

    assert _safe_resolve("logs/app.log") == tmp_path.resolve() / "logs" / "app.log"


def test_paths_escaping_base_dir_are_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_ANALYZER_BASE_DIR", str(tmp_path))

    with pytest.raises(ValueError, match="escapes"):
        _safe_resolve("../outside.log")


def test_resource_files_must_exist_and_have_allowed_suffix(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("LOG_ANALYZER_BASE_DIR", str(tmp_path))
    (tmp_path / "app.log").write_text("ok\n", encoding="utf-8")
    (tmp_path / "secrets.env").write_text("KEY=1\n", encoding="utf-8")

    assert _resolve_resource_path("app.log") == tmp_path.resolve() / "app.log"
    with pytest.raises(FileNotFoundError):
        _resolve_resource_path("missing.log")
    with pytest.raises(ValueError, match="not allowed"):
        _resolve_resource_path("secrets.env")


def test_normalization_rules_table_preserves_order() -> None:
    table = normalization_rules_table()

    assert [row["name"] for row in table] == [r.name for r in NORMALIZATION_RULES]
    assert all(set(row) == {"name", "pattern", "replacement"} for row in table)
