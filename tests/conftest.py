from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from mcp_log_analyzer.core.config import AnalyzerConfig
from mcp_log_analyzer.core.oracle import Attachment, DeltaSink, OracleResponse


@dataclass
class SentPrompt:
    prompt: str
    attachments: list[Attachment]


@dataclass
class FakeOracle:
    """Scripted oracle: answers come from ``responder`` or a fixed queue.

    A queued ``Exception`` instance is raised instead of returned.
    """

    replies: list[str | Exception] = field(default_factory=list)
    responder: Callable[[str], str] | None = None
    delay: float = 0.0
    sent: list[SentPrompt] = field(default_factory=list)
    closed: bool = False
    in_flight: int = 0
    max_in_flight: int = 0

    async def send_and_wait(
        self,
        prompt: str,
        *,
        attachments: Sequence[Attachment] = (),
        on_delta: DeltaSink | None = None,
    ) -> OracleResponse:
        self.sent.append(SentPrompt(prompt=prompt, attachments=list(attachments)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.responder is not None:
                reply: str | Exception = self.responder(prompt)
            elif self.replies:
                reply = self.replies.pop(0)
            else:
                reply = ""
        finally:
            self.in_flight -= 1

        if isinstance(reply, Exception):
            raise reply
        if on_delta is not None:
            for i in range(0, len(reply), 16):
                on_delta(reply[i : i + 16])
        return OracleResponse(content=reply)

    async def close(self) -> None:
        self.closed = True


ANALYSIS_REPLY = (
    "## PATTERNS\n"
    "- Repeated health checks\n"
    "## ANOMALIES\n"
    "- Database connection refused\n"
    "## ROOT CAUSES\n"
    "- PostgreSQL is not running\n"
    "## SUMMARY\n"
    "Service cannot reach its database.\n"
)


@pytest.fixture
def analysis_reply() -> str:
    return ANALYSIS_REPLY


@pytest.fixture
def make_oracle() -> Callable[..., FakeOracle]:
    return FakeOracle


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def oracle_factory(fake_oracle: FakeOracle) -> Callable[[AnalyzerConfig], FakeOracle]:
    def _factory(cfg: AnalyzerConfig) -> FakeOracle:
        return fake_oracle

    return _factory


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "LOG_ANALYZER_MODEL",
        "LOG_ANALYZER_PARALLEL_CHUNKS",
        "LOG_ANALYZER_CHUNK_SIZE",
        "LOG_ANALYZER_MAX_LINES_PER_CHUNK",
        "GITHUB_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_log() -> Callable[[Path], None]:
    def _write(path: Path) -> None:
        path.write_text(
            "\n".join(
                [
                    "2025-12-30T08:12:01Z [INFO] service started pid=4121",
                    "2025-12-30T08:12:03Z [WARN] retrying request id=abc123",
                    "2025-12-30T08:12:04Z [ERROR] upstream timeout route=/api/v1/items",
                    "2025-12-30T08:12:05Z [ERROR] connect ECONNREFUSED 127.0.0.1:5432",
                ]
            )
            + "\n",
            encoding="utf-8",
        )

    return _write


@pytest.fixture
def write_lines() -> Callable[[Path, list[str]], None]:
    def _write(path: Path, lines: list[str]) -> None:
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    return _write
