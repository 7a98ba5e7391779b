"""Model-session interface shared by every analysis stage."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import aiofiles


@dataclass(frozen=True, slots=True)
class Attachment:
    """A file handed to the model alongside the prompt (path or in-memory bytes)."""

    display_name: str
    path: Path | None = None
    data: bytes | None = None

    def __post_init__(self) -> None:
        if (self.path is None) == (self.data is None):
            raise ValueError("Attachment needs exactly one of path or data")

    async def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError("Attachment has neither path nor data")
        async with aiofiles.open(self.path, "rb") as f:
            return await f.read()


@dataclass(frozen=True, slots=True)
class OracleResponse:
    content: str


DeltaSink = Callable[[str], None]


class Oracle(Protocol):
    """Prompt in, free-form text out.

    Implementations raise ``OracleUnavailableError`` when the call fails and
    return an empty ``content`` when the model produced nothing usable.
    ``on_delta`` receives streamed text fragments, in order, before the
    terminal response is returned.
    """

    async def send_and_wait(
        self,
        prompt: str,
        *,
        attachments: Sequence[Attachment] = (),
        on_delta: DeltaSink | None = None,
    ) -> OracleResponse: ...

    async def close(self) -> None: ...
