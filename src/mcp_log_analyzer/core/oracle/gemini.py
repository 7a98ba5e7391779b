"""Gemini-backed model session."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Sequence
from typing import Any

from ..config import AnalyzerConfig
from ..errors import OracleUnavailableError
from .base import Attachment, DeltaSink, OracleResponse

logger = logging.getLogger(__name__)


def _make_client() -> Any:
    """Build a google-genai client from the environment."""
    api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise OracleUnavailableError("Missing GEMINI_API_KEY (or GOOGLE_API_KEY).")

    try:
        from google import genai
    except ImportError as e:  # pragma: no cover
        raise OracleUnavailableError(
            "google-genai is required for analysis. Install with: pip install '.[ai]'"
        ) from e

    return genai.Client(api_key=api_key)


async def _build_contents(prompt: str, attachments: Sequence[Attachment]) -> list[Any]:
    if not attachments:
        return [prompt]

    from google.genai import types

    contents: list[Any] = [prompt]
    for att in attachments:
        data = await att.read_bytes()
        contents.append(f"Attached file: {att.display_name}")
        contents.append(types.Part.from_bytes(data=data, mime_type="text/plain"))
    return contents


class GeminiOracle:
    """Send prompts to Gemini, retrying transient failures with backoff.

    A streaming call that fails after a delta reached ``on_delta`` is not
    retried: the sink has already seen part of that attempt's text.
    """

    def __init__(self, cfg: AnalyzerConfig, *, client: Any | None = None) -> None:
        self._cfg = cfg
        self._client = client if client is not None else _make_client()

    async def _generate(
        self, contents: list[Any], on_delta: DeltaSink | None, streamed: list[str]
    ) -> str:
        config = {"temperature": self._cfg.temperature}
        models = self._client.aio.models

        if on_delta is None:
            resp = await models.generate_content(
                model=self._cfg.model, contents=contents, config=config
            )
            return resp.text or ""

        stream = await models.generate_content_stream(
            model=self._cfg.model, contents=contents, config=config
        )
        async for chunk in stream:
            delta = chunk.text or ""
            if delta:
                streamed.append(delta)
                on_delta(delta)
        return "".join(streamed)

    async def send_and_wait(
        self,
        prompt: str,
        *,
        attachments: Sequence[Attachment] = (),
        on_delta: DeltaSink | None = None,
    ) -> OracleResponse:
        contents = await _build_contents(prompt, attachments)

        last_err: Exception | None = None
        for attempt in range(1, self._cfg.max_retries + 1):
            streamed: list[str] = []
            try:
                return OracleResponse(content=await self._generate(contents, on_delta, streamed))
            except Exception as e:
                if streamed:
                    raise OracleUnavailableError(
                        f"Gemini stream failed after partial output: {e}"
                    ) from e
                last_err = e
                if attempt >= self._cfg.max_retries:
                    break
                sleep_s = min(8, 2 ** (attempt - 1))
                logger.warning(
                    "Gemini call failed (attempt %s/%s): %s", attempt, self._cfg.max_retries, e
                )
                await asyncio.sleep(sleep_s)

        raise OracleUnavailableError(
            f"Gemini call failed after {self._cfg.max_retries} attempts: {last_err}"
        ) from last_err

    async def close(self) -> None:
        closer = getattr(self._client.aio, "aclose", None)
        if closer is not None:
            await closer()
