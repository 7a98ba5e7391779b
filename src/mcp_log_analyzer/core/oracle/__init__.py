"""Model session package."""

from __future__ import annotations

from .base import Attachment, DeltaSink, Oracle, OracleResponse
from .gemini import GeminiOracle

__all__ = [
    "Attachment",
    "DeltaSink",
    "GeminiOracle",
    "Oracle",
    "OracleResponse",
]
