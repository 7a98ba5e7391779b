"""Exceptions raised by the analysis pipeline."""

from __future__ import annotations


class LogAnalyzerError(Exception):
    """Base class for analyzer failures."""


class InputNotFoundError(LogAnalyzerError, FileNotFoundError):
    """A referenced log file does not exist."""


class NotInitializedError(LogAnalyzerError, RuntimeError):
    """An operation was invoked before the model session was created."""


class OracleUnavailableError(LogAnalyzerError, RuntimeError):
    """The model call failed or returned no usable content."""
