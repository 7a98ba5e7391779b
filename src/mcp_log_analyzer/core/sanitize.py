"""Clean-up of log text before it is embedded in a prompt."""

from __future__ import annotations

MAX_LINE_LENGTH = 10_000
_TRUNCATED_MARKER = "... [truncated]"


def truncate(text: str, max_length: int) -> str:
    """Shorten text to ``max_length`` characters, ending with an ellipsis."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def sanitize_log_content(content: str, *, max_line_length: int = MAX_LINE_LENGTH) -> str:
    """Drop NUL bytes and cut very long lines; line count is preserved."""
    content = content.replace("\0", "")
    return "\n".join(
        line if len(line) <= max_line_length else line[:max_line_length] + _TRUNCATED_MARKER
        for line in content.split("\n")
    )
