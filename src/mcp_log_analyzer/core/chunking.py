"""Line-aligned chunking of large log texts."""

from __future__ import annotations

from .models import ChunkDescriptor, LineRange

# ~500KB is roughly 125K tokens of log text.
DEFAULT_CHUNK_SIZE = 500 * 1024
DEFAULT_MAX_LINES_PER_CHUNK = 5000


def split_into_chunks(
    content: str,
    *,
    max_size: int = DEFAULT_CHUNK_SIZE,
    max_lines: int = DEFAULT_MAX_LINES_PER_CHUNK,
) -> list[ChunkDescriptor]:
    """Split text into contiguous chunks bounded by size and line count.

    Lines are never split; a single line longer than ``max_size`` becomes its
    own chunk. Rejoining chunk contents with ``"\\n"`` yields ``content``.
    """
    if max_size < 1:
        raise ValueError("max_size must be >= 1")
    if max_lines < 1:
        raise ValueError("max_lines must be >= 1")
    if not content:
        return []

    lines = content.split("\n")
    chunks: list[ChunkDescriptor] = []
    current: list[str] = []
    current_size = 0
    start = 0

    for i, line in enumerate(lines):
        line_size = len(line) + 1  # trailing newline

        if current and (current_size + line_size > max_size or len(current) >= max_lines):
            chunks.append(
                ChunkDescriptor(
                    content="\n".join(current),
                    line_range=LineRange(start=start + 1, end=i),
                )
            )
            current = []
            current_size = 0
            start = i

        current.append(line)
        current_size += line_size

    if current:
        chunks.append(
            ChunkDescriptor(
                content="\n".join(current),
                line_range=LineRange(start=start + 1, end=len(lines)),
            )
        )

    return chunks
