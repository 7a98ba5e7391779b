"""Bounded-concurrency mapping over a fixed work list."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def map_bounded(
    items: Sequence[T],
    fn: Callable[[int, T], Awaitable[R]],
    *,
    concurrency: int,
) -> list[R]:
    """Run ``fn(index, item)`` for every item with at most ``concurrency`` in flight.

    Workers pull the next index from a shared queue; each result is stored at
    its item's index, so output order matches input order regardless of which
    call finishes first. The first failure cancels the remaining workers and
    is re-raised.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")
    if not items:
        return []

    work: asyncio.Queue[int] = asyncio.Queue()
    for index in range(len(items)):
        work.put_nowait(index)

    results: list[R | None] = [None] * len(items)

    async def worker() -> None:
        while True:
            try:
                index = work.get_nowait()
            except asyncio.QueueEmpty:
                return
            results[index] = await fn(index, items[index])

    tasks = [asyncio.create_task(worker()) for _ in range(min(concurrency, len(items)))]
    try:
        await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    return results  # type: ignore[return-value]
