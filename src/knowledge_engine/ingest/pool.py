"""Bounded-concurrency worker pool for per-chunk provider calls."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")

MAX_CONCURRENCY = 10


async def run_bounded(
    items: Sequence[T],
    transform: Callable[[T], Awaitable[R]],
    max_concurrency: int = MAX_CONCURRENCY,
) -> list[R]:
    """Apply *transform* to every item with at most *max_concurrency* in flight.

    ``min(max_concurrency, len(items))`` workers share one queue of
    ``(position, item)`` pairs. A worker checks and pops the queue with no
    await in between, so under the event loop each item is taken by exactly
    one worker. Results land in the slot of the item's original position, so
    the returned list follows input order whatever the completion order.

    If a transform raises, the other workers are cancelled and the exception
    propagates.
    """
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
    if not items:
        return []

    queue: deque[tuple[int, T]] = deque(enumerate(items))
    results: list[R | None] = [None] * len(items)

    async def worker() -> None:
        while queue:
            position, item = queue.popleft()
            results[position] = await transform(item)

    workers = [
        asyncio.ensure_future(worker())
        for _ in range(min(max_concurrency, len(items)))
    ]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        raise
    return results  # type: ignore[return-value]
