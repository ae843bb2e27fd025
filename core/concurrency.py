"""Bounded-concurrency helpers for fanning out upstream calls."""

import asyncio
from typing import Awaitable, Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")

__all__ = ["pmap", "chunked"]


async def pmap(
    items: Sequence[T],
    func: Callable[[T, int], Awaitable[R]],
    concurrency: int,
) -> List[R]:
    """
    Map an async function over items with at most ``concurrency`` in flight.

    ``func`` receives the item and its index. Results keep input order.
    Exceptions propagate; callers that must not fail catch inside ``func``.
    """
    if not items:
        return []

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def run(item: T, index: int) -> R:
        async with semaphore:
            return await func(item, index)

    return list(await asyncio.gather(*(run(item, i) for i, item in enumerate(items))))


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    """Split items into consecutive batches of at most ``size``."""
    if size <= 0:
        raise ValueError("size must be positive")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]
