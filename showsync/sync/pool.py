"""Bounded-concurrency fan-out for batch work.

Every item runs to completion before anything is raised, so one item's
failure never cancels the others.  Workers are expected to turn per-item
failures into result values; an ``InfrastructureError`` from any item is
re-raised in preference to other exceptions.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, TypeVar

from showsync.errors import InfrastructureError

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    limit: int,
) -> list[R]:
    """Run ``worker`` over ``items`` with at most ``limit`` in flight.

    Results are returned in input order.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def run_one(item: T) -> R:
        async with semaphore:
            return await worker(item)

    results = await asyncio.gather(
        *(run_one(item) for item in items), return_exceptions=True
    )

    for result in results:
        if isinstance(result, InfrastructureError):
            raise result
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results  # type: ignore[return-value]
