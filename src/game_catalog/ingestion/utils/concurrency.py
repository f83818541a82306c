"""Bounded fan-out helpers."""

import asyncio
from collections.abc import Awaitable, Iterable
from typing import TypeVar

R = TypeVar("R")


async def gather_bounded(
    aws: Iterable[Awaitable[R]],
    *,
    limit: int,
) -> list[R | BaseException]:
    """
    Await all awaitables with at most `limit` in flight.

    Results come back in input order; exceptions are returned in
    place of results so one branch cannot cancel the others.
    """
    semaphore = asyncio.Semaphore(limit)

    async def _run(aw: Awaitable[R]) -> R:
        async with semaphore:
            return await aw

    return await asyncio.gather(*(_run(aw) for aw in aws), return_exceptions=True)
