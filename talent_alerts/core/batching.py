"""Bounded-width batch execution with inter-batch pauses.

Used wherever many upstream lookups are issued at once (note details,
candidate hydration, mail chunks). This is a throttling discipline for
upstream rate limits, not a shared concurrency limiter.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    if size < 1:
        msg = f"batch size must be >= 1, got {size}"
        raise ValueError(msg)
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


async def gather_in_batches(
    items: Sequence[T],
    fn: Callable[[T], Awaitable[R]],
    *,
    batch_size: int,
    pause_s: float,
) -> tuple[list[tuple[T, R]], list[tuple[T, BaseException]]]:
    """Run ``fn`` over ``items`` in parallel batches, pausing between batches.

    Returns ``(succeeded, failed)`` as lists of ``(item, result)`` and
    ``(item, exception)`` pairs, in input order. No pause after the last batch.
    Cancellation is not swallowed.
    """
    succeeded: list[tuple[T, R]] = []
    failed: list[tuple[T, BaseException]] = []
    batches = chunked(items, batch_size)

    for index, batch in enumerate(batches):
        results = await asyncio.gather(*(fn(item) for item in batch), return_exceptions=True)
        for item, result in zip(batch, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                failed.append((item, result))
            else:
                succeeded.append((item, result))

        logger.debug(
            "Batch %d/%d done: %d ok, %d failed so far",
            index + 1, len(batches), len(succeeded), len(failed),
        )
        if index < len(batches) - 1 and pause_s > 0:
            await asyncio.sleep(pause_s)

    return succeeded, failed
