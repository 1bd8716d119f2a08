"""Shared-task helpers used by both orchestrators.

One ``asyncio.Task`` per key does the network work; every caller for that key
awaits the same task. Waiters go through ``asyncio.shield`` so a cancelled
caller stops waiting without cancelling the shared fetch or changing the
result the other waiters see.
"""

from __future__ import annotations

import asyncio
from typing import TypeVar

T = TypeVar("T")


async def await_shared(task: asyncio.Task[T | None]) -> T | None:
    """Await a shared task on behalf of one caller.

    Returns ``None`` if the shared task itself was cancelled (e.g. on
    shutdown). Re-raises ``CancelledError`` when it is the caller that is
    being cancelled.
    """
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        current = asyncio.current_task()
        if task.cancelled() and (current is None or current.cancelling() == 0):
            return None
        raise


async def cancel_all(tasks: list[asyncio.Task]) -> None:
    """Cancel ``tasks`` and wait for them to finish."""
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
