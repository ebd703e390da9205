"""All-or-nothing concurrent execution of independent awaitables."""

import asyncio
from collections.abc import Awaitable
from typing import Any


async def gather_all(*aws: Awaitable[Any]) -> list[Any]:
    """Run awaitables concurrently and return their results in order.

    On the first failure (or cancellation of the caller) every sibling still
    running is cancelled and awaited before the error propagates, so no work
    outlives the request.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def resolved(value: Any = None) -> Any:
    """Awaitable that immediately yields ``value``; placeholder for a skipped branch."""
    return value
