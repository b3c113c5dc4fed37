"""
Bounded execution of blocking calls from async code.

Repository methods are synchronous SQLAlchemy calls; the pipeline runs them in
a worker thread with a deadline so one slow query cannot stall a whole run.
"""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_blocking(func: Callable[..., T], *args: Any, timeout: float, **kwargs: Any) -> T:
    """
    Run a blocking callable in a thread and wait at most `timeout` seconds.

    Raises:
        asyncio.TimeoutError: If the call does not finish in time. The thread
            itself is not interrupted; its result is discarded.
    """
    return await asyncio.wait_for(asyncio.to_thread(func, *args, **kwargs), timeout=timeout)
