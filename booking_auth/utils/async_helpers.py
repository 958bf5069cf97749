"""Async utility functions bridging sync and async code."""

import asyncio
import functools
from typing import Any, Callable, Coroutine, TypeVar

T = TypeVar('T')


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run an async coroutine in a sync context.

    Used by Celery tasks that call into the async repositories.

    Args:
        coro: Async coroutine to run

    Returns:
        Result of the coroutine

    Raises:
        RuntimeError: If called from inside a running event loop
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    coro.close()
    raise RuntimeError("Cannot run async code from within an event loop")


async def run_blocking(func: Callable[..., T], *args: Any) -> T:
    """
    Run a blocking callable in the default executor.

    Args:
        func: CPU-bound or blocking callable
        *args: Positional arguments for the callable

    Returns:
        Result of the callable
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args))
