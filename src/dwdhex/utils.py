"""
Internal utility functions for dwdhex.
"""

import asyncio
from datetime import date, timedelta
from typing import (
    Any,
    Awaitable,
    Callable,
    Iterator,
    TypeVar,
)

R = TypeVar("R")


def run_async(async_fn: Callable[..., Awaitable[R]], *args: Any, **kwargs: Any) -> R:
    """Run an async function synchronously.

    Raises:
        RuntimeError: If called from within an existing event loop
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(async_fn(*args, **kwargs))

    raise RuntimeError(
        "Cannot use sync version from within an existing asyncio event loop. "
        "Use the async version instead."
    )


def add_sync_version(
    async_fn: Callable[..., Awaitable[R]],
) -> Callable[..., Awaitable[R]]:
    """
    A decorator that adds a .sync attribute to an async function, allowing it
    to be called synchronously.

    The .sync version runs the async function in a new asyncio event loop.

    Example:
        >>> @add_sync_version
        ... async def my_async_func(x):
        ...     return x * 2

        >>> # Async usage
        >>> result = await my_async_func(5)

        >>> # Sync usage
        >>> result = my_async_func.sync(5)
    """

    def sync_wrapper(*args: Any, **kwargs: Any) -> R:
        """Synchronous wrapper for the async function."""
        return run_async(async_fn, *args, **kwargs)

    async_fn.sync = sync_wrapper  # type: ignore
    return async_fn


def date_range(start: date, end: date) -> Iterator[date]:
    """Yield every day from start to end, inclusive."""
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)
