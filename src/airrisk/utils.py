"""
Internal utility functions for airrisk.
"""

from typing import Any, Awaitable, Callable, TypeVar

R = TypeVar("R")


def add_sync_version(
    async_fn: Callable[..., Awaitable[R]],
) -> Callable[..., Awaitable[R]]:
    """
    Attach a blocking ``.sync`` twin to a coroutine function.

    The twin runs the coroutine to completion in a fresh event loop, so it
    cannot be called from inside a running loop.

    Example:
        >>> @add_sync_version
        ... async def current_pm25(lat, lng):
        ...     ...

        >>> await current_pm25(13.75, 100.5)
        >>> current_pm25.sync(13.75, 100.5)
    """
    # sync imports convenience lazily; import here to keep module load acyclic
    from .sync import AsyncSyncBridge

    def sync_wrapper(*args: Any, **kwargs: Any) -> R:
        return AsyncSyncBridge.run_async(async_fn, args=args, kwargs=kwargs)

    sync_wrapper.__name__ = f"{async_fn.__name__}_sync"
    sync_wrapper.__doc__ = f"Synchronous version of {async_fn.__name__}."

    async_fn.sync = sync_wrapper  # type: ignore[attr-defined]
    return async_fn
