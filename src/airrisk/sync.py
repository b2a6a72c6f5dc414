"""
Synchronous wrapper functions and utilities for airrisk.

This module provides synchronous versions of the async convenience functions
for scripts and notebooks that cannot use async/await syntax. Under the hood,
these functions use asyncio to run the coroutine to completion.

Usage:
    # Instead of this async code:
    result = await get_air_quality(13.75, 100.50)

    # Use this sync code:
    from airrisk.sync import get_air_quality_sync
    result = get_air_quality_sync(13.75, 100.50)
"""

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Sequence, TypeVar

if TYPE_CHECKING:
    from .models import FetchResult, PersonProfile, RouteCandidate, RouteRanking

R = TypeVar("R")


class AsyncSyncBridge:
    """Runs async functions synchronously in a fresh event loop."""

    @staticmethod
    def run_async(
        async_fn: Callable[..., Awaitable[R]],
        args: tuple = (),
        kwargs: Optional[dict] = None,
    ) -> R:
        """Run an async function synchronously.

        Args:
            async_fn: Async function to run
            args: Positional arguments for the function
            kwargs: Keyword arguments for the function

        Returns:
            Result of running the async function

        Raises:
            RuntimeError: If called from within an existing event loop
        """
        if kwargs is None:
            kwargs = {}

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            raise RuntimeError(
                "Cannot use sync version from within an existing asyncio event loop. "
                "Use the async version instead."
            )

        return asyncio.run(async_fn(*args, **kwargs))


def get_air_quality_sync(
    latitude: float, longitude: float, **kwargs: Any
) -> "FetchResult":
    """Synchronous version of get_air_quality.

    Examples:
        >>> result = get_air_quality_sync(13.75, 100.50)
        >>> result.reading.pm25
    """
    from .convenience import get_air_quality

    return AsyncSyncBridge.run_async(
        get_air_quality, args=(latitude, longitude), kwargs=kwargs
    )


def get_route_exposure_sync(
    coordinates: Sequence[Any],
    distance_meters: float,
    duration_seconds: float,
    **kwargs: Any,
) -> "RouteCandidate":
    """Synchronous version of get_route_exposure."""
    from .convenience import get_route_exposure

    return AsyncSyncBridge.run_async(
        get_route_exposure,
        args=(coordinates, distance_meters, duration_seconds),
        kwargs=kwargs,
    )


def analyze_routes_sync(
    routes: Sequence[Any],
    person: Optional["PersonProfile"] = None,
    **kwargs: Any,
) -> "RouteRanking":
    """Synchronous version of analyze_routes.

    Examples:
        >>> ranking = analyze_routes_sync(directions["routes"], PersonProfile(diseases={"asthma"}))
        >>> ranking.to_pandas()
    """
    from .convenience import analyze_routes

    return AsyncSyncBridge.run_async(
        analyze_routes, args=(routes,), kwargs={"person": person, **kwargs}
    )
