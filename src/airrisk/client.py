"""
Async client for the World Air Quality Index (WAQI / AQICN) JSON API.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import EngineConfig
from .exceptions import (
    ConfigurationError,
    ProviderConnectionError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from .geo import BoundingBox, validate_bbox

logger = logging.getLogger(__name__)


class WAQIClient:
    """
    Client for the WAQI feed API.

    Every request carries an explicit timeout; a request that exceeds it raises
    ProviderTimeoutError.

    Example:
        >>> async with WAQIClient(EngineConfig(api_token="...")) as client:
        ...     data = await client.get_feed_by_geo(13.75, 100.50)
    """

    def __init__(self, config: EngineConfig):
        if not isinstance(config, EngineConfig):
            raise ConfigurationError("WAQIClient requires an EngineConfig")
        self.config = config
        self.timeout = config.timeout
        self.base_url = config.base_url
        self._client = httpx.AsyncClient(
            timeout=config.timeout,
            headers={
                "User-Agent": config.user_agent,
                "Accept": "application/json",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "WAQIClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _make_request(
        self, endpoint: str, params: Optional[Dict[str, str]] = None
    ) -> Any:
        """Make a request to the WAQI API with error handling; returns the ``data`` member."""
        url = f"{self.base_url}/{endpoint}"
        query = {"token": self.config.api_token}
        if params:
            query.update(params)

        try:
            response = await self._client.get(url, params=query)
            response.raise_for_status()
            body = response.json()

        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Request timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ProviderResponseError("Endpoint or station not found") from e
            elif e.response.status_code == 429:
                raise ProviderConnectionError("Rate limit exceeded") from e
            elif e.response.status_code >= 500:
                raise ProviderConnectionError(
                    "Air quality provider temporarily unavailable"
                ) from e
            else:
                raise ProviderConnectionError(
                    f"HTTP error {e.response.status_code}: {e}"
                ) from e
        except httpx.RequestError as e:
            raise ProviderConnectionError(f"Network error: {e}") from e
        except ValueError as e:
            raise ProviderResponseError(f"Invalid JSON response: {e}") from e

        if not isinstance(body, dict):
            raise ProviderResponseError(f"Unexpected response type: {type(body).__name__}")

        status = body.get("status")
        if status != "ok":
            detail = body.get("data") or body.get("message") or "Unknown error"
            if isinstance(detail, str) and "invalid key" in detail.lower():
                raise ConfigurationError(f"Provider rejected the API token: {detail}")
            raise ProviderResponseError(f"API error: {detail}")

        return body.get("data")

    async def get_feed_by_geo(self, latitude: float, longitude: float) -> Dict[str, Any]:
        """
        Get the feed of the station nearest to a coordinate.

        Args:
            latitude: Target latitude
            longitude: Target longitude

        Returns:
            The raw ``data`` object (aqi, iaqi, city, time, ...)

        Raises:
            ProviderError: On network, HTTP or body errors
        """
        logger.debug(f"Requesting feed for ({latitude}, {longitude})")
        data = await self._make_request(f"feed/geo:{latitude};{longitude}/")
        if not isinstance(data, dict):
            raise ProviderResponseError("Feed response has no data object")
        return data

    async def get_stations_in_bounds(self, bbox: BoundingBox) -> List[Dict[str, Any]]:
        """
        List stations inside a bounding box.

        Args:
            bbox: (min_lat, min_lng, max_lat, max_lng)

        Returns:
            Raw station entries (lat, lon, uid, aqi, station{name, time})
        """
        min_lat, min_lng, max_lat, max_lng = validate_bbox(bbox)
        data = await self._make_request(
            "map/bounds/",
            {"latlng": f"{min_lat},{min_lng},{max_lat},{max_lng}"},
        )
        if not isinstance(data, list):
            raise ProviderResponseError("Bounds response has no station list")
        return data
