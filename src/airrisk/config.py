"""
Runtime configuration for the exposure engine.

Settings can be built directly or read from the environment:

    >>> config = EngineConfig.from_env()
    >>> async with WAQIClient(config) as client:
    ...     data = await client.get_feed_by_geo(13.75, 100.5)
"""

import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TypeVar

from .exceptions import ConfigurationError

T = TypeVar("T")

DEFAULT_BASE_URL = "https://api.waqi.info"
DEFAULT_TIMEOUT = 10.0
MAX_TIMEOUT = 60.0
DEFAULT_CACHE_TTL = 300.0
DEFAULT_MAX_CONCURRENCY = 4
DEFAULT_REQUEST_DELAY = 0.1
DEFAULT_SAMPLE_INTERVAL_KM = 2.0

TOKEN_ENV_VARS = ("AIRRISK_API_TOKEN", "WAQI_TOKEN")


@dataclass
class EngineConfig:
    """Settings shared by the provider client, fetcher and route sampler."""

    api_token: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    cache_ttl: float = DEFAULT_CACHE_TTL
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    request_delay: float = DEFAULT_REQUEST_DELAY
    sample_interval_km: float = DEFAULT_SAMPLE_INTERVAL_KM
    user_agent: str = "airrisk-client/0.1.0"

    def __post_init__(self) -> None:
        if not self.api_token or not str(self.api_token).strip():
            raise ConfigurationError(
                "An API token for the air quality provider is required. "
                f"Set one of: {', '.join(TOKEN_ENV_VARS)}"
            )
        if not 0 < self.timeout <= MAX_TIMEOUT:
            raise ConfigurationError(
                f"timeout must be in (0, {MAX_TIMEOUT}] seconds, got {self.timeout}"
            )
        if self.cache_ttl <= 0:
            raise ConfigurationError(f"cache_ttl must be positive, got {self.cache_ttl}")
        if self.max_concurrency < 1:
            raise ConfigurationError(
                f"max_concurrency must be at least 1, got {self.max_concurrency}"
            )
        if self.request_delay < 0:
            raise ConfigurationError(
                f"request_delay cannot be negative, got {self.request_delay}"
            )
        if self.sample_interval_km <= 0:
            raise ConfigurationError(
                f"sample_interval_km must be positive, got {self.sample_interval_km}"
            )
        self.base_url = self.base_url.rstrip("/")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """
        Build a configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            EngineConfig populated from the environment

        Raises:
            ConfigurationError: If no token is set or a numeric setting is invalid
        """
        env = os.environ if environ is None else environ

        token = next((env[name] for name in TOKEN_ENV_VARS if env.get(name)), "")

        return cls(
            api_token=token,
            base_url=env.get("AIRRISK_BASE_URL", DEFAULT_BASE_URL),
            timeout=_read(env, "AIRRISK_TIMEOUT", float, DEFAULT_TIMEOUT),
            cache_ttl=_read(env, "AIRRISK_CACHE_TTL", float, DEFAULT_CACHE_TTL),
            max_concurrency=_read(
                env, "AIRRISK_MAX_CONCURRENCY", int, DEFAULT_MAX_CONCURRENCY
            ),
            request_delay=_read(
                env, "AIRRISK_REQUEST_DELAY", float, DEFAULT_REQUEST_DELAY
            ),
        )


def _read(env: Mapping[str, str], name: str, cast: Callable[[str], T], default: T) -> T:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from e
