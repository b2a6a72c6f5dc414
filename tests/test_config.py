"""
Tests for EngineConfig and the exception hierarchy.
"""

import pytest

from airrisk.config import DEFAULT_BASE_URL, EngineConfig
from airrisk.exceptions import (
    AirRiskError,
    ConfigurationError,
    ProviderError,
    ProviderTimeoutError,
    ValidationError,
)


class TestEngineConfig:
    """Test EngineConfig."""

    def test_defaults(self):
        config = EngineConfig(api_token="abc")
        assert config.base_url == DEFAULT_BASE_URL
        assert config.timeout == 10.0
        assert config.cache_ttl == 300.0
        assert config.max_concurrency == 4
        assert config.request_delay == 0.1
        assert config.sample_interval_km == 2.0

    def test_token_required(self):
        with pytest.raises(ConfigurationError, match="AIRRISK_API_TOKEN"):
            EngineConfig(api_token="")
        with pytest.raises(ConfigurationError):
            EngineConfig(api_token="   ")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"timeout": 0},
            {"timeout": 61},
            {"cache_ttl": 0},
            {"max_concurrency": 0},
            {"request_delay": -0.5},
            {"sample_interval_km": 0},
        ],
    )
    def test_invalid_settings(self, overrides):
        with pytest.raises(ConfigurationError):
            EngineConfig(api_token="abc", **overrides)

    def test_base_url_trailing_slash_removed(self):
        assert EngineConfig(api_token="abc", base_url="http://localhost:8080/").base_url == (
            "http://localhost:8080"
        )

    def test_from_env(self):
        config = EngineConfig.from_env(
            {
                "AIRRISK_API_TOKEN": "from-env",
                "AIRRISK_BASE_URL": "http://proxy.local/waqi",
                "AIRRISK_TIMEOUT": "5",
                "AIRRISK_CACHE_TTL": "120",
                "AIRRISK_MAX_CONCURRENCY": "8",
                "AIRRISK_REQUEST_DELAY": "0",
            }
        )
        assert config.api_token == "from-env"
        assert config.base_url == "http://proxy.local/waqi"
        assert config.timeout == 5.0
        assert config.cache_ttl == 120.0
        assert config.max_concurrency == 8
        assert config.request_delay == 0.0

    def test_from_env_waqi_token_fallback(self):
        config = EngineConfig.from_env({"WAQI_TOKEN": "legacy"})
        assert config.api_token == "legacy"
        assert config.timeout == 10.0

    def test_from_env_prefers_airrisk_token(self):
        config = EngineConfig.from_env({"AIRRISK_API_TOKEN": "new", "WAQI_TOKEN": "legacy"})
        assert config.api_token == "new"

    def test_from_env_missing_token(self):
        with pytest.raises(ConfigurationError):
            EngineConfig.from_env({})

    def test_from_env_bad_number(self):
        with pytest.raises(ConfigurationError, match="AIRRISK_TIMEOUT"):
            EngineConfig.from_env({"AIRRISK_API_TOKEN": "abc", "AIRRISK_TIMEOUT": "fast"})

    def test_from_os_environ(self, monkeypatch):
        monkeypatch.delenv("AIRRISK_API_TOKEN", raising=False)
        monkeypatch.setenv("WAQI_TOKEN", "os-token")
        assert EngineConfig.from_env().api_token == "os-token"


class TestExceptions:
    def test_hierarchy(self):
        assert issubclass(ProviderTimeoutError, ProviderError)
        assert issubclass(ProviderError, AirRiskError)
        assert issubclass(ValidationError, AirRiskError)
        assert issubclass(ConfigurationError, AirRiskError)

    def test_messages(self):
        assert str(ProviderError("down")) == "down"
        assert str(ValidationError("rejected", ["a", "b"])) == "rejected: a; b"
        assert str(ValidationError("rejected")) == "rejected"
