"""
Exceptions for airrisk operations.
"""

from typing import List, Optional


class AirRiskError(Exception):
    """Base exception for airrisk-related errors."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(AirRiskError):
    """Upstream payload is malformed or out of range."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])

    def __str__(self) -> str:
        if self.errors:
            return f"{self.message}: {'; '.join(self.errors)}"
        return self.message


class ProviderError(AirRiskError):
    """Error talking to the upstream air quality provider."""

    pass


class ProviderConnectionError(ProviderError):
    """Network failure, rate limiting or provider outage."""

    pass


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within the configured timeout."""

    pass


class ProviderResponseError(ProviderError):
    """Provider answered, but the body is not usable."""

    pass


class InterpolationUnavailable(AirRiskError):
    """No station close enough to estimate a value."""

    pass


class ConfigurationError(AirRiskError):
    """Missing credentials or invalid settings."""

    pass
