"""Custom exception classes for the application."""

from typing import Any


class ScamWatchError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# Configuration Errors
class ConfigurationError(ScamWatchError):
    """Configuration file missing or malformed."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"Invalid configuration in {source}: {message}", {"source": source})


# External API Errors
class ExternalAPIError(ScamWatchError):
    """Error calling external API."""

    def __init__(self, api_name: str, message: str) -> None:
        super().__init__(f"{api_name} API error: {message}", {"api": api_name})


class RateLimitExceededError(ExternalAPIError):
    """Rate limit exceeded for external API."""

    def __init__(self, api_name: str) -> None:
        super().__init__(api_name, "Rate limit exceeded")


class APIKeyMissingError(ExternalAPIError):
    """API key not configured."""

    def __init__(self, api_name: str) -> None:
        super().__init__(api_name, "API key not configured")


class AnalyticsAuthError(ExternalAPIError):
    """Could not authenticate against the analytics source."""

    def __init__(self, message: str) -> None:
        super().__init__("Search Console", f"Authentication failed: {message}")


# Validation Errors
class ValidationError(ScamWatchError):
    """Data validation failed."""

    pass


class InvalidDateRangeError(ValidationError):
    """Requested date range is malformed or out of bounds."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid date range: {message}")
