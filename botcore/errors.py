"""
Exception hierarchy for the interaction core.
"""

from typing import Optional


class BotError(Exception):
    """Base exception for bot infrastructure errors."""
    pass


class ConfigurationError(BotError):
    """Invalid wiring detected at startup."""
    pass


class DuplicateHandlerError(ConfigurationError):
    """Two different handlers claimed the same prefix or slash command."""
    pass


class ComponentIdError(BotError):
    """Base exception for component ID problems."""
    pass


class MalformedComponentIdError(ComponentIdError):
    """Wire token or stored payload could not be decoded."""
    pass


class ExpiredComponentIdError(ComponentIdError):
    """Token decoded fine but its entry is no longer in the store."""
    pass


class InvalidComponentIdError(ComponentIdError, ValueError):
    """Arguments rejected at mint time."""
    pass


class StorageUnavailableError(BotError):
    """The component ID store could not be read or written."""
    pass


class RateLimitedError(BotError):
    """Request rejected by a rate limiter."""

    def __init__(self, message: str, retry_at: Optional[float] = None):
        super().__init__(message)
        self.retry_at = retry_at
