"""
Exception classes for the domain expiry notifier.

All exceptions inherit from DomainExpiryError and carry a machine-readable
code, a human-readable message and optional details.
"""

from typing import Optional


class DomainExpiryError(Exception):
    """Base exception for all domain expiry errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(DomainExpiryError):
    """Raised when required configuration is missing or invalid."""

    pass


class NetworkError(DomainExpiryError):
    """Raised when a transport-level error reaches RDAP, WHOIS or Slack."""

    pass


class ResolutionNotFoundError(DomainExpiryError):
    """Raised when no parseable expiration date could be discovered."""

    pass


class DateParseError(DomainExpiryError):
    """Raised when a date string is present but cannot be parsed."""

    pass


class NotificationError(DomainExpiryError):
    """Raised when notification delivery fails."""

    pass
