"""
Enumeration types for the domain expiry notifier.
"""

from enum import Enum


class SeverityTier(Enum):
    """Urgency bucket derived from the days remaining until expiration."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def emoji(self) -> str:
        """Emoji used to emphasize the tier in notifications."""
        return _TIER_EMOJI[self]


_TIER_EMOJI = {
    SeverityTier.CRITICAL: "🔴",
    SeverityTier.HIGH: "🟠",
    SeverityTier.MEDIUM: "🟡",
    SeverityTier.LOW: "🟢",
}


class DomainKind(Enum):
    """Category of a configured domain (affects logging only)."""

    STANDARD = "standard"
    LDAP = "ldap"


class SourceKind(Enum):
    """Registration data source that produced a payload."""

    RDAP = "rdap"
    WHOIS = "whois"


class RDAPStatus(Enum):
    """RDAP query result status."""

    SUCCESS = "success"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    PARSE_ERROR = "parse_error"


class CheckStatus(Enum):
    """Outcome of checking a single domain."""

    OK = "ok"
    WARNING = "warning"
    NOT_FOUND = "not_found"
    ERROR = "error"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]


_LEVEL_RANK = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}
