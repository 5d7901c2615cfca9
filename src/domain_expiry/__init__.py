"""
Domain Expiry - Domain registration expiry checker with Slack notifications.

This package resolves registration expiration dates via RDAP (with fallback
endpoints) or WHOIS, classifies the remaining time into severity tiers and
posts Slack warnings on a cron schedule.
"""

__version__ = "0.1.0"
__author__ = "Domain Expiry Team"

from domain_expiry.exceptions import (
    DomainExpiryError,
    ConfigurationError,
    NetworkError,
    ResolutionNotFoundError,
    DateParseError,
    NotificationError,
)
from domain_expiry.enums import (
    SeverityTier,
    DomainKind,
    SourceKind,
    RDAPStatus,
    CheckStatus,
    LogLevel,
)
from domain_expiry.models import (
    DomainTarget,
    ResolutionResult,
    AlertDecision,
    CheckOutcome,
    BatchReport,
)
from domain_expiry.domain_targets import (
    normalize_domain,
    classify_domain,
    parse_domain_list,
)
from domain_expiry.config import (
    RDAPConfig,
    WHOISConfig,
    SlackConfig,
    DebugConfig,
    LoggingConfig,
    SystemConfig,
    load_config_from_env,
)
from domain_expiry.date_parser import (
    parse_expiration_date,
)
from domain_expiry.rdap_client import (
    RDAPClient,
    RDAPResponse,
    RDAPEvent,
)
from domain_expiry.whois_client import (
    WHOISClient,
    WHOISResponse,
)
from domain_expiry.whois_parser import (
    EXPIRATION_PATTERNS,
    WHOISExtraction,
    extract_expiration,
)
from domain_expiry.debug_store import (
    DebugArtifactWriter,
)
from domain_expiry.resolver import (
    ExpirationResolver,
)
from domain_expiry.alert_evaluator import (
    AlertEvaluator,
    days_until,
    severity_for,
)
from domain_expiry.audit_logger import (
    AuditLogger,
    LogEntry,
)
from domain_expiry.notifications import (
    NotificationPayload,
    NotificationResult,
    NotificationChannel,
    SlackChannel,
    LogChannel,
    Notifier,
)
from domain_expiry.scheduler import (
    Scheduler,
    CronSchedule,
    CronParser,
    CronParseError,
)
from domain_expiry.checker import (
    DomainExpiryChecker,
    create_checker,
)
from domain_expiry.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "DomainExpiryError",
    "ConfigurationError",
    "NetworkError",
    "ResolutionNotFoundError",
    "DateParseError",
    "NotificationError",
    # Enums
    "SeverityTier",
    "DomainKind",
    "SourceKind",
    "RDAPStatus",
    "CheckStatus",
    "LogLevel",
    # Models
    "DomainTarget",
    "ResolutionResult",
    "AlertDecision",
    "CheckOutcome",
    "BatchReport",
    # Domain targets
    "normalize_domain",
    "classify_domain",
    "parse_domain_list",
    # Configuration
    "RDAPConfig",
    "WHOISConfig",
    "SlackConfig",
    "DebugConfig",
    "LoggingConfig",
    "SystemConfig",
    "load_config_from_env",
    # Resolution
    "parse_expiration_date",
    "RDAPClient",
    "RDAPResponse",
    "RDAPEvent",
    "WHOISClient",
    "WHOISResponse",
    "EXPIRATION_PATTERNS",
    "WHOISExtraction",
    "extract_expiration",
    "DebugArtifactWriter",
    "ExpirationResolver",
    # Alerting
    "AlertEvaluator",
    "days_until",
    "severity_for",
    # Logging
    "AuditLogger",
    "LogEntry",
    # Notifications
    "NotificationPayload",
    "NotificationResult",
    "NotificationChannel",
    "SlackChannel",
    "LogChannel",
    "Notifier",
    # Scheduler
    "Scheduler",
    "CronSchedule",
    "CronParser",
    "CronParseError",
    # Checker
    "DomainExpiryChecker",
    "create_checker",
    # CLI
    "cli_main",
    "create_parser",
]
