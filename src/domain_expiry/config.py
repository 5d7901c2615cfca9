"""
Configuration dataclasses for the domain expiry notifier.

Configuration is read from environment variables. A ``.env`` file is loaded
first via python-dotenv; values already present in the environment win.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .domain_targets import parse_domain_list
from .exceptions import ConfigurationError
from .models import DomainTarget
from .scheduler import CronParseError, CronParser


DEFAULT_PRIMARY_RDAP = "https://rdap.org/domain/{domain}"

DEFAULT_FALLBACK_RDAP = [
    "https://rdap.verisign.com/com/v1/domain/{domain}",
    "https://rdap.registry.in/domain/{domain}",
    "https://rdap.nic.{tld}/domain/{domain}",
]

DEFAULT_WARNING_DAYS = 30
DEFAULT_CRON_SCHEDULE = "0 9 * * *"
DEFAULT_CHECK_DELAY_SECONDS = 2.0

TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


@dataclass
class RDAPConfig:
    """RDAP endpoints, tried primary first and then in listed order."""

    enabled: bool = True
    primary_endpoint: str = DEFAULT_PRIMARY_RDAP
    fallback_endpoints: list[str] = field(
        default_factory=lambda: list(DEFAULT_FALLBACK_RDAP)
    )


@dataclass
class WHOISConfig:
    """WHOIS lookup settings (used only when RDAP is disabled)."""

    timeout_seconds: float = 10.0
    follow_referrals: int = 1


@dataclass
class SlackConfig:
    """Slack notification channel configuration."""

    token: str
    channel: str


@dataclass
class DebugConfig:
    """Debug logging and raw-response capture."""

    enabled: bool = False
    directory: Path = field(default_factory=lambda: Path("."))


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main configuration combining all sub-configurations."""

    domains: list[DomainTarget]
    slack: Optional[SlackConfig]
    rdap: RDAPConfig = field(default_factory=RDAPConfig)
    whois: WHOISConfig = field(default_factory=WHOISConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    warning_days: int = DEFAULT_WARNING_DAYS
    cron_schedule: str = DEFAULT_CRON_SCHEDULE
    notify_errors: bool = False
    check_delay_seconds: float = DEFAULT_CHECK_DELAY_SECONDS
    dry_run: bool = False


def _bool_env(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in TRUE_VALUES


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(env.get(name, str(default)))
    except (TypeError, ValueError):
        return default


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    try:
        return float(env.get(name, str(default)))
    except (TypeError, ValueError):
        return default


def _list_env(env: Mapping[str, str], name: str) -> Optional[list[str]]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_config_from_env(
    env: Optional[Mapping[str, str]] = None,
    env_file: Optional[Path] = None,
    dry_run: Optional[bool] = None,
    domains: Optional[list[str]] = None,
) -> SystemConfig:
    """
    Build a SystemConfig from environment variables.

    Args:
        env: Mapping to read from; defaults to ``os.environ`` after loading
             the ``.env`` file
        env_file: Optional path of the ``.env`` file to load
        dry_run: Overrides DRY_RUN when not None
        domains: Overrides DOMAINS when non-empty

    Returns:
        The validated configuration

    Raises:
        ConfigurationError: If required settings are missing or invalid
    """
    if env is None:
        load_dotenv(dotenv_path=env_file, override=False)
        env = os.environ

    raw_domains = ",".join(domains) if domains else env.get("DOMAINS", "")
    targets = parse_domain_list(raw_domains)
    if not targets:
        raise ConfigurationError(
            code="missing_domains",
            message="DOMAINS must list at least one domain",
        )

    if dry_run is None:
        dry_run = _bool_env(env, "DRY_RUN", False)

    token = (env.get("SLACK_TOKEN") or "").strip()
    channel = (env.get("SLACK_CHANNEL") or "").strip()
    slack: Optional[SlackConfig] = None
    if token and channel:
        slack = SlackConfig(token=token, channel=channel)
    elif not dry_run:
        missing = [
            name for name, value in (("SLACK_TOKEN", token), ("SLACK_CHANNEL", channel))
            if not value
        ]
        raise ConfigurationError(
            code="missing_slack_settings",
            message=f"Missing required setting(s): {', '.join(missing)}",
            details={"missing": missing},
        )

    cron_schedule = (env.get("CRON_SCHEDULE") or DEFAULT_CRON_SCHEDULE).strip()
    try:
        CronParser().parse(cron_schedule).next_after(datetime.now())
    except CronParseError as e:
        raise ConfigurationError(
            code="invalid_cron_schedule",
            message=str(e),
            details={"cron_schedule": cron_schedule},
        ) from e

    log_format = (env.get("LOG_FORMAT") or "text").strip().lower()
    if log_format not in ("json", "text", "both"):
        raise ConfigurationError(
            code="invalid_log_format",
            message=f"LOG_FORMAT must be json, text or both, got {log_format!r}",
        )

    debug_enabled = _bool_env(env, "DEBUG", False)

    rdap = RDAPConfig(enabled=_bool_env(env, "USE_RDAP", True))
    primary = (env.get("RDAP_PRIMARY_ENDPOINT") or "").strip()
    if primary:
        rdap.primary_endpoint = primary
    fallbacks = _list_env(env, "RDAP_FALLBACK_ENDPOINTS")
    if fallbacks is not None:
        rdap.fallback_endpoints = fallbacks

    warning_days = _int_env(env, "WARNING_DAYS", DEFAULT_WARNING_DAYS)
    if warning_days <= 0:
        warning_days = DEFAULT_WARNING_DAYS

    return SystemConfig(
        domains=targets,
        slack=slack,
        rdap=rdap,
        whois=WHOISConfig(
            timeout_seconds=_float_env(env, "WHOIS_TIMEOUT", 10.0),
        ),
        debug=DebugConfig(
            enabled=debug_enabled,
            directory=Path(env.get("DEBUG_DIR") or "."),
        ),
        logging=LoggingConfig(
            level="debug" if debug_enabled else "info",
            output_format=log_format,
        ),
        warning_days=warning_days,
        cron_schedule=cron_schedule,
        notify_errors=_bool_env(env, "NOTIFY_ERRORS", False),
        check_delay_seconds=max(
            0.0, _float_env(env, "CHECK_DELAY_SECONDS", DEFAULT_CHECK_DELAY_SECONDS)
        ),
        dry_run=dry_run,
    )
