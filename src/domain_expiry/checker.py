"""
Domain expiry checker.

Coordinates one check per domain: resolve the expiration date, evaluate it
against the warning threshold and notify when due. Batches process domains
strictly one after another with a fixed delay in between.

Every per-domain check is an error boundary: whatever goes wrong is logged,
optionally reported to the channel, and the batch moves on.
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from .alert_evaluator import AlertEvaluator
from .audit_logger import AuditLogger
from .config import SystemConfig
from .debug_store import DebugArtifactWriter
from .enums import CheckStatus, DomainKind
from .models import BatchReport, CheckOutcome, DomainTarget
from .notifications import (
    NotificationPayload,
    Notifier,
    build_error_message,
    build_expiration_warning,
    build_not_found_message,
    create_notifier,
)
from .rdap_client import RDAPClient
from .resolver import ExpirationResolver
from .whois_client import WHOISClient


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DomainExpiryChecker:
    """Runs expiration checks for single domains and whole batches."""

    COMPONENT = "DomainExpiryChecker"

    def __init__(
        self,
        config: SystemConfig,
        resolver: ExpirationResolver,
        notifier: Notifier,
        evaluator: Optional[AlertEvaluator] = None,
        logger: Optional[AuditLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """
        Initialize the checker.

        Args:
            config: System configuration
            resolver: Expiration resolver (RDAP or WHOIS)
            notifier: Notifier delivering messages
            evaluator: Alert evaluator; built from ``config.warning_days`` if omitted
            logger: Optional logger
            sleep: Coroutine used for the inter-domain delay
            clock: Returns the current time for each evaluation
        """
        self._config = config
        self._resolver = resolver
        self._notifier = notifier
        self._evaluator = evaluator or AlertEvaluator(config.warning_days)
        self._logger = logger
        self._sleep = sleep
        self._clock = clock

    async def __aenter__(self) -> "DomainExpiryChecker":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._resolver.close()

    @property
    def config(self) -> SystemConfig:
        return self._config

    @property
    def resolver(self) -> ExpirationResolver:
        return self._resolver

    async def check_domain(self, target: DomainTarget) -> CheckOutcome:
        """
        Check one domain and send the notifications it calls for.

        Never raises; failures are returned as ERROR outcomes.
        """
        domain = target.name
        try:
            if target.kind == DomainKind.LDAP:
                self._log_info(f"Checking LDAP domain: {domain}", {"kind": target.kind.value})
            else:
                self._log_info(f"Checking domain: {domain}", {"kind": target.kind.value})

            result = await self._resolver.resolve(domain)

            if not result.found:
                self._log_error(
                    f"Could not find expiration date for {domain}",
                    {"domain": domain, "source": result.source.value if result.source else None},
                )
                sent = False
                if self._config.notify_errors:
                    sent = await self._send(build_not_found_message(domain))
                return CheckOutcome(
                    domain=domain,
                    status=CheckStatus.NOT_FOUND,
                    notification_sent=sent,
                )

            decision = self._evaluator.evaluate(result.expiration, self._clock())
            self._log_info(
                f"Domain: {domain}, Expires: {decision.expiration.isoformat()}, "
                f"Days remaining: {decision.days_remaining}",
                {
                    "domain": domain,
                    "days_remaining": decision.days_remaining,
                    "tier": decision.tier.value,
                    "source": result.source.value if result.source else None,
                    "endpoint": result.endpoint,
                },
            )

            if not decision.should_notify:
                return CheckOutcome(domain=domain, status=CheckStatus.OK, decision=decision)

            sent = await self._send(build_expiration_warning(domain, decision))
            return CheckOutcome(
                domain=domain,
                status=CheckStatus.WARNING,
                decision=decision,
                notification_sent=sent,
            )

        except Exception as e:
            if self._logger:
                self._logger.log_error(
                    self.COMPONENT,
                    f"Error checking domain {domain}",
                    error=e,
                    additional_data={"domain": domain},
                )
            sent = False
            if self._config.notify_errors:
                sent = await self._send(build_error_message(domain, str(e)))
            return CheckOutcome(
                domain=domain,
                status=CheckStatus.ERROR,
                notification_sent=sent,
                error=str(e),
            )

    async def check_all(self, targets: Optional[list[DomainTarget]] = None) -> BatchReport:
        """
        Check every target in order, pausing between domains.

        Args:
            targets: Domains to check; defaults to the configured list
        """
        if targets is None:
            targets = self._config.domains

        report = BatchReport(started_at=self._clock())
        self._log_info(
            f"Starting domain check at {report.started_at.isoformat()}",
            {"domains": len(targets)},
        )

        for index, target in enumerate(targets):
            if index > 0 and self._config.check_delay_seconds > 0:
                await self._sleep(self._config.check_delay_seconds)
            report.outcomes.append(await self.check_domain(target))

        report.finished_at = self._clock()
        self._log_info(
            f"Completed domain check at {report.finished_at.isoformat()}",
            {
                "ok": report.count(CheckStatus.OK),
                "warning": report.count(CheckStatus.WARNING),
                "not_found": report.count(CheckStatus.NOT_FOUND),
                "error": report.count(CheckStatus.ERROR),
                "notifications_sent": report.notifications_sent,
            },
        )
        return report

    async def _send(self, payload: NotificationPayload) -> bool:
        results = await self._notifier.notify(payload)
        return any(r.success for r in results)

    def _log_info(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.info(self.COMPONENT, message, data)

    def _log_error(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.error(self.COMPONENT, message, data)


def create_checker(
    config: SystemConfig,
    logger: Optional[AuditLogger] = None,
    notifier: Optional[Notifier] = None,
) -> DomainExpiryChecker:
    """Wire a DomainExpiryChecker and its collaborators from configuration."""
    debug_writer = DebugArtifactWriter(
        directory=config.debug.directory,
        enabled=config.debug.enabled,
        logger=logger,
    )
    resolver = ExpirationResolver(
        rdap_config=config.rdap,
        rdap_client=RDAPClient(),
        whois_client=WHOISClient(
            timeout=config.whois.timeout_seconds,
            follow_referrals=config.whois.follow_referrals,
        ),
        debug_writer=debug_writer,
        logger=logger,
    )
    return DomainExpiryChecker(
        config=config,
        resolver=resolver,
        notifier=notifier or create_notifier(config, logger),
        logger=logger,
    )
