"""
Command-line interface for the domain expiry notifier.

This module provides the main CLI entry point with commands for:
- run: Check all domains at startup, then on the cron schedule
- check: Run a single batch and exit
- resolve: Print the expiration date of one domain
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .alert_evaluator import AlertEvaluator
from .audit_logger import AuditLogger
from .checker import DomainExpiryChecker, create_checker
from .config import SystemConfig, load_config_from_env
from .enums import CheckStatus
from .exceptions import ConfigurationError, ResolutionNotFoundError
from .models import BatchReport
from .notifications import format_expiration_date
from .scheduler import Scheduler


EXIT_OK = 0
EXIT_ATTENTION = 1
EXIT_CONFIG_ERROR = 2

STATUS_ICONS = {
    CheckStatus.OK: "✅",
    CheckStatus.WARNING: "⚠️",
    CheckStatus.NOT_FOUND: "❓",
    CheckStatus.ERROR: "❌",
}


def _load_config(args: argparse.Namespace, domains: Optional[list[str]] = None) -> SystemConfig:
    config = load_config_from_env(
        env_file=Path(args.env_file) if args.env_file else None,
        dry_run=True if args.dry_run else None,
        domains=domains,
    )
    if args.verbose:
        config.logging.level = "debug"
    return config


def print_report(report: BatchReport) -> None:
    """Print a one-line summary per domain followed by totals."""
    for outcome in report.outcomes:
        icon = STATUS_ICONS[outcome.status]
        if outcome.decision is not None:
            detail = (
                f"expires {format_expiration_date(outcome.decision.expiration)} "
                f"({outcome.decision.days_remaining} days, {outcome.decision.tier.value})"
            )
        elif outcome.error:
            detail = outcome.error
        else:
            detail = "expiration date not found"
        print(f"{icon} {outcome.domain}: {detail}")

    print(
        f"\nSummary: {report.count(CheckStatus.OK)} ok, "
        f"{report.count(CheckStatus.WARNING)} expiring, "
        f"{report.count(CheckStatus.NOT_FOUND)} not found, "
        f"{report.count(CheckStatus.ERROR)} failed"
    )
    if report.notifications_sent > 0:
        print(f"📨 Notifications sent: {report.notifications_sent}")


async def run_batch(checker: DomainExpiryChecker) -> BatchReport:
    async with checker:
        return await checker.check_all()


async def run_service(
    config: SystemConfig,
    logger: AuditLogger,
    stop_event: Optional[asyncio.Event] = None,
    checker: Optional[DomainExpiryChecker] = None,
    scheduler: Optional[Scheduler] = None,
) -> None:
    """
    Run one batch immediately, then one per cron firing until stopped.

    The scheduler starts before the startup batch, so a cron minute that
    passes while the startup batch is running still fires.
    SIGINT and SIGTERM set the stop event where the platform supports it.
    """
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    handled_signals = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform; Ctrl+C still raises KeyboardInterrupt
            continue
        handled_signals.append(sig)

    checker = checker or create_checker(config, logger)
    scheduler = scheduler or Scheduler(logger=logger)

    async def scheduled_check() -> None:
        logger.info("Scheduler", f"Running scheduled check ({config.cron_schedule})")
        await checker.check_all()

    scheduler.schedule("domain-check", config.cron_schedule, scheduled_check)
    logger.info(
        "Service",
        f"Domain expiry notifier started with schedule: {config.cron_schedule}",
        {
            "domains": [target.name for target in config.domains],
            "warning_days": config.warning_days,
            "lookup": "rdap" if checker.resolver.uses_rdap else "whois",
            "tasks": [task.name for task in scheduler.list_tasks()],
            "dry_run": config.dry_run,
        },
    )

    try:
        async with checker:
            scheduler_run = asyncio.ensure_future(scheduler.run(stop_event))
            try:
                await checker.check_all()
                await scheduler_run
            finally:
                if not scheduler_run.done():
                    scheduler_run.cancel()
    finally:
        for sig in handled_signals:
            loop.remove_signal_handler(sig)

    logger.info("Service", "Domain expiry notifier stopped")


def cmd_run(args: argparse.Namespace) -> int:
    """Handle the 'run' command."""
    config = _load_config(args)
    logger = AuditLogger.from_config(config.logging)
    try:
        asyncio.run(run_service(config, logger))
    except KeyboardInterrupt:
        logger.info("Service", "Interrupted")
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    config = _load_config(args, domains=args.domains)
    logger = AuditLogger.from_config(config.logging)

    report = asyncio.run(run_batch(create_checker(config, logger)))
    print_report(report)

    return EXIT_OK if report.all_clear else EXIT_ATTENTION


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handle the 'resolve' command."""
    # Resolving never notifies, so Slack settings are not required
    args.dry_run = True
    config = _load_config(args, domains=[args.domain])
    logger = AuditLogger.from_config(config.logging)
    checker = create_checker(config, logger)
    target = config.domains[0]

    async def _resolve():
        async with checker.resolver as resolver:
            return await resolver.require(target.name)

    try:
        result = asyncio.run(_resolve())
    except ResolutionNotFoundError as e:
        print(f"❓ {e.message}", file=sys.stderr)
        return EXIT_ATTENTION

    decision = AlertEvaluator(config.warning_days).evaluate(result.expiration)
    print(f"Domain: {target.name}")
    print(f"Source: {result.source.value} ({result.endpoint})")
    print(f"Expires: {format_expiration_date(decision.expiration)} ({decision.expiration.isoformat()})")
    print(f"Days remaining: {decision.days_remaining}")
    print(f"Severity: {decision.tier.emoji} {decision.tier.value}")
    return EXIT_OK


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--env-file", "-e",
        help="Path to a .env file (default: ./.env if present)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log notifications instead of posting them to Slack",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="domain-expiry",
        description="Domain registration expiry checker with Slack notifications",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'run' command
    run_parser = subparsers.add_parser(
        "run",
        help="Check all domains now and then on the cron schedule",
    )
    _add_common_arguments(run_parser)
    run_parser.set_defaults(func=cmd_run)

    # 'check' command
    check_parser = subparsers.add_parser(
        "check",
        help="Check domains once and exit",
    )
    check_parser.add_argument(
        "domains",
        nargs="*",
        help="Domains to check (default: DOMAINS from the environment)",
    )
    _add_common_arguments(check_parser)
    check_parser.set_defaults(func=cmd_check)

    # 'resolve' command
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Print the expiration date of a domain without notifying",
    )
    resolve_parser.add_argument(
        "domain",
        help="Domain to resolve (e.g., example.com)",
    )
    _add_common_arguments(resolve_parser)
    resolve_parser.set_defaults(func=cmd_resolve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    try:
        return args.func(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
