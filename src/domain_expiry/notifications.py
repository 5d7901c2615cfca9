"""
Notification module for the domain expiry notifier.

Builds Slack Block Kit messages for expiration warnings and lookup errors,
and delivers them through notification channels. Delivery is attempted once
per channel; failures are logged and reported, never retried.
"""

from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

import httpx

from .audit_logger import AuditLogger
from .config import SlackConfig
from .exceptions import NotificationError
from .models import AlertDecision


SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"


def ordinal(day: int) -> str:
    """Return ``day`` with its English ordinal suffix (1st, 2nd, 11th...)."""
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def format_expiration_date(dt: datetime) -> str:
    """Format a date like 'June 15th, 2025'."""
    return f"{dt.strftime('%B')} {ordinal(dt.day)}, {dt.year}"


@dataclass
class NotificationPayload:
    """A message: plain-text fallback plus Block Kit blocks."""

    domain: str
    text: str
    blocks: list[dict] = field(default_factory=list)
    kind: str = "warning"  # 'warning', 'not_found', 'error'


@dataclass
class NotificationResult:
    """Result of a notification delivery attempt."""

    channel: str
    success: bool
    error: Optional[str] = None


def _header(text: str) -> dict:
    return {
        "type": "header",
        "text": {"type": "plain_text", "text": text, "emoji": True},
    }


def _section(text: str) -> dict:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def build_expiration_warning(domain: str, decision: AlertDecision) -> NotificationPayload:
    """Build the warning for a domain inside the warning window."""
    formatted_date = format_expiration_date(decision.expiration)
    days = decision.days_remaining

    return NotificationPayload(
        domain=domain,
        kind="warning",
        text=f"Domain {domain} will expire in {days} days ({formatted_date})",
        blocks=[
            _header(f"{decision.tier.emoji} Domain Expiration Warning"),
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Domain:*\n{domain}"},
                    {"type": "mrkdwn", "text": f"*Expiration Date:*\n{formatted_date}"},
                ],
            },
            _section(
                f"This domain will expire in *{days} days*. Please renew it if needed."
            ),
            {"type": "divider"},
        ],
    )


def build_not_found_message(domain: str) -> NotificationPayload:
    """Build the message sent when no expiration date could be found."""
    return NotificationPayload(
        domain=domain,
        kind="not_found",
        text=f"Could not find expiration date for domain: {domain}",
        blocks=[
            _header("⚠️ Domain Check Error"),
            _section(
                f"Could not find expiration date for domain: *{domain}*\n\n"
                "Please check the domain manually or verify the data output format."
            ),
        ],
    )


def build_error_message(domain: str, error: str) -> NotificationPayload:
    """Build the message sent when checking a domain raised an error."""
    return NotificationPayload(
        domain=domain,
        kind="error",
        text=f"Error checking domain {domain}: {error}",
        blocks=[
            _header("🚨 Domain Check Error"),
            _section(f"Error checking domain: *{domain}*\n\n```{error}```"),
        ],
    )


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol defining the interface for notification channels."""

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> None:
        """
        Deliver a notification.

        Raises:
            NotificationError: If delivery fails
        """
        ...

    @abstractmethod
    def get_name(self) -> str:
        ...


class SlackChannel:
    """Slack channel posting through the Web API ``chat.postMessage``."""

    def __init__(
        self,
        config: SlackConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the Slack channel.

        Args:
            config: Slack configuration with bot token and channel id
            transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        self._token = config.token
        self._channel = config.channel
        self._transport = transport

    def get_name(self) -> str:
        return "slack"

    def build_request_body(self, payload: NotificationPayload) -> dict:
        return {
            "channel": self._channel,
            "text": payload.text,
            "blocks": payload.blocks,
        }

    async def send(self, payload: NotificationPayload) -> None:
        """Post the message; raise NotificationError unless Slack reports ok."""
        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(
                    SLACK_POST_MESSAGE_URL,
                    json=self.build_request_body(payload),
                    headers={
                        "Authorization": f"Bearer {self._token}",
                        "Content-Type": "application/json; charset=utf-8",
                    },
                )
            except httpx.HTTPError as e:
                raise NotificationError(
                    code="network_error",
                    message=f"Slack request failed: {type(e).__name__}: {e}",
                    details={"domain": payload.domain},
                ) from e

        if response.status_code != 200:
            raise NotificationError(
                code="http_error",
                message=f"Slack returned HTTP {response.status_code}",
                details={"domain": payload.domain, "status_code": response.status_code},
            )

        try:
            body = response.json()
        except ValueError as e:
            raise NotificationError(
                code="invalid_response",
                message="Slack returned a non-JSON response",
                details={"domain": payload.domain},
            ) from e

        if not isinstance(body, dict) or not body.get("ok"):
            slack_error = body.get("error", "unknown_error") if isinstance(body, dict) else "unknown_error"
            raise NotificationError(
                code="slack_api_error",
                message=f"Slack API error: {slack_error}",
                details={"domain": payload.domain, "slack_error": slack_error},
            )


class LogChannel:
    """Dry-run channel that logs messages instead of sending them."""

    def __init__(self, logger: Optional[AuditLogger] = None, capture: bool = False) -> None:
        self._logger = logger
        self._capture = capture
        self.sent: list[NotificationPayload] = []

    def get_name(self) -> str:
        return "log"

    async def send(self, payload: NotificationPayload) -> None:
        if self._capture:
            self.sent.append(payload)
        if self._logger:
            self._logger.info(
                "LogChannel",
                f"[dry run] {payload.text}",
                {"domain": payload.domain, "kind": payload.kind},
            )


class Notifier:
    """
    Delivers payloads to all registered channels.

    Each channel gets one attempt. Failures are logged and returned as
    unsuccessful results; ``notify`` itself never raises.
    """

    def __init__(self, logger: Optional[AuditLogger] = None) -> None:
        self._channels: list[NotificationChannel] = []
        self._logger = logger

    def register_channel(self, channel: NotificationChannel) -> None:
        self._channels.append(channel)

    @property
    def channels(self) -> list[NotificationChannel]:
        return self._channels.copy()

    async def notify(self, payload: NotificationPayload) -> list[NotificationResult]:
        results = []
        for channel in self._channels:
            results.append(await self._deliver(channel, payload))
        return results

    async def _deliver(
        self,
        channel: NotificationChannel,
        payload: NotificationPayload,
    ) -> NotificationResult:
        channel_name = channel.get_name()
        try:
            await channel.send(payload)
        except Exception as e:
            if self._logger:
                self._logger.log_error(
                    "Notifier",
                    f"Failed to send {payload.kind} notification via '{channel_name}'",
                    error=e,
                    additional_data={"domain": payload.domain, "channel": channel_name},
                )
            return NotificationResult(channel=channel_name, success=False, error=str(e))

        if self._logger:
            self._logger.info(
                "Notifier",
                f"Notification sent for {payload.domain}",
                {"channel": channel_name, "kind": payload.kind},
            )
        return NotificationResult(channel=channel_name, success=True)


def create_notifier(config, logger: Optional[AuditLogger] = None) -> Notifier:
    """
    Build a Notifier from a SystemConfig.

    Dry-run mode registers a LogChannel in place of Slack.
    """
    notifier = Notifier(logger=logger)
    if config.dry_run or config.slack is None:
        notifier.register_channel(LogChannel(logger=logger))
    else:
        notifier.register_channel(SlackChannel(config.slack))
    return notifier
