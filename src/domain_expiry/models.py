"""
Data models for the domain expiry notifier.

Nothing here is persisted; every run recomputes all values.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .enums import CheckStatus, DomainKind, SeverityTier, SourceKind


@dataclass(frozen=True)
class DomainTarget:
    """A configured domain in canonical form."""

    name: str
    kind: DomainKind = DomainKind.STANDARD


@dataclass
class ResolutionResult:
    """Result of resolving a domain's expiration date."""

    domain: str
    expiration: Optional[datetime] = None  # None means not found
    source: Optional[SourceKind] = None
    endpoint: Optional[str] = None  # RDAP URL or WHOIS server
    raw_payload: Optional[Any] = None  # diagnostic capture only

    @property
    def found(self) -> bool:
        return self.expiration is not None


@dataclass
class AlertDecision:
    """Day count, severity tier and notification decision for a domain."""

    expiration: datetime
    evaluated_at: datetime
    days_remaining: int
    tier: SeverityTier
    should_notify: bool


@dataclass
class CheckOutcome:
    """Result of one per-domain check."""

    domain: str
    status: CheckStatus
    decision: Optional[AlertDecision] = None
    notification_sent: bool = False
    error: Optional[str] = None


@dataclass
class BatchReport:
    """Summary of one batch run over all configured domains."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    outcomes: list[CheckOutcome] = field(default_factory=list)

    def count(self, status: CheckStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def notifications_sent(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.notification_sent)

    @property
    def all_clear(self) -> bool:
        """True when every domain resolved and none is inside the warning window."""
        return all(outcome.status == CheckStatus.OK for outcome in self.outcomes)
