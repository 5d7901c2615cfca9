"""
Alert evaluator for domain expiration.

Turns an expiration timestamp into a whole-day count, a severity tier and
the decision whether to notify.

Tier bands are closed on the upper side:
- days_remaining <= 7  -> CRITICAL
- days_remaining <= 14 -> HIGH
- days_remaining <= 30 -> MEDIUM
- otherwise            -> LOW
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from .config import DEFAULT_WARNING_DAYS
from .enums import SeverityTier
from .models import AlertDecision


ONE_DAY = timedelta(days=1)

# (upper bound inclusive, tier), checked in order
TIER_BANDS: list[tuple[int, SeverityTier]] = [
    (7, SeverityTier.CRITICAL),
    (14, SeverityTier.HIGH),
    (30, SeverityTier.MEDIUM),
]


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def days_until(expiration: datetime, now: datetime) -> int:
    """Ceiling of whole days from ``now`` to ``expiration`` (negative if past)."""
    return math.ceil((_as_utc(expiration) - _as_utc(now)) / ONE_DAY)


def severity_for(days_remaining: int) -> SeverityTier:
    """Map a day count to its severity tier."""
    for upper_bound, tier in TIER_BANDS:
        if days_remaining <= upper_bound:
            return tier
    return SeverityTier.LOW


class AlertEvaluator:
    """
    Evaluates expiration timestamps against the warning threshold.

    A notification is due iff ``days_remaining <= warning_days``. There is
    no deduplication: a domain inside the window is reported on every run.
    """

    def __init__(self, warning_days: int = DEFAULT_WARNING_DAYS) -> None:
        self._warning_days = warning_days

    @property
    def warning_days(self) -> int:
        return self._warning_days

    def evaluate(
        self,
        expiration: datetime,
        now: Optional[datetime] = None,
    ) -> AlertDecision:
        """
        Evaluate an expiration timestamp.

        Args:
            expiration: Registration expiration timestamp
            now: Evaluation instant; defaults to the current UTC time

        Returns:
            AlertDecision with day count, tier and notification decision
        """
        if now is None:
            now = datetime.now(timezone.utc)

        days_remaining = days_until(expiration, now)
        return AlertDecision(
            expiration=_as_utc(expiration),
            evaluated_at=_as_utc(now),
            days_remaining=days_remaining,
            tier=severity_for(days_remaining),
            should_notify=self.should_notify(days_remaining),
        )

    def should_notify(self, days_remaining: int) -> bool:
        return days_remaining <= self._warning_days
