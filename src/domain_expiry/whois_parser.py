"""
Expiration-date extraction from free-text WHOIS records.

WHOIS output differs per registry, so extraction is a best-effort scan over
an ordered table of label patterns. The first label whose value parses as a
date wins.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .date_parser import parse_expiration_date
from .exceptions import DateParseError


@dataclass(frozen=True)
class ExpirationPattern:
    """A WHOIS label and the regex capturing its value."""

    label: str
    regex: re.Pattern


def _label_pattern(label: str) -> ExpirationPattern:
    return ExpirationPattern(
        label=label,
        regex=re.compile(re.escape(label) + r"[ \t]*(\S.*)", re.IGNORECASE),
    )


# Order matters: generic labels like "Expiration Date:" also match inside
# longer registrar labels, so the registry label comes first.
EXPIRATION_PATTERNS: list[ExpirationPattern] = [
    _label_pattern(label)
    for label in (
        "Registry Expiry Date:",
        "Expiration Date:",
        "Expiry Date:",
        "Expires on:",
        "Expires:",
        "expire:",
        "Registrar Registration Expiration Date:",
        "Domain Expiration Date:",
        "Domain Expires:",
        "expire-date:",
        "Valid Until:",
        "Renewal date:",
        "paid-till:",
        "validity:",
        "LDAP Expiration Date:",
        "LDAP Certificate Expiry:",
        "certificate expiration date:",
    )
]


@dataclass
class PatternFailure:
    """A label that matched but whose value could not be parsed."""

    label: str
    raw_value: str
    error: str


@dataclass
class WHOISExtraction:
    """Outcome of scanning a WHOIS record."""

    expiration: Optional[datetime] = None
    label: Optional[str] = None
    raw_value: Optional[str] = None
    failures: list[PatternFailure] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.expiration is not None


def extract_expiration(
    whois_text: Optional[str],
    patterns: Optional[list[ExpirationPattern]] = None,
) -> WHOISExtraction:
    """
    Scan WHOIS text for the first parseable expiration date.

    Args:
        whois_text: Raw WHOIS response
        patterns: Pattern table to use instead of EXPIRATION_PATTERNS

    Returns:
        WHOISExtraction; ``found`` is False when no label matched or every
        matched value was unparseable (listed in ``failures``)
    """
    extraction = WHOISExtraction()
    if not whois_text:
        return extraction

    for pattern in patterns or EXPIRATION_PATTERNS:
        match = pattern.regex.search(whois_text)
        if match is None:
            continue

        raw_value = match.group(1).strip()
        try:
            expiration = parse_expiration_date(raw_value)
        except DateParseError as e:
            extraction.failures.append(
                PatternFailure(label=pattern.label, raw_value=raw_value, error=e.message)
            )
            continue

        extraction.expiration = expiration
        extraction.label = pattern.label
        extraction.raw_value = raw_value
        return extraction

    return extraction
