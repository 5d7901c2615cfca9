"""
Domain list parsing and normalization.

Turns the comma-separated DOMAINS setting into canonical DomainTarget
objects: trimmed, lowercased, IDNA-encoded when international, and
de-duplicated in input order.
"""

import re

import idna

from .enums import DomainKind
from .exceptions import ConfigurationError
from .models import DomainTarget


# Control characters, whitespace and symbols never valid in a host name
FORBIDDEN_CHARS_PATTERN = re.compile(
    r'[\x00-\x1f\x7f'
    r'\s'
    r'!@#$%^&*()+=\[\]{}|\\:;"\'<>,?/`~]'
)


def normalize_domain(raw_domain: str) -> str:
    """
    Convert a domain to canonical form (lowercase, IDNA-encoded).

    Args:
        raw_domain: Domain string as configured

    Returns:
        Canonical domain name

    Raises:
        ConfigurationError: If the domain is empty, contains forbidden
            characters or cannot be IDNA-encoded
    """
    domain = raw_domain.strip().rstrip(".").lower()
    if not domain:
        raise ConfigurationError(
            code="empty_domain",
            message="Domain entry is empty",
            details={"raw_input": raw_domain},
        )

    if FORBIDDEN_CHARS_PATTERN.search(domain):
        raise ConfigurationError(
            code="forbidden_chars",
            message=f"Domain contains forbidden characters: {raw_domain!r}",
            details={
                "raw_input": raw_domain,
                "forbidden_chars": FORBIDDEN_CHARS_PATTERN.findall(domain),
            },
        )

    if any(ord(c) > 127 for c in domain):
        try:
            domain = idna.encode(domain, uts46=True).decode("ascii")
        except idna.IDNAError as e:
            raise ConfigurationError(
                code="idna_error",
                message=f"IDNA encoding failed for {raw_domain!r}: {e}",
                details={"raw_input": raw_domain, "idna_error": str(e)},
            ) from e

    return domain


def classify_domain(domain: str) -> DomainKind:
    """Return LDAP for names mentioning 'ldap', STANDARD otherwise."""
    if "ldap" in domain:
        return DomainKind.LDAP
    return DomainKind.STANDARD


def parse_domain_list(raw: str) -> list[DomainTarget]:
    """
    Parse a comma-separated domain list into DomainTarget objects.

    Empty entries are skipped and duplicates removed, keeping the first
    occurrence.
    """
    if not raw:
        return []

    targets: list[DomainTarget] = []
    seen: set[str] = set()
    for entry in raw.split(","):
        if not entry.strip():
            continue
        name = normalize_domain(entry)
        if name in seen:
            continue
        seen.add(name)
        targets.append(DomainTarget(name=name, kind=classify_domain(name)))
    return targets


def tld_of(domain: str) -> str:
    """Extract the last label of a domain ('' when there is no dot)."""
    if "." not in domain:
        return ""
    return domain.rsplit(".", 1)[1].lower()
