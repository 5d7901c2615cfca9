"""
Parsing of registration dates found in RDAP events and WHOIS text.

Registries publish expiration dates in many shapes: RFC 3339 timestamps,
bare ISO dates, dotted European dates, "15-Jun-2025" and so on. Every
parser returns a timezone-aware UTC datetime; naive values are taken as UTC.
"""

import re
from datetime import datetime, timezone

from .exceptions import DateParseError


# Tried in order after ISO 8601 parsing has failed
DATE_FORMATS = [
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y.%m.%d %H:%M:%S",
    "%Y.%m.%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y",
    "%d-%b-%Y %H:%M:%S",
    "%d-%b-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%a %b %d %H:%M:%S %Y",
    "%d/%m/%Y",
    "%Y%m%d",
]

# Trailing annotations such as "(YYYY-MM-DD)" or a "UTC" zone name
_PARENTHETICAL = re.compile(r"\s*\(.*\)\s*$")
_ZONE_NAME = re.compile(r"\s+(UTC|GMT|Z)$", re.IGNORECASE)
_FRACTION = re.compile(r"\.(\d+)(?=(Z|[+-]\d{2}:?\d{2})?$)")


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_iso(text: str) -> datetime:
    candidate = text
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    # fromisoformat only accepts 3 or 6 fractional digits on older interpreters
    match = _FRACTION.search(candidate)
    if match:
        digits = (match.group(1) + "000000")[:6]
        candidate = candidate[:match.start()] + "." + digits + candidate[match.end():]
    return datetime.fromisoformat(candidate)


def parse_expiration_date(raw: str) -> datetime:
    """
    Parse a registry date string into a UTC datetime.

    Args:
        raw: Date text as found in RDAP or WHOIS data

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateParseError: If the text matches no known date format
    """
    if raw is None:
        raise DateParseError(code="empty_date", message="Date value is missing")

    text = _PARENTHETICAL.sub("", raw.strip())
    text = text.rstrip(".")
    if not text:
        raise DateParseError(
            code="empty_date",
            message="Date value is empty",
            details={"raw": raw},
        )

    try:
        return _to_utc(_parse_iso(text))
    except ValueError:
        pass

    text = _ZONE_NAME.sub("", text)
    text = text.replace(",", "")
    for fmt in DATE_FORMATS:
        try:
            return _to_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue

    raise DateParseError(
        code="unparseable_date",
        message=f"Unrecognized date format: {raw!r}",
        details={"raw": raw},
    )
