"""
RDAP client for domain expiration lookups.

This module provides an async RDAP client built on httpx. Endpoints are
URL templates with ``{domain}`` and ``{tld}`` placeholders, e.g.
``https://rdap.org/domain/{domain}``. Only the ``events`` member of a
response is interpreted; everything else is kept as raw payload.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from .domain_targets import tld_of
from .enums import RDAPStatus


RDAP_ACCEPT_HEADER = "application/rdap+json"

# eventAction values that carry the registration expiration date
EXPIRATION_EVENT_ACTIONS = ("expiration", "registration expiration")


@dataclass
class RDAPEvent:
    """A single RDAP event (e.g., registration, expiration)."""

    event_action: str
    event_date: str


@dataclass
class RDAPResponse:
    """Outcome of a single RDAP GET request."""

    url: str
    status: RDAPStatus
    http_status_code: int = 0
    raw_response: Optional[Any] = None
    events: list[RDAPEvent] = field(default_factory=list)
    error: Optional[str] = None
    response_time_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == RDAPStatus.SUCCESS

    def expiration_event(self) -> Optional[RDAPEvent]:
        """Return the first event whose action marks the expiration date."""
        for event in self.events:
            if event.event_action in EXPIRATION_EVENT_ACTIONS:
                return event
        return None


def build_rdap_url(template: str, domain: str) -> str:
    """Fill an endpoint template with the domain and its TLD."""
    return template.format(domain=domain, tld=tld_of(domain))


def parse_events(json_data: Any) -> list[RDAPEvent]:
    """
    Extract the events array of an RDAP domain object.

    Entries without an action or date are skipped; a missing or malformed
    ``events`` member yields an empty list.
    """
    if not isinstance(json_data, dict):
        return []

    raw_events = json_data.get("events", [])
    if not isinstance(raw_events, list):
        return []

    events = []
    for event in raw_events:
        if not isinstance(event, dict):
            continue
        event_action = event.get("eventAction")
        event_date = event.get("eventDate")
        if isinstance(event_action, str) and isinstance(event_date, str) and event_date:
            events.append(RDAPEvent(event_action=event_action, event_date=event_date))
    return events


class RDAPClient:
    """
    Async RDAP client.

    Each call to ``fetch`` issues one GET request; the client never retries.
    A ``transport`` may be injected for testing.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the RDAP client.

        Args:
            timeout: Request timeout in seconds; None keeps httpx's default
            transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "RDAPClient":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {"follow_redirects": True}
            if self._timeout is not None:
                kwargs["timeout"] = httpx.Timeout(self._timeout)
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def query(self, domain: str, endpoint_template: str) -> RDAPResponse:
        """Query the endpoint described by ``endpoint_template`` for ``domain``."""
        return await self.fetch(build_rdap_url(endpoint_template, domain))

    async def fetch(self, url: str) -> RDAPResponse:
        """
        GET an RDAP URL and classify the outcome.

        Returns:
            RDAPResponse with status SUCCESS for a 2xx JSON body,
            HTTP_ERROR for other status codes, PARSE_ERROR for a 2xx
            body that is not JSON and NETWORK_ERROR for transport failures
        """
        start_time = time.perf_counter()
        client = self._ensure_client()

        try:
            response = await client.get(url, headers={"Accept": RDAP_ACCEPT_HEADER})
        except httpx.HTTPError as e:
            return RDAPResponse(
                url=url,
                status=RDAPStatus.NETWORK_ERROR,
                error=f"{type(e).__name__}: {e}",
                response_time_ms=self._elapsed_ms(start_time),
            )

        response_time_ms = self._elapsed_ms(start_time)

        if not response.is_success:
            return RDAPResponse(
                url=url,
                status=RDAPStatus.HTTP_ERROR,
                http_status_code=response.status_code,
                error=f"HTTP {response.status_code}",
                response_time_ms=response_time_ms,
            )

        try:
            json_data = response.json()
        except ValueError as e:
            return RDAPResponse(
                url=url,
                status=RDAPStatus.PARSE_ERROR,
                http_status_code=response.status_code,
                raw_response=response.text,
                error=f"Failed to parse RDAP response: {e}",
                response_time_ms=response_time_ms,
            )

        return RDAPResponse(
            url=url,
            status=RDAPStatus.SUCCESS,
            http_status_code=response.status_code,
            raw_response=json_data,
            events=parse_events(json_data),
            response_time_ms=response_time_ms,
        )

    def _elapsed_ms(self, start_time: float) -> float:
        """Calculate elapsed time in milliseconds."""
        return (time.perf_counter() - start_time) * 1000

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
