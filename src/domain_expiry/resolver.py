"""
Registration-data resolver.

Resolves a domain to its registration expiration date. In RDAP mode the
primary endpoint is queried first and, on a non-success HTTP status, the
fallback endpoints are tried in order until one answers successfully. The
first successful answer is final: its expiration event is the result, or the
domain is not found. In WHOIS mode the raw record is scanned with the
ordered label patterns from ``whois_parser``.

RDAP mode never falls back to WHOIS.
"""

from typing import Optional

from .audit_logger import AuditLogger
from .config import RDAPConfig
from .date_parser import parse_expiration_date
from .debug_store import DebugArtifactWriter
from .enums import RDAPStatus, SourceKind
from .exceptions import DateParseError, ResolutionNotFoundError
from .models import ResolutionResult
from .rdap_client import RDAPClient, RDAPResponse
from .whois_client import WHOISClient
from .whois_parser import extract_expiration


class ExpirationResolver:
    """Resolves expiration dates via RDAP, or WHOIS when RDAP is disabled."""

    COMPONENT = "ExpirationResolver"

    def __init__(
        self,
        rdap_config: RDAPConfig,
        rdap_client: Optional[RDAPClient] = None,
        whois_client: Optional[WHOISClient] = None,
        debug_writer: Optional[DebugArtifactWriter] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._rdap_config = rdap_config
        self._rdap_client = rdap_client or RDAPClient()
        self._whois_client = whois_client or WHOISClient()
        self._debug_writer = debug_writer
        self._logger = logger

    async def __aenter__(self) -> "ExpirationResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._rdap_client.close()

    @property
    def uses_rdap(self) -> bool:
        return self._rdap_config.enabled

    async def resolve(self, domain: str) -> ResolutionResult:
        """
        Resolve the expiration date of ``domain``.

        Returns:
            ResolutionResult whose ``expiration`` is None when not found
        """
        if self._rdap_config.enabled:
            return await self._resolve_rdap(domain)
        return await self._resolve_whois(domain)

    async def require(self, domain: str) -> ResolutionResult:
        """
        Resolve ``domain`` and insist on an expiration date.

        Raises:
            ResolutionNotFoundError: If no expiration date was found
        """
        result = await self.resolve(domain)
        if not result.found:
            raise ResolutionNotFoundError(
                code="expiration_not_found",
                message=f"Could not find expiration date for {domain}",
                details={
                    "domain": domain,
                    "source": result.source.value if result.source else None,
                    "endpoint": result.endpoint,
                },
            )
        return result

    async def _resolve_rdap(self, domain: str) -> ResolutionResult:
        self._debug(f"Fetching RDAP data for {domain}", {"domain": domain})

        response = await self._first_successful_response(domain)
        if response is None:
            return ResolutionResult(domain=domain, source=SourceKind.RDAP)

        self._save_debug(domain, response.raw_response, SourceKind.RDAP)

        result = ResolutionResult(
            domain=domain,
            source=SourceKind.RDAP,
            endpoint=response.url,
            raw_payload=response.raw_response,
        )

        event = response.expiration_event()
        if event is None:
            self._warn(
                "No expiration date found in RDAP data",
                {"domain": domain, "url": response.url},
            )
            return result

        try:
            result.expiration = parse_expiration_date(event.event_date)
        except DateParseError as e:
            self._log_parse_failure(domain, event.event_date, e)
            return result

        self._debug(
            f"RDAP expiry date found: {event.event_date}",
            {"domain": domain, "url": response.url, "event_action": event.event_action},
        )
        return result

    async def _first_successful_response(self, domain: str) -> Optional[RDAPResponse]:
        """
        Query the primary endpoint, then the fallbacks, in order.

        A transport or JSON failure on the primary endpoint ends the lookup;
        on a fallback it only skips that fallback.
        """
        primary = await self._rdap_client.query(domain, self._rdap_config.primary_endpoint)
        if primary.ok:
            return primary

        if primary.status != RDAPStatus.HTTP_ERROR:
            self._error(
                "Error fetching RDAP data",
                {"domain": domain, "url": primary.url, "error": primary.error},
            )
            return None

        self._warn(
            f"RDAP query failed with status: {primary.http_status_code}",
            {"domain": domain, "url": primary.url},
        )

        for template in self._rdap_config.fallback_endpoints:
            response = await self._rdap_client.query(domain, template)
            self._debug(
                f"Tried alternative RDAP endpoint: {response.url}",
                {"domain": domain, "status": response.status.value},
            )
            if response.ok:
                return response
            if response.status != RDAPStatus.HTTP_ERROR:
                self._error(
                    "Error with alternative RDAP endpoint",
                    {"domain": domain, "url": response.url, "error": response.error},
                )

        return None

    async def _resolve_whois(self, domain: str) -> ResolutionResult:
        self._debug(f"Fetching WHOIS data for {domain}", {"domain": domain})

        response = await self._whois_client.lookup(domain)
        result = ResolutionResult(
            domain=domain,
            source=SourceKind.WHOIS,
            endpoint=response.server,
            raw_payload=response.raw_response,
        )

        if response.error:
            self._error(
                "Error fetching WHOIS data",
                {"domain": domain, "server": response.server, "error": response.error},
            )
            return result

        self._save_debug(domain, response.raw_response, SourceKind.WHOIS)

        self._debug(
            "Parsing WHOIS data",
            {"domain": domain, "excerpt": (response.raw_response or "")[:500]},
        )

        extraction = extract_expiration(response.raw_response)
        for failure in extraction.failures:
            self._error(
                f"Failed to parse date: {failure.raw_value}",
                {"domain": domain, "label": failure.label, "error": failure.error},
            )

        if not extraction.found:
            self._warn(
                "Could not find expiration date in WHOIS data",
                {"domain": domain, "servers": response.servers_queried},
            )
            return result

        self._debug(
            f"Found date match: {extraction.raw_value}",
            {"domain": domain, "label": extraction.label},
        )
        result.expiration = extraction.expiration
        return result

    def _save_debug(self, domain: str, data, source: SourceKind) -> None:
        if self._debug_writer is not None:
            self._debug_writer.write(domain, data, source)

    def _log_parse_failure(self, domain: str, raw: str, error: DateParseError) -> None:
        if self._logger:
            self._logger.log_error(
                self.COMPONENT,
                f"Failed to parse date: {raw}",
                error=error,
                additional_data={"domain": domain},
            )

    def _debug(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.debug(self.COMPONENT, message, data)

    def _warn(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.warn(self.COMPONENT, message, data)

    def _error(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.error(self.COMPONENT, message, data)
