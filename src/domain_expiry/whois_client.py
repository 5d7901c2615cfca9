"""
WHOIS client module for domain expiration lookups.

Queries WHOIS servers over TCP port 43. The registry server is taken from a
built-in table, or discovered through whois.iana.org for unknown TLDs. A
"Registrar WHOIS Server" referral in the registry answer is followed so the
registrar's (usually more detailed) record is returned.
"""

import asyncio
import re
import socket
from dataclasses import dataclass, field
from typing import Optional

from .domain_targets import tld_of
from .exceptions import NetworkError


WHOIS_PORT = 43
IANA_WHOIS_SERVER = "whois.iana.org"

_IANA_REFER = re.compile(r"^(?:refer|whois):\s*(\S+)", re.IGNORECASE | re.MULTILINE)
_REGISTRAR_REFER = re.compile(
    r"^\s*(?:Registrar WHOIS Server|ReferralServer):\s*(\S+)",
    re.IGNORECASE | re.MULTILINE,
)


@dataclass
class WHOISResponse:
    """Response from a WHOIS lookup."""

    domain: str
    server: Optional[str]
    raw_response: Optional[str]
    servers_queried: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.raw_response)


class WHOISClient:
    """
    Async WHOIS client.

    Blocking socket I/O runs in the default executor so the event loop is
    not stalled.
    """

    # Registry WHOIS servers per TLD
    WHOIS_SERVERS: dict[str, str] = {
        "com": "whois.verisign-grs.com",
        "net": "whois.verisign-grs.com",
        "org": "whois.pir.org",
        "info": "whois.afilias.net",
        "biz": "whois.nic.biz",
        "io": "whois.nic.io",
        "co": "whois.nic.co",
        "de": "whois.denic.de",
        "eu": "whois.eu",
        "in": "whois.registry.in",
        "uk": "whois.nic.uk",
        "nl": "whois.sidn.nl",
        "fr": "whois.nic.fr",
        "ru": "whois.tcinet.ru",
        "app": "whois.nic.google",
        "dev": "whois.nic.google",
    }

    def __init__(
        self,
        timeout: float = 10.0,
        follow_referrals: int = 1,
        custom_servers: Optional[dict[str, str]] = None,
    ) -> None:
        """
        Initialize the WHOIS client.

        Args:
            timeout: Socket timeout in seconds
            follow_referrals: How many registrar referrals to follow
            custom_servers: Optional WHOIS servers per TLD, merged over defaults
        """
        self._timeout = timeout
        self._follow_referrals = follow_referrals
        self._servers = dict(self.WHOIS_SERVERS)
        if custom_servers:
            self._servers.update({k.lower(): v for k, v in custom_servers.items()})

    async def lookup(self, domain: str) -> WHOISResponse:
        """
        Look up a domain and return the most specific raw WHOIS text.

        Network failures are reported through ``WHOISResponse.error``.
        """
        servers_queried: list[str] = []

        try:
            server = await self._server_for(domain, servers_queried)
        except NetworkError as e:
            return WHOISResponse(
                domain=domain,
                server=IANA_WHOIS_SERVER,
                raw_response=None,
                servers_queried=servers_queried,
                error=f"IANA lookup failed: {e.message}",
            )

        if server is None:
            return WHOISResponse(
                domain=domain,
                server=None,
                raw_response=None,
                servers_queried=servers_queried,
                error=f"No WHOIS server known for TLD: {tld_of(domain) or domain}",
            )

        try:
            raw = await self._execute_whois_query(domain, server)
        except NetworkError as e:
            return WHOISResponse(
                domain=domain,
                server=server,
                raw_response=None,
                servers_queried=servers_queried + [server],
                error=e.message,
            )
        servers_queried.append(server)

        for _ in range(self._follow_referrals):
            referral = self.extract_referral(raw, current_server=server)
            if referral is None:
                break
            try:
                referred = await self._execute_whois_query(domain, referral)
            except NetworkError:
                # Keep the registry answer when the registrar is unreachable
                break
            servers_queried.append(referral)
            if not referred.strip():
                break
            server, raw = referral, referred

        return WHOISResponse(
            domain=domain,
            server=server,
            raw_response=raw,
            servers_queried=servers_queried,
        )

    async def _server_for(self, domain: str, servers_queried: list[str]) -> Optional[str]:
        tld = tld_of(domain)
        if tld in self._servers:
            return self._servers[tld]
        if not tld:
            return None

        servers_queried.append(IANA_WHOIS_SERVER)
        answer = await self._execute_whois_query(tld, IANA_WHOIS_SERVER)
        match = _IANA_REFER.search(answer)
        if match is None:
            return None
        server = match.group(1).strip()
        self._servers[tld] = server
        return server

    @staticmethod
    def extract_referral(raw_response: str, current_server: str) -> Optional[str]:
        """
        Return the registrar WHOIS server named in a response, if any.

        URL-style referrals (``whois://host``) are reduced to the host;
        HTTP referrals and self-references are ignored.
        """
        match = _REGISTRAR_REFER.search(raw_response or "")
        if match is None:
            return None

        target = match.group(1).strip()
        lowered = target.lower()
        if lowered.startswith(("http://", "https://")):
            return None
        if lowered.startswith("whois://"):
            target = target[len("whois://"):]
        target = target.split("/", 1)[0].split(":", 1)[0].strip()

        if not target or target.lower() == current_server.lower():
            return None
        return target

    async def _execute_whois_query(self, query: str, server: str) -> str:
        """
        Execute the actual WHOIS query via socket.

        Args:
            query: Domain or TLD to query
            server: WHOIS server hostname

        Returns:
            Raw WHOIS response as string

        Raises:
            NetworkError: On connection failure or timeout
        """
        loop = asyncio.get_running_loop()

        def _sync_query() -> str:
            with socket.create_connection((server, WHOIS_PORT), timeout=self._timeout) as sock:
                sock.sendall(f"{query}\r\n".encode("utf-8"))

                response_parts: list[bytes] = []
                while True:
                    data = sock.recv(4096)
                    if not data:
                        break
                    response_parts.append(data)

                return b"".join(response_parts).decode("utf-8", errors="replace")

        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, _sync_query),
                timeout=self._timeout * 2,
            )
        except (OSError, asyncio.TimeoutError) as e:
            raise NetworkError(
                code="whois_unreachable",
                message=f"WHOIS query to {server} failed: {type(e).__name__}: {e}",
                details={"server": server, "query": query},
            ) from e
