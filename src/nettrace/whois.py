"""
WHOIS protocol driver.

Routes a query to the authoritative WHOIS server for its TLD (or to the
regional registry for IP addresses), speaks the port-43 text protocol and
follows registrar referrals up to a fixed hop limit.
"""

import asyncio
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import ErrorCode, NetTraceError, validation_error
from .log import FieldLogger, get_logger
from .models import WHOISResult
from .retry import RetryManager
from .validation import is_ip, is_valid_domain
from .whois_parser import find_referral, parse_whois_response

WHOIS_PORT = 43
DEFAULT_TIMEOUT = 10.0
MAX_REFERRALS = 3

QUERY_TYPE_DOMAIN = "domain"
QUERY_TYPE_IP = "ip"

_GOOGLE_REGISTRY = "whois.nic.google"
_UK_REGISTRY = "whois.nic.uk"
_IN_REGISTRY = "whois.registry.in"

WHOIS_SERVERS: Dict[str, str] = {
    "com": "whois.verisign-grs.com",
    "net": "whois.verisign-grs.com",
    "org": "whois.pir.org",
    "info": "whois.afilias.net",
    "biz": "whois.neulevel.biz",
    "us": "whois.nic.us",
    "uk": _UK_REGISTRY,
    "ca": "whois.cira.ca",
    "de": "whois.denic.de",
    "fr": "whois.nic.fr",
    "jp": "whois.jprs.jp",
    "au": "whois.auda.org.au",
    "nl": "whois.domain-registry.nl",
    "br": "whois.registro.br",
    "cn": "whois.cnnic.net.cn",
    "in": _IN_REGISTRY,
    "ru": "whois.tcinet.ru",
    "edu": "whois.educause.edu",
    "gov": "whois.nic.gov",
    "mil": "whois.nic.mil",
    "int": "whois.iana.org",
    "io": "whois.nic.io",
    "co": "whois.nic.co",
    "me": "whois.nic.me",
    "tv": "whois.nic.tv",
    "cc": "whois.nic.cc",
    "ly": "whois.nic.ly",
    "be": "whois.dns.be",
    "it": "whois.nic.it",
    "es": "whois.nic.es",
    "ch": "whois.nic.ch",
    "at": "whois.nic.at",
    "se": "whois.iis.se",
    "no": "whois.norid.no",
    "dk": "whois.dk-hostmaster.dk",
    "fi": "whois.fi",
    "pl": "whois.dns.pl",
    "cz": "whois.nic.cz",
    "sk": "whois.sk-nic.sk",
    "hu": "whois.nic.hu",
    "ro": "whois.rotld.ro",
    "bg": "whois.register.bg",
    "hr": "whois.dns.hr",
    "si": "whois.arnes.si",
    "lt": "whois.domreg.lt",
    "lv": "whois.nic.lv",
    "ee": "whois.tld.ee",
    "is": "whois.isnic.is",
    "ie": "whois.weare.ie",
    "pt": "whois.dns.pt",
    "gr": "whois.ics.forth.gr",
    "tr": "whois.nic.tr",
    "il": "whois.isoc.org.il",
    "za": "whois.registry.net.za",
    "mx": "whois.mx",
    "ar": "whois.nic.ar",
    "cl": "whois.nic.cl",
    "pe": "kero.yachay.pe",
    # Reverse zones route IP queries; ARIN refers onwards to the other RIRs.
    "in-addr.arpa": "whois.arin.net",
    "ip6.arpa": "whois.arin.net",
}
WHOIS_SERVERS.update(
    {
        tld: _GOOGLE_REGISTRY
        for tld in (
            "dev", "app", "page", "how", "soy", "meme", "new", "nexus", "foo", "zip",
            "mov", "phd", "prof", "dad", "eat", "boo", "day", "rsvp", "here", "ing",
        )
    }
)
WHOIS_SERVERS.update(
    {
        f"{sld}.uk": _UK_REGISTRY
        for sld in (
            "co", "org", "me", "ltd", "plc", "net", "sch", "ac", "gov", "nhs", "police", "mod",
        )
    }
)
WHOIS_SERVERS.update({f"{sld}.in": _IN_REGISTRY for sld in ("net", "co", "org")})

# Lazily created tldextract instance
_tldextract = None


def _get_extractor():
    """Get or create the tldextract instance (bundled suffix list, no network fetch)."""
    global _tldextract
    if _tldextract is None:
        import tldextract

        _tldextract = tldextract.TLDExtract(
            cache_dir=None,
            suffix_list_urls=(),
            include_psl_private_domains=False,
        )
    return _tldextract


def classify_query(query: str) -> str:
    """
    Classify a WHOIS query as "ip" or "domain".

    Raises:
        NetTraceError: validation-typed, if the query is neither
    """
    query = (query or "").strip()
    if not query:
        raise validation_error(ErrorCode.WHOIS_INVALID_QUERY, "query is required")
    if is_ip(query):
        return QUERY_TYPE_IP
    if is_valid_domain(query):
        return QUERY_TYPE_DOMAIN
    raise validation_error(
        ErrorCode.WHOIS_VALIDATION_FAILED,
        f"invalid WHOIS query: {query}",
        query=query,
    )


def split_server(server: str, default_port: int = WHOIS_PORT) -> Tuple[str, int]:
    """Split "host" or "host:port" into (host, port)."""
    host, sep, port = server.rpartition(":")
    if sep and port.isdigit() and host:
        return host, int(port)
    return server, default_port


class WhoisDriver:
    """
    Performs WHOIS lookups with referral chasing.

    The server table maps suffixes to "host" or "host:port" strings and can
    be replaced for testing.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        retry: Optional[RetryManager] = None,
        servers: Optional[Mapping[str, str]] = None,
        max_referrals: int = MAX_REFERRALS,
        logger: Optional[FieldLogger] = None,
    ):
        self.timeout = timeout
        self.servers = dict(WHOIS_SERVERS if servers is None else servers)
        self.max_referrals = max_referrals
        self._retry = retry or RetryManager()
        self._logger = logger or get_logger(__name__)

    def find_server(self, query: str, query_type: Optional[str] = None) -> Tuple[str, int]:
        """
        Resolve the WHOIS server responsible for a query.

        The public suffix (e.g. "co.uk") is checked before the bare TLD.
        Unknown suffixes fail validation.
        """
        query_type = query_type or classify_query(query)
        name = query.strip().lower().rstrip(".")

        candidates: List[str] = []
        if query_type == QUERY_TYPE_IP:
            candidates.append("ip6.arpa" if ":" in name else "in-addr.arpa")
        else:
            suffix = _get_extractor()(name).suffix
            if suffix:
                candidates.append(suffix)
            candidates.append(name.rsplit(".", 1)[-1])

        for candidate in candidates:
            if candidate in self.servers:
                return split_server(self.servers[candidate])

        raise validation_error(
            ErrorCode.WHOIS_VALIDATION_FAILED,
            f"no WHOIS server known for {name}",
            query=query,
            suffixes=candidates,
        )

    async def query_server(self, host: str, port: int, query: str) -> str:
        """Send one query over the port-43 protocol and read until EOF."""
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=self.timeout,
        )
        try:
            writer.write(f"{query}\r\n".encode("utf-8"))
            await writer.drain()
            data = await asyncio.wait_for(reader.read(), timeout=self.timeout)
        finally:
            writer.close()
            await writer.wait_closed()
        return data.decode("utf-8", errors="replace")

    async def _fetch(self, host: str, port: int, query: str) -> str:
        return await self._retry.run(
            lambda: self.query_server(host, port, query),
            operation_name=f"WHOIS query to {host}",
            exhausted_code=ErrorCode.WHOIS_LOOKUP_FAILED,
            context={"query": query, "server": f"{host}:{port}"},
        )

    async def lookup(self, query: str) -> WHOISResult:
        """
        Look up a domain or IP address.

        The initial server must answer; a failing referral degrades to the
        last successful response.
        """
        query = query.strip()
        query_type = classify_query(query)
        host, port = self.find_server(query, query_type)

        raw = await self._fetch(host, port, query)
        answered_by = f"{host}:{port}"
        visited = {(host, port)}

        for _ in range(self.max_referrals):
            referral = find_referral(raw)
            if referral is None:
                break
            next_host, next_port = referral[0], referral[1] or WHOIS_PORT
            if (next_host, next_port) in visited:
                break
            visited.add((next_host, next_port))

            self._logger.debug("Following WHOIS referral", query=query, server=next_host)
            try:
                raw = await self._fetch(next_host, next_port, query)
            except (NetTraceError, OSError, asyncio.TimeoutError) as e:
                self._logger.warn(
                    "WHOIS referral failed, using previous response",
                    query=query,
                    server=next_host,
                    error=str(e),
                )
                break
            answered_by = f"{next_host}:{next_port}"

        self._logger.info("WHOIS lookup completed", query=query, server=answered_by)
        return parse_whois_response(raw, query, server=answered_by, query_type=query_type)
