"""
DNS resolution functionality.

Single record-type lookups, host resolution for probes and reverse lookups,
all over aiodns (c-ares). Multi-type fan-out lives in the DNS tool; the
consolidation rule it applies is defined here.
"""

import asyncio
import ipaddress
import socket
import time
from typing import Any, List, Optional, Sequence

import aiodns

from .log import FieldLogger, get_logger
from .models import DNSRecord, DNSRecordType, DNSResult, NetworkHost
from .validation import is_ip

DEFAULT_TIMEOUT = 5.0


def _as_list(answer: Any) -> List[Any]:
    # c-ares returns a single object for CNAME and SOA answers
    if answer is None:
        return []
    if isinstance(answer, (list, tuple)):
        return list(answer)
    return [answer]


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def render_record(name: str, record_type: DNSRecordType, entry: Any) -> DNSRecord:
    """
    Convert one c-ares answer entry into a DNSRecord.

    Args:
        name: Queried name the record belongs to
        record_type: Record type that was queried
        entry: pycares result object

    Returns:
        DNSRecord with a type-specific value rendering
    """
    ttl = int(getattr(entry, "ttl", 0) or 0)
    priority = None

    if record_type in (DNSRecordType.A, DNSRecordType.AAAA, DNSRecordType.NS):
        value = _text(entry.host)
    elif record_type == DNSRecordType.MX:
        value = _text(entry.host)
        priority = int(entry.priority)
    elif record_type == DNSRecordType.TXT:
        value = _text(entry.text)
    elif record_type == DNSRecordType.CNAME:
        value = _text(entry.cname)
    elif record_type == DNSRecordType.SOA:
        value = " ".join(
            _text(part)
            for part in (
                entry.nsname,
                entry.hostmaster,
                entry.serial,
                entry.refresh,
                entry.retry,
                entry.expires,
                entry.minttl,
            )
        )
    else:
        value = _text(entry.name)

    return DNSRecord(name=name, type=record_type, value=value, ttl=ttl, priority=priority)


class DNSDriver:
    """
    Issues DNS queries through a c-ares stub resolver.

    Each call makes exactly one attempt; retries are applied by the caller.
    """

    def __init__(
        self,
        nameservers: Optional[Sequence[str]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        resolver: Optional[Any] = None,
        logger: Optional[FieldLogger] = None,
    ):
        """
        Initialize DNS driver.

        Args:
            nameservers: Nameserver addresses; None/empty uses the system configuration
            timeout: Query timeout in seconds
            resolver: Pre-built resolver exposing the aiodns query API
            logger: Logger to report through
        """
        self.nameservers = list(nameservers or [])
        self.timeout = timeout
        self._resolver = resolver
        self._logger = logger or get_logger(__name__)

    @property
    def server(self) -> str:
        return ",".join(self.nameservers) if self.nameservers else "system"

    def _get_resolver(self) -> Any:
        # aiodns binds to the running loop, so build it lazily
        if self._resolver is None:
            self._resolver = aiodns.DNSResolver(
                nameservers=self.nameservers or None,
                timeout=self.timeout,
            )
        return self._resolver

    async def query(self, domain: str, record_type: DNSRecordType) -> DNSResult:
        """
        Resolve one record type.

        Raises:
            aiodns.error.DNSError: On resolver failure (NXDOMAIN, no data, ...)
            asyncio.TimeoutError: If the query exceeds the timeout
        """
        name = domain.rstrip(".")
        if record_type == DNSRecordType.PTR and is_ip(name):
            name = ipaddress.ip_address(name).reverse_pointer

        started = time.perf_counter()
        answer = await asyncio.wait_for(
            self._get_resolver().query(name, record_type.value),
            timeout=self.timeout,
        )
        elapsed_ms = (time.perf_counter() - started) * 1000

        records = [render_record(name, record_type, entry) for entry in _as_list(answer)]
        self._logger.debug(
            "DNS query completed",
            domain=name,
            record_type=record_type.value,
            records=len(records),
        )
        return DNSResult(
            query=domain,
            record_type=record_type,
            records=records,
            response_time_ms=elapsed_ms,
            server=self.server,
        )

    async def resolve_host(self, host: str, ipv6: bool = False, port: int = 0) -> NetworkHost:
        """
        Resolve a hostname to a single address for probing.

        IP literals are returned without touching the resolver.
        """
        if is_ip(host):
            return NetworkHost(hostname=host, ip=host, port=port)

        family = socket.AF_INET6 if ipv6 else socket.AF_INET
        result = await asyncio.wait_for(
            self._get_resolver().gethostbyname(host, family),
            timeout=self.timeout,
        )
        addresses = list(getattr(result, "addresses", []) or [])
        if not addresses:
            raise aiodns.error.DNSError(aiodns.error.ARES_ENODATA, f"no addresses for {host}")
        return NetworkHost(hostname=host, ip=addresses[0], port=port)

    async def reverse_lookup(self, ip: str) -> Optional[str]:
        """Best-effort PTR name for an address; None when there is none."""
        try:
            result = await asyncio.wait_for(
                self._get_resolver().gethostbyaddr(ip),
                timeout=self.timeout,
            )
        except (aiodns.error.DNSError, asyncio.TimeoutError) as e:
            self._logger.debug("Reverse lookup failed", ip=ip, error=repr(e))
            return None
        name = getattr(result, "name", None)
        return _text(name) if name else None


def consolidate_dns_results(domain: str, results: Sequence[DNSResult]) -> DNSResult:
    """
    Merge per-type answers into one result.

    Record lists are concatenated; the response time is the arithmetic mean
    of the per-type response times. The record type is that of the first
    result.
    """
    if not results:
        raise ValueError("at least one result is required")

    records: List[DNSRecord] = []
    authority: List[DNSRecord] = []
    additional: List[DNSRecord] = []
    for result in results:
        records.extend(result.records)
        authority.extend(result.authority)
        additional.extend(result.additional)

    mean_ms = sum(r.response_time_ms for r in results) / len(results)
    return DNSResult(
        query=domain,
        record_type=results[0].record_type,
        records=records,
        authority=authority,
        additional=additional,
        response_time_ms=mean_ms,
        server=results[0].server,
    )
