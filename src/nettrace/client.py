"""
NetworkClient: the single entry point to all diagnostic operations.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

from .config import NetworkConfig
from .dns_resolver import DNSDriver
from .errors import ErrorCode, validation_error
from .log import FieldLogger, get_logger
from .models import (
    DNSRecordType,
    DNSResult,
    NetworkHost,
    PingOptions,
    PingResult,
    SSLResult,
    TraceHop,
    TraceOptions,
    WHOISResult,
)
from .ping import PingDriver
from .retry import RetryManager
from .tls_checker import TLSChecker
from .traceroute import TracerouteDriver
from .validation import is_valid_domain, is_valid_host, is_valid_port
from .whois import WhoisDriver


class NetworkClient:
    """
    Facade over the protocol drivers.

    Owns only the shared configuration, retry policy and the client-wide
    concurrency semaphore; safe for concurrent use. Every operation
    validates its inputs before any socket is opened.
    """

    def __init__(
        self,
        config: Optional[NetworkConfig] = None,
        logger: Optional[FieldLogger] = None,
        *,
        dns: Optional[DNSDriver] = None,
        whois: Optional[WhoisDriver] = None,
        tls: Optional[TLSChecker] = None,
        ping: Optional[PingDriver] = None,
        traceroute: Optional[TracerouteDriver] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Shared network configuration (validated here)
            logger: Logger to report through
            dns, whois, tls, ping, traceroute: Driver overrides, mainly for tests
        """
        self.config = config or NetworkConfig()
        self.config.validate()
        self._logger = logger or get_logger(__name__)
        self.retry = RetryManager(
            max_attempts=self.config.retry_attempts,
            base_delay=self.config.retry_delay,
            logger=self._logger,
        )
        self._semaphore: Optional[asyncio.Semaphore] = None

        timeout = self.config.timeout
        self.dns = dns or DNSDriver(
            nameservers=self.config.dns_servers, timeout=timeout, logger=self._logger
        )
        self.whois = whois or WhoisDriver(timeout=timeout, retry=self.retry, logger=self._logger)
        self.tls = tls or TLSChecker(timeout=timeout, retry=self.retry, logger=self._logger)
        self.ping_driver = ping or PingDriver(logger=self._logger)
        self.traceroute_driver = traceroute or TracerouteDriver(
            reverse_lookup=self.dns.reverse_lookup, logger=self._logger
        )

    @asynccontextmanager
    async def _slot(self):
        # Created lazily so the semaphore binds to the running loop
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.config.max_concurrency)
        async with self._semaphore:
            yield

    async def _resolve(self, host: str, ipv6: bool, code: ErrorCode) -> NetworkHost:
        async with self._slot():
            return await self.retry.run(
                lambda: self.dns.resolve_host(host, ipv6=ipv6),
                operation_name=f"resolve {host}",
                exhausted_code=code,
                context={"host": host},
            )

    async def ping(self, host: str, options: Optional[PingOptions] = None) -> AsyncIterator[PingResult]:
        """
        Validate, resolve and start pinging a host.

        Raises:
            NetTraceError: on invalid input or if the host cannot be resolved;
                no stream is returned in that case

        Returns:
            Async iterator of PingResult in sequence order
        """
        options = options or PingOptions(packet_size=self.config.packet_size)
        if not is_valid_host(host):
            raise validation_error(ErrorCode.PING_INVALID_HOST, f"invalid host: {host!r}", host=host)
        options.validate()

        target = await self._resolve(host, options.ipv6, ErrorCode.PING_RESOLVE_FAILED)
        return self._guarded(self.ping_driver.stream(target, options))

    async def traceroute(
        self, host: str, options: Optional[TraceOptions] = None
    ) -> AsyncIterator[TraceHop]:
        """
        Validate, resolve and start tracing the path to a host.

        Raises:
            NetTraceError: on invalid input, resolution failure or missing
                raw-socket privileges

        Returns:
            Async iterator of TraceHop in hop order
        """
        options = options or TraceOptions(max_hops=self.config.max_hops)
        if not is_valid_host(host):
            raise validation_error(ErrorCode.TRACE_INVALID_HOST, f"invalid host: {host!r}", host=host)
        options.validate()

        prober = self.traceroute_driver.open_prober(options.ipv6)
        try:
            target = await self._resolve(host, options.ipv6, ErrorCode.TRACE_RESOLVE_FAILED)
        except BaseException:
            prober.close()
            raise
        return self._guarded(self.traceroute_driver.stream(target, options, prober))

    async def _guarded(self, stream: AsyncIterator) -> AsyncIterator:
        async with self._slot():
            try:
                async for item in stream:
                    yield item
            finally:
                await stream.aclose()

    async def dns_lookup(self, domain: str, record_type: Union[DNSRecordType, str]) -> DNSResult:
        """Resolve one record type for a domain (or an IP for PTR)."""
        record_type = DNSRecordType.parse(record_type)
        name = (domain or "").strip()
        reverse_ok = record_type == DNSRecordType.PTR and is_valid_host(name)
        if not (is_valid_domain(name) or reverse_ok):
            raise validation_error(ErrorCode.DNS_INVALID_DOMAIN, f"invalid domain: {domain!r}", domain=domain)

        async with self._slot():
            return await self.retry.run(
                lambda: self.dns.query(name, record_type),
                operation_name=f"DNS {record_type.value} lookup for {name}",
                exhausted_code=ErrorCode.DNS_LOOKUP_FAILED,
                context={"domain": name, "record_type": record_type.value},
            )

    async def whois_lookup(self, query: str) -> WHOISResult:
        """WHOIS lookup of a domain or IP address, following referrals."""
        if not (query or "").strip():
            raise validation_error(ErrorCode.WHOIS_INVALID_QUERY, "query is required")
        async with self._slot():
            return await self.whois.lookup(query)

    async def ssl_check(self, host: str, port: int = 443) -> SSLResult:
        """Retrieve and analyze the certificate chain served at host:port."""
        if not is_valid_host(host):
            raise validation_error(ErrorCode.SSL_INVALID_HOST, f"invalid host: {host!r}", host=host)
        if not is_valid_port(port):
            raise validation_error(ErrorCode.SSL_INVALID_PORT, f"invalid port: {port!r}", port=port)
        async with self._slot():
            return await self.tls.check(host, port)
