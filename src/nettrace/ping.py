"""
ICMP echo (ping) driver.
"""

import asyncio
import time
from typing import AsyncIterator, Callable, Optional

from .errors import ErrorCode, classify_exception
from .log import FieldLogger, get_logger
from .models import NetworkHost, PingOptions, PingResult
from .probes import Prober, open_ping_prober

ProberFactory = Callable[[bool], Prober]


class PingDriver:
    """
    Streams one PingResult per sequence number.

    A probe that gets no answer within options.timeout yields a result with
    a PING_TIMEOUT error and the loop carries on; socket errors are recorded
    the same way. Results are emitted in sequence order.
    """

    def __init__(
        self,
        prober_factory: Optional[ProberFactory] = None,
        logger: Optional[FieldLogger] = None,
    ):
        self._logger = logger or get_logger(__name__)
        self._prober_factory = prober_factory or (
            lambda ipv6: open_ping_prober(ipv6, self._logger)
        )

    async def stream(self, target: NetworkHost, options: PingOptions) -> AsyncIterator[PingResult]:
        """
        Ping an already-resolved target.

        Args:
            target: Resolved host
            options: Validated ping options

        Yields:
            PingResult for sequences 1..options.count
        """
        prober = self._prober_factory(options.ipv6)
        self._logger.info(
            "Starting ping",
            host=target.hostname,
            ip=target.ip,
            count=options.count,
            prober=prober.name,
        )
        try:
            for sequence in range(1, options.count + 1):
                started = time.monotonic()
                yield await self._probe_once(prober, target, sequence, options)

                if sequence < options.count:
                    remaining = options.interval - (time.monotonic() - started)
                    if remaining > 0:
                        await asyncio.sleep(remaining)
        finally:
            prober.close()

    async def _probe_once(
        self,
        prober: Prober,
        target: NetworkHost,
        sequence: int,
        options: PingOptions,
    ) -> PingResult:
        try:
            reply = await asyncio.wait_for(
                prober.probe(target.ip, sequence, options.ttl, options.packet_size),
                timeout=options.timeout,
            )
        except asyncio.TimeoutError:
            self._logger.debug("Ping timeout", host=target.ip, sequence=sequence)
            return PingResult(
                host=target,
                sequence=sequence,
                rtt_ms=None,
                ttl=None,
                packet_size=options.packet_size,
                error=f"request timed out after {options.timeout:g}s",
                error_code=ErrorCode.PING_TIMEOUT.value,
            )
        except OSError as e:
            code, _ = classify_exception(e)
            self._logger.debug("Ping probe failed", host=target.ip, sequence=sequence, error=repr(e))
            return PingResult(
                host=target,
                sequence=sequence,
                rtt_ms=None,
                ttl=None,
                packet_size=options.packet_size,
                error=str(e) or type(e).__name__,
                error_code=code.value,
            )

        if not reply.reached:
            return PingResult(
                host=target,
                sequence=sequence,
                rtt_ms=reply.rtt_ms,
                ttl=reply.ttl,
                packet_size=options.packet_size,
                error=f"{reply.kind.replace('_', ' ')} from {reply.address}",
                error_code=ErrorCode.NET_HOST_UNREACHABLE.value,
            )

        return PingResult(
            host=target,
            sequence=sequence,
            rtt_ms=reply.rtt_ms,
            ttl=reply.ttl,
            packet_size=options.packet_size,
        )
