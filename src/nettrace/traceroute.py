"""
TTL-incrementing path discovery.
"""

import asyncio
import itertools
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from .log import FieldLogger, get_logger
from .models import NetworkHost, TraceHop, TraceOptions
from .probes import Prober, ProbeReply, open_trace_prober

ProberFactory = Callable[[bool], Prober]
ReverseLookup = Callable[[str], Awaitable[Optional[str]]]


class TracerouteDriver:
    """
    Streams one TraceHop per hop number.

    All probes of a hop are sent concurrently and their slots kept in send
    order; the hop is only emitted once every probe answered or timed out.
    The trace stops at the hop whose responder is the destination, or at
    max_hops.
    """

    def __init__(
        self,
        prober_factory: Optional[ProberFactory] = None,
        reverse_lookup: Optional[ReverseLookup] = None,
        logger: Optional[FieldLogger] = None,
    ):
        self._prober_factory = prober_factory or open_trace_prober
        self._reverse_lookup = reverse_lookup
        self._logger = logger or get_logger(__name__)
        self._sequence = itertools.count(1)

    def open_prober(self, ipv6: bool) -> Prober:
        """Acquire the prober up front so privilege problems surface before streaming."""
        return self._prober_factory(ipv6)

    async def stream(
        self,
        target: NetworkHost,
        options: TraceOptions,
        prober: Optional[Prober] = None,
    ) -> AsyncIterator[TraceHop]:
        prober = prober or self.open_prober(options.ipv6)
        self._logger.info(
            "Starting traceroute",
            host=target.hostname,
            ip=target.ip,
            max_hops=options.max_hops,
        )
        try:
            for ttl in range(1, options.max_hops + 1):
                replies = await asyncio.gather(
                    *(self._probe(prober, target, ttl, options) for _ in range(options.queries))
                )
                hop = await self._build_hop(ttl, replies)
                yield hop

                if self._reached(target, replies):
                    self._logger.debug("Destination reached", hop=ttl, ip=target.ip)
                    break
        finally:
            prober.close()

    async def _probe(
        self,
        prober: Prober,
        target: NetworkHost,
        ttl: int,
        options: TraceOptions,
    ) -> Optional[ProbeReply]:
        sequence = next(self._sequence) & 0xFFFF
        try:
            return await asyncio.wait_for(
                prober.probe(target.ip, sequence, ttl, options.packet_size),
                timeout=options.timeout,
            )
        except asyncio.TimeoutError:
            return None

    async def _build_hop(self, ttl: int, replies: List[Optional[ProbeReply]]) -> TraceHop:
        rtts = [reply.rtt_ms if reply is not None else None for reply in replies]
        responder = next((reply.address for reply in replies if reply is not None), None)
        if responder is None:
            return TraceHop(number=ttl, host=None, rtts_ms=rtts, timeout=True)

        hostname = responder
        if self._reverse_lookup is not None:
            hostname = await self._reverse_lookup(responder) or responder
        return TraceHop(
            number=ttl,
            host=NetworkHost(hostname=hostname, ip=responder),
            rtts_ms=rtts,
            timeout=False,
        )

    @staticmethod
    def _reached(target: NetworkHost, replies: List[Optional[ProbeReply]]) -> bool:
        return any(
            reply is not None and (reply.address == target.ip or reply.reached)
            for reply in replies
        )
