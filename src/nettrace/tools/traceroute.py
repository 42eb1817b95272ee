"""
Traceroute tool.
"""

from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence

from ..models import TraceHop
from ..parameters import TracerouteParameters
from ..result import Result
from .base import DiagnosticTool


@dataclass
class TracerouteStatistics:
    total_hops: int = 0
    responding_hops: int = 0
    timeout_hops: int = 0
    success_rate: float = 0.0
    min_rtt_ms: Optional[float] = None
    avg_rtt_ms: Optional[float] = None
    max_rtt_ms: Optional[float] = None
    reached_target: bool = False
    final_hop: int = 0

    @classmethod
    def from_hops(cls, hops: Sequence[TraceHop], target: str, max_hops: int) -> "TracerouteStatistics":
        """
        Summarize a trace.

        The target counts as reached when the last hop answered and either
        it is the target itself or the trace ended before max_hops.
        """
        stats = cls(total_hops=len(hops))
        if not hops:
            return stats

        stats.timeout_hops = sum(1 for hop in hops if hop.timeout)
        stats.responding_hops = stats.total_hops - stats.timeout_hops
        stats.success_rate = stats.responding_hops / stats.total_hops * 100
        stats.final_hop = hops[-1].number

        rtts = [rtt for hop in hops for rtt in hop.answered]
        if rtts:
            stats.min_rtt_ms = min(rtts)
            stats.max_rtt_ms = max(rtts)
            stats.avg_rtt_ms = sum(rtts) / len(rtts)

        last = hops[-1]
        if not last.timeout and last.host is not None:
            is_target = target in (last.host.ip, last.host.hostname)
            stats.reached_target = is_target or last.number < max_hops
        return stats

    def to_dict(self):
        return asdict(self)


class TracerouteTool(DiagnosticTool):
    name = "traceroute"
    description = "Trace the network path to a host"
    parameters_class = TracerouteParameters

    async def run(self, params: TracerouteParameters) -> Result:
        stream = await self.client.traceroute(params.host, params.options())
        hops: List[TraceHop] = []
        async for hop in stream:
            hops.append(hop)

        stats = TracerouteStatistics.from_hops(hops, params.host, params.max_hops)
        self._logger.info(
            "Traceroute completed",
            host=params.host,
            hops=stats.total_hops,
            reached=stats.reached_target,
        )
        return Result(hops, {"host": params.host, "statistics": stats.to_dict()})
