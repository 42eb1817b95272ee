"""
Ping tool.
"""

import math
from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence

from ..models import PingResult
from ..parameters import PingParameters
from ..result import Result
from .base import DiagnosticTool


@dataclass
class PingStatistics:
    """Summary of a ping run. RTTs are in milliseconds and None when nothing answered."""

    packets_sent: int = 0
    packets_received: int = 0
    packet_loss_percent: float = 0.0
    min_rtt_ms: Optional[float] = None
    avg_rtt_ms: Optional[float] = None
    max_rtt_ms: Optional[float] = None
    stddev_rtt_ms: Optional[float] = None
    total_time_ms: float = 0.0

    @classmethod
    def from_results(cls, results: Sequence[PingResult]) -> "PingStatistics":
        stats = cls(packets_sent=len(results))
        if not results:
            return stats

        rtts = [r.rtt_ms for r in results if r.success and r.rtt_ms is not None]
        stats.packets_received = len(rtts)
        stats.packet_loss_percent = (stats.packets_sent - stats.packets_received) / stats.packets_sent * 100

        timestamps = [r.timestamp for r in results]
        stats.total_time_ms = (max(timestamps) - min(timestamps)).total_seconds() * 1000

        if rtts:
            mean = sum(rtts) / len(rtts)
            stats.min_rtt_ms = min(rtts)
            stats.max_rtt_ms = max(rtts)
            stats.avg_rtt_ms = mean
            stats.stddev_rtt_ms = math.sqrt(sum((rtt - mean) ** 2 for rtt in rtts) / len(rtts))
        return stats

    def to_dict(self):
        return asdict(self)


class PingTool(DiagnosticTool):
    name = "ping"
    description = "Send ICMP echo requests and measure round-trip times"
    parameters_class = PingParameters

    async def run(self, params: PingParameters) -> Result:
        stream = await self.client.ping(params.host, params.options())
        results: List[PingResult] = []
        async for result in stream:
            results.append(result)

        stats = PingStatistics.from_results(results)
        self._logger.info(
            "Ping completed",
            host=params.host,
            sent=stats.packets_sent,
            received=stats.packets_received,
        )
        return Result(results, {"host": params.host, "statistics": stats.to_dict()})
