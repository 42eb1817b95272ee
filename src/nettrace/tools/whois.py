"""
WHOIS tool.
"""

from ..parameters import WHOISParameters
from ..result import Result
from .base import DiagnosticTool


class WHOISTool(DiagnosticTool):
    name = "whois"
    description = "Look up registration data for a domain or IP address"
    parameters_class = WHOISParameters

    async def run(self, params: WHOISParameters) -> Result:
        result = await self.client.whois_lookup(params.query.strip())
        return Result(
            result,
            {"query": params.query.strip(), "query_type": result.query_type, "server": result.server},
        )
