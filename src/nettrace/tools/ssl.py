"""
SSL certificate tool.
"""

from ..parameters import SSLParameters
from ..result import Result
from ..security import days_until_expiry, get_security_level, get_security_recommendations
from .base import DiagnosticTool


class SSLTool(DiagnosticTool):
    name = "ssl"
    description = "Inspect the TLS certificate chain of a server"
    parameters_class = SSLParameters

    async def run(self, params: SSLParameters) -> Result:
        result = await self.client.ssl_check(params.host, params.port)
        level = get_security_level(result)
        metadata = {
            "host": params.host,
            "port": params.port,
            "certificate_valid": result.valid,
            "security_level": level.value,
            "recommendations": get_security_recommendations(result),
            "days_until_expiry": days_until_expiry(result.expiry) if result.expiry else None,
        }
        self._logger.info("SSL tool completed", host=params.host, security_level=level.value)
        return Result(result, metadata)
