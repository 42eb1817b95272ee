"""
DNS tool: queries several record types at once and merges the answers.
"""

from ..concurrency import ConcurrencyLimiter
from ..dns_resolver import consolidate_dns_results
from ..errors import ErrorCode, network_error
from ..parameters import DNSParameters
from ..result import Result
from .base import DiagnosticTool

# DNS sub-queries in flight per lookup, independent of the client-wide limit
DNS_QUERY_WIDTH = 3


class DNSTool(DiagnosticTool):
    name = "dns"
    description = "Look up DNS records for a domain"
    parameters_class = DNSParameters

    async def run(self, params: DNSParameters) -> Result:
        """
        Query every requested record type and consolidate the answers.

        Failed record types are dropped with a warning; the lookup fails
        only if every record type fails.
        """
        domain = params.domain.strip()
        jobs = {
            record_type: (lambda rt=record_type: self.client.dns_lookup(domain, rt))
            for record_type in params.record_types
        }
        outcome = await ConcurrencyLimiter(DNS_QUERY_WIDTH).run(jobs)

        failed = [record_type.value for record_type, _ in outcome.errors]
        for record_type, error in outcome.errors:
            self._logger.warn(
                "DNS query failed",
                domain=domain,
                record_type=record_type.value,
                error=str(error),
            )

        if not outcome.results:
            raise network_error(
                ErrorCode.DNS_LOOKUP_FAILED,
                f"DNS lookup failed for {domain}: all record types failed",
                cause=outcome.first_error,
                domain=domain,
                record_types=failed,
            )

        ordered = [outcome.results[rt] for rt in params.record_types if rt in outcome.results]
        result = consolidate_dns_results(domain, ordered)
        return Result(
            result,
            {
                "domain": domain,
                "record_count": len(result.records),
                "queried_types": [rt.value for rt in params.record_types],
                "failed_types": failed,
            },
        )
