"""
Shared network configuration consumed by the client.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from . import __version__
from .errors import ErrorCode, ErrorType, NetTraceError

DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_HOPS = 30
DEFAULT_PACKET_SIZE = 64
DEFAULT_MAX_CONCURRENCY = 10
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0


def _config_error(message: str, **context: Any) -> NetTraceError:
    return NetTraceError(
        message=message,
        error_type=ErrorType.CONFIGURATION,
        code=ErrorCode.CONFIG_INVALID,
        context=context,
    )


@dataclass
class NetworkConfig:
    """
    Network settings shared by every diagnostic operation.

    Attributes:
        timeout: Per-attempt timeout in seconds
        max_hops: Default traceroute hop limit
        packet_size: Default probe payload size in bytes
        dns_servers: Nameservers for DNS lookups (empty uses the system resolver)
        user_agent: Identifier advertised where a protocol allows it
        max_concurrency: Width of the client-wide concurrency semaphore
        retry_attempts: Total attempts per network operation (0 behaves as 1)
        retry_delay: Base delay between attempts in seconds
    """

    timeout: float = DEFAULT_TIMEOUT
    max_hops: int = DEFAULT_MAX_HOPS
    packet_size: int = DEFAULT_PACKET_SIZE
    dns_servers: List[str] = field(default_factory=list)
    user_agent: str = f"nettrace/{__version__}"
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY

    def validate(self) -> None:
        """Raise a configuration error for out-of-range settings."""
        if self.timeout <= 0:
            raise _config_error("timeout must be greater than 0", timeout=self.timeout)
        if not 1 <= self.max_hops <= 255:
            raise _config_error("max_hops must be between 1 and 255", max_hops=self.max_hops)
        if not 1 <= self.packet_size <= 65507:
            raise _config_error(
                "packet_size must be between 1 and 65507", packet_size=self.packet_size
            )
        if self.max_concurrency < 1:
            raise _config_error(
                "max_concurrency must be at least 1", max_concurrency=self.max_concurrency
            )
        if self.retry_attempts < 0:
            raise _config_error(
                "retry_attempts must not be negative", retry_attempts=self.retry_attempts
            )
        if self.retry_delay < 0:
            raise _config_error("retry_delay must not be negative", retry_delay=self.retry_delay)
        for server in self.dns_servers:
            if not server or not server.strip():
                raise _config_error("dns_servers must not contain empty entries")

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "NetworkConfig":
        """Build a config from a plain mapping, rejecting unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise _config_error(f"unknown configuration keys: {', '.join(unknown)}", keys=unknown)
        data = dict(values)
        if "dns_servers" in data:
            data["dns_servers"] = list(data["dns_servers"] or [])
        config = cls(**data)
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)
