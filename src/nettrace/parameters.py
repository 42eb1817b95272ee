"""
Typed request parameters for the diagnostic tools.

Each tool takes one Parameters subclass. The string-keyed get/set/to_map
surface exists for UI and export code that works with plain mappings.
"""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .errors import ErrorCode, validation_error
from .models import DEFAULT_RECORD_TYPES, DNSRecordType, PingOptions, TraceOptions, to_jsonable
from .validation import is_valid_domain, is_valid_host, is_valid_port


def _is_host(value: Any) -> bool:
    return isinstance(value, str) and is_valid_host(value)


@dataclass
class Parameters(ABC):
    """Base class: field access by name plus a validation contract."""

    def _field_names(self) -> List[str]:
        return [f.name for f in dataclasses.fields(self)]

    def _check_key(self, key: str) -> None:
        if key not in self._field_names():
            raise validation_error(
                ErrorCode.INVALID_PARAMETERS,
                f"unknown parameter: {key}",
                parameter=key,
                parameters_type=type(self).__name__,
            )

    def get(self, key: str) -> Any:
        self._check_key(key)
        return getattr(self, key)

    def set(self, key: str, value: Any) -> None:
        self._check_key(key)
        setattr(self, key, value)

    @abstractmethod
    def validate(self) -> None:
        """Raise a validation error if any field is missing, mistyped or out of range."""

    def to_map(self) -> Dict[str, Any]:
        return {name: to_jsonable(getattr(self, name)) for name in self._field_names()}


@dataclass
class PingParameters(Parameters):
    host: str = ""
    count: int = 4
    interval: float = 1.0
    timeout: float = 5.0
    packet_size: int = 64
    ttl: int = 64
    ipv6: bool = False

    def options(self) -> PingOptions:
        return PingOptions(
            count=self.count,
            interval=self.interval,
            timeout=self.timeout,
            packet_size=self.packet_size,
            ttl=self.ttl,
            ipv6=self.ipv6,
        )

    def validate(self) -> None:
        if not _is_host(self.host):
            raise validation_error(
                ErrorCode.PING_INVALID_HOST, f"invalid host: {self.host!r}", host=self.host
            )
        self.options().validate()


@dataclass
class TracerouteParameters(Parameters):
    host: str = ""
    max_hops: int = 30
    timeout: float = 5.0
    queries: int = 3
    packet_size: int = 60
    ipv6: bool = False

    def options(self) -> TraceOptions:
        return TraceOptions(
            max_hops=self.max_hops,
            timeout=self.timeout,
            queries=self.queries,
            packet_size=self.packet_size,
            ipv6=self.ipv6,
        )

    def validate(self) -> None:
        if not _is_host(self.host):
            raise validation_error(
                ErrorCode.TRACE_INVALID_HOST, f"invalid host: {self.host!r}", host=self.host
            )
        self.options().validate()


@dataclass
class DNSParameters(Parameters):
    """Domain plus the record types to query; defaults to the common six."""

    domain: str = ""
    record_types: List[DNSRecordType] = field(default_factory=lambda: list(DEFAULT_RECORD_TYPES))

    def validate(self) -> None:
        if not isinstance(self.record_types, (list, tuple)):
            raise validation_error(
                ErrorCode.DNS_INVALID_RECORD_TYPE,
                "record types must be a list",
                record_types=repr(self.record_types),
            )
        if not self.record_types:
            raise validation_error(
                ErrorCode.DNS_INVALID_RECORD_TYPE, "at least one record type is required"
            )
        # "A" and "a" name the same query; keep first-seen order
        self.record_types = list(dict.fromkeys(DNSRecordType.parse(rt) for rt in self.record_types))

        if not isinstance(self.domain, str):
            raise validation_error(
                ErrorCode.DNS_INVALID_DOMAIN, "domain must be a string", domain=repr(self.domain)
            )
        name = self.domain.strip()
        only_ptr = all(rt == DNSRecordType.PTR for rt in self.record_types)
        if not (is_valid_domain(name) or (only_ptr and is_valid_host(name))):
            raise validation_error(
                ErrorCode.DNS_INVALID_DOMAIN, f"invalid domain: {self.domain!r}", domain=self.domain
            )


@dataclass
class WHOISParameters(Parameters):
    query: str = ""

    def validate(self) -> None:
        if not isinstance(self.query, str):
            raise validation_error(
                ErrorCode.WHOIS_INVALID_QUERY, "query must be a string", query=repr(self.query)
            )
        query = self.query.strip()
        if not query:
            raise validation_error(ErrorCode.WHOIS_INVALID_QUERY, "query is required")
        if not is_valid_host(query):
            raise validation_error(
                ErrorCode.WHOIS_VALIDATION_FAILED, f"invalid WHOIS query: {query}", query=query
            )


@dataclass
class SSLParameters(Parameters):
    host: str = ""
    port: int = 443

    def validate(self) -> None:
        if not _is_host(self.host):
            raise validation_error(
                ErrorCode.SSL_INVALID_HOST, f"invalid host: {self.host!r}", host=self.host
            )
        if not is_valid_port(self.port):
            raise validation_error(
                ErrorCode.SSL_INVALID_PORT, f"invalid port: {self.port!r}", port=self.port
            )
