"""
Typed value objects for diagnostic inputs and outputs.

Results are created once by a driver call and treated as read-only
afterwards; they hold no back-references and no shared state.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from cryptography import x509

from .errors import ErrorCode, validation_error

MAX_ICMP_PAYLOAD = 65507


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_option_types(code: ErrorCode, options: Any, integers: List[str], numbers: List[str]) -> None:
    """
    Raise a validation error for option values of the wrong type.

    bool is rejected for numeric options even though it subclasses int.
    """
    for name in integers + numbers:
        value = getattr(options, name)
        kinds = (int,) if name in integers else (int, float)
        if isinstance(value, bool) or not isinstance(value, kinds):
            kind = "an integer" if name in integers else "a number"
            raise validation_error(code, f"{name} must be {kind}", **{name: repr(value)})
    if not isinstance(options.ipv6, bool):
        raise validation_error(code, "ipv6 must be a boolean", ipv6=repr(options.ipv6))


@dataclass(frozen=True)
class ASNInfo:
    """Autonomous system information for a host."""

    number: int
    organization: str = ""
    country: str = ""


@dataclass(frozen=True)
class GeoLocation:
    country: str = ""
    region: str = ""
    city: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True)
class NetworkHost:
    """Snapshot of a probed host."""

    hostname: str
    ip: str
    port: int = 0
    asn: Optional[ASNInfo] = None
    location: Optional[GeoLocation] = None


@dataclass
class PingOptions:
    """Caller-supplied ping options. Times are in seconds."""

    count: int = 4
    interval: float = 1.0
    timeout: float = 5.0
    packet_size: int = 64
    ttl: int = 64
    ipv6: bool = False

    def validate(self) -> None:
        """Raise a validation error if any option is out of range."""
        check_option_types(
            ErrorCode.PING_INVALID_OPTIONS,
            self,
            integers=["count", "packet_size", "ttl"],
            numbers=["interval", "timeout"],
        )
        if self.count <= 0:
            raise validation_error(
                ErrorCode.PING_INVALID_OPTIONS, "count must be greater than 0", count=self.count
            )
        if self.interval < 0:
            raise validation_error(
                ErrorCode.PING_INVALID_OPTIONS, "interval must not be negative", interval=self.interval
            )
        if self.timeout <= 0:
            raise validation_error(
                ErrorCode.PING_INVALID_OPTIONS, "timeout must be greater than 0", timeout=self.timeout
            )
        if not 1 <= self.packet_size <= MAX_ICMP_PAYLOAD:
            raise validation_error(
                ErrorCode.PING_INVALID_OPTIONS,
                f"packet size must be between 1 and {MAX_ICMP_PAYLOAD}",
                packet_size=self.packet_size,
            )
        if not 1 <= self.ttl <= 255:
            raise validation_error(
                ErrorCode.PING_INVALID_OPTIONS, "ttl must be between 1 and 255", ttl=self.ttl
            )


@dataclass(frozen=True)
class PingResult:
    """One echo request outcome. A timed-out probe carries an error and no RTT."""

    host: NetworkHost
    sequence: int
    rtt_ms: Optional[float]
    ttl: Optional[int]
    packet_size: int
    timestamp: datetime = field(default_factory=_utcnow)
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def timed_out(self) -> bool:
        return self.error_code == ErrorCode.PING_TIMEOUT.value


@dataclass
class TraceOptions:
    """Caller-supplied traceroute options. Times are in seconds."""

    max_hops: int = 30
    timeout: float = 5.0
    queries: int = 3
    packet_size: int = 60
    ipv6: bool = False

    def validate(self) -> None:
        check_option_types(
            ErrorCode.TRACE_INVALID_OPTIONS,
            self,
            integers=["max_hops", "queries", "packet_size"],
            numbers=["timeout"],
        )
        if not 1 <= self.max_hops <= 255:
            raise validation_error(
                ErrorCode.TRACE_INVALID_OPTIONS,
                "max hops must be between 1 and 255",
                max_hops=self.max_hops,
            )
        if not 1 <= self.queries <= 10:
            raise validation_error(
                ErrorCode.TRACE_INVALID_OPTIONS,
                "queries per hop must be between 1 and 10",
                queries=self.queries,
            )
        if self.timeout <= 0:
            raise validation_error(
                ErrorCode.TRACE_INVALID_OPTIONS, "timeout must be greater than 0", timeout=self.timeout
            )
        if not 1 <= self.packet_size <= MAX_ICMP_PAYLOAD:
            raise validation_error(
                ErrorCode.TRACE_INVALID_OPTIONS,
                f"packet size must be between 1 and {MAX_ICMP_PAYLOAD}",
                packet_size=self.packet_size,
            )


@dataclass(frozen=True)
class TraceHop:
    """
    One traceroute hop.

    rtts_ms holds one slot per probe; a probe that got no reply within the
    timeout leaves None in its slot. timeout is True when no probe answered.
    """

    number: int
    host: Optional[NetworkHost]
    rtts_ms: List[Optional[float]]
    timeout: bool
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def answered(self) -> List[float]:
        return [rtt for rtt in self.rtts_ms if rtt is not None]


class DNSRecordType(str, Enum):
    """Supported DNS record types."""

    A = "A"
    AAAA = "AAAA"
    MX = "MX"
    TXT = "TXT"
    CNAME = "CNAME"
    NS = "NS"
    SOA = "SOA"
    PTR = "PTR"

    @classmethod
    def parse(cls, value: Any) -> "DNSRecordType":
        """Parse a record type name case-insensitively."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise validation_error(
                ErrorCode.DNS_INVALID_RECORD_TYPE,
                f"unsupported DNS record type: {value}",
                record_type=str(value),
            ) from None


DEFAULT_RECORD_TYPES = [
    DNSRecordType.A,
    DNSRecordType.AAAA,
    DNSRecordType.MX,
    DNSRecordType.TXT,
    DNSRecordType.CNAME,
    DNSRecordType.NS,
]


@dataclass(frozen=True)
class DNSRecord:
    name: str
    type: DNSRecordType
    value: str
    ttl: int
    priority: Optional[int] = None


@dataclass(frozen=True)
class DNSResult:
    """Answer for one query, or the consolidation of several record types."""

    query: str
    record_type: DNSRecordType
    records: List[DNSRecord] = field(default_factory=list)
    authority: List[DNSRecord] = field(default_factory=list)
    additional: List[DNSRecord] = field(default_factory=list)
    response_time_ms: float = 0.0
    server: str = "system"


@dataclass
class Contact:
    """WHOIS contact; fields stay empty unless present in the response."""

    name: str = ""
    organization: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""


@dataclass(frozen=True)
class WHOISResult:
    domain: str
    registrar: str = ""
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    expires: Optional[datetime] = None
    name_servers: List[str] = field(default_factory=list)
    status: List[str] = field(default_factory=list)
    contacts: Dict[str, Contact] = field(default_factory=dict)
    raw_data: str = ""
    server: str = ""
    query_type: str = "domain"


@dataclass(frozen=True)
class SSLResult:
    """
    TLS certificate check outcome.

    errors mixes hard failures (which clear valid) with warnings such as
    upcoming expiry or an incomplete chain.
    """

    host: str
    port: int
    certificate: Optional[x509.Certificate]
    chain: List[x509.Certificate] = field(default_factory=list)
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    expiry: Optional[datetime] = None
    issuer: str = ""
    subject: str = ""
    san: List[str] = field(default_factory=list)
    tls_version: Optional[str] = None


def to_jsonable(value: Any) -> Any:
    """
    Convert model objects into JSON-native structures.

    Dataclasses become dicts, enums their values, datetimes ISO-8601
    strings and certificates a summary dict.
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, x509.Certificate):
        from .certificate import CertificateParser

        return CertificateParser.summarize(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: to_jsonable(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {str(to_jsonable(k)): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, bytes):
        return value.hex()
    return str(value)
