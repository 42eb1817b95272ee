"""
Shared test helpers: certificate builders, fake probers and a fake resolver.
"""

import asyncio
import datetime
from types import SimpleNamespace
from typing import Callable, Dict, List, Optional

import aiodns
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from nettrace.probes import Prober, ProbeReply


def build_certificate(
    common_name: str = "test.example.com",
    san: Optional[List[str]] = None,
    days_valid: int = 365,
    days_before: int = 1,
    key_size: int = 2048,
    hash_algorithm=None,
    issuer_name: Optional[str] = None,
    issuer_key=None,
):
    """Create a certificate and its private key; self-signed unless an issuer is given."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    now = datetime.datetime.now(datetime.timezone.utc)

    subject = x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Org"),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )
    issuer = subject
    if issuer_name is not None:
        issuer = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, issuer_name)])

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=days_before))
        .not_valid_after(now + datetime.timedelta(days=days_valid))
    )
    names = san if san is not None else [common_name]
    if names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in names]),
            critical=False,
        )
    cert = builder.sign(issuer_key or private_key, hash_algorithm or hashes.SHA256())
    return cert, private_key


def write_pem(tmp_path, cert, key):
    """Write certificate and key as PEM files; returns (cert_path, key_path)."""
    cert_path = tmp_path / "cert.pem"
    key_path = tmp_path / "key.pem"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
        )
    )
    return cert_path, key_path


class FakeProber(Prober):
    """
    Prober driven by a handler(address, sequence, ttl).

    The handler returns a ProbeReply, an exception to raise, or None to
    never answer.
    """

    name = "fake"

    def __init__(self, handler: Callable):
        self.handler = handler
        self.calls: List[tuple] = []
        self.closed = False

    async def probe(self, address, sequence, ttl, packet_size):
        self.calls.append((address, sequence, ttl))
        outcome = self.handler(address, sequence, ttl)
        if outcome is None:
            await asyncio.sleep(3600)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


class FakeResolver:
    """
    Stand-in for aiodns.DNSResolver.

    answers maps (name, type) to an answer list; missing entries raise
    ENOTFOUND. hosts maps hostnames to address lists, ptr maps IPs to names.
    """

    def __init__(
        self,
        answers: Optional[Dict[tuple, list]] = None,
        hosts: Optional[Dict[str, List[str]]] = None,
        ptr: Optional[Dict[str, str]] = None,
    ):
        self.answers = answers or {}
        self.hosts = hosts or {}
        self.ptr = ptr or {}
        self.queries: List[tuple] = []

    async def query(self, name, record_type):
        self.queries.append((name, record_type))
        key = (name, record_type)
        if key not in self.answers:
            raise aiodns.error.DNSError(aiodns.error.ARES_ENOTFOUND, "Domain name not found")
        answer = self.answers[key]
        if isinstance(answer, BaseException):
            raise answer
        return answer

    async def gethostbyname(self, host, family):
        self.queries.append((host, "gethostbyname"))
        if host not in self.hosts:
            raise aiodns.error.DNSError(aiodns.error.ARES_ENOTFOUND, "Domain name not found")
        return SimpleNamespace(name=host, aliases=[], addresses=self.hosts[host])

    async def gethostbyaddr(self, ip):
        if ip not in self.ptr:
            raise aiodns.error.DNSError(aiodns.error.ARES_ENOTFOUND, "Domain name not found")
        return SimpleNamespace(name=self.ptr[ip], aliases=[], addresses=[ip])


def echo_reply(address: str, rtt_ms: float = 10.0, ttl: int = 64) -> ProbeReply:
    return ProbeReply(address=address, rtt_ms=rtt_ms, ttl=ttl)


@pytest.fixture
def certificate_factory():
    return build_certificate


@pytest.fixture
def pem_writer():
    return write_pem


@pytest.fixture
def fake_prober():
    return FakeProber


@pytest.fixture
def fake_resolver():
    return FakeResolver


@pytest.fixture
def reply():
    return echo_reply


def build_client(
    resolver: Optional[FakeResolver] = None,
    ping_handler: Optional[Callable] = None,
    trace_handler: Optional[Callable] = None,
    whois_servers: Optional[Dict[str, str]] = None,
    **config_values,
):
    """
    NetworkClient wired to fakes; no real sockets for DNS or probing.

    Probers are shared between calls so tests can inspect them afterwards
    via client.ping_prober and client.trace_prober.
    """
    from nettrace.client import NetworkClient
    from nettrace.config import NetworkConfig
    from nettrace.dns_resolver import DNSDriver
    from nettrace.ping import PingDriver
    from nettrace.retry import RetryManager
    from nettrace.traceroute import TracerouteDriver
    from nettrace.whois import WhoisDriver

    config_values.setdefault("retry_attempts", 1)
    config_values.setdefault("retry_delay", 0)
    config_values.setdefault("timeout", 2.0)
    config = NetworkConfig(**config_values)

    dns = DNSDriver(resolver=resolver or FakeResolver(), timeout=config.timeout)
    ping_prober = FakeProber(ping_handler or (lambda address, sequence, ttl: echo_reply(address)))
    trace_prober = FakeProber(trace_handler or (lambda address, sequence, ttl: echo_reply(address)))
    client = NetworkClient(
        config,
        dns=dns,
        ping=PingDriver(prober_factory=lambda ipv6: ping_prober),
        traceroute=TracerouteDriver(prober_factory=lambda ipv6: trace_prober, reverse_lookup=dns.reverse_lookup),
        whois=WhoisDriver(
            timeout=config.timeout,
            retry=RetryManager(max_attempts=config.retry_attempts, base_delay=config.retry_delay),
            servers=whois_servers or {},
        ),
    )
    client.ping_prober = ping_prober
    client.trace_prober = trace_prober
    return client


@pytest.fixture
def client_factory():
    return build_client
