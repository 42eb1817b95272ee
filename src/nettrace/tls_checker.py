"""
TLS connection and certificate retrieval.
"""

import asyncio
import ssl
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from .certificate import CertificateParser
from .errors import ErrorCode, ErrorType, NetTraceError
from .log import FieldLogger, get_logger
from .models import SSLResult
from .retry import RetryManager
from .security import analyze_certificate
from .validation import is_ip

DEFAULT_TIMEOUT = 5.0
DEFAULT_PORT = 443
SSL_SHUTDOWN_TIMEOUT = 2  # some servers hang during SSL shutdown

MSG_NOT_YET_VALID = "certificate is not yet valid"

logger = get_logger(__name__)


@dataclass
class PeerCertificates:
    """Raw handshake outcome: DER leaf and chain as presented by the server."""

    leaf: Optional[bytes]
    chain: List[bytes] = field(default_factory=list)
    tls_version: Optional[str] = None


def _peer_chain(ssl_object: Any) -> List[bytes]:
    """
    DER certificates presented by the peer, leaf first.

    Python 3.13 exposes get_unverified_chain() on SSLObject; older versions
    only have it on the internal _sslobj, returning Certificate objects.
    """
    getter = getattr(ssl_object, "get_unverified_chain", None)
    if getter is None:
        getter = getattr(getattr(ssl_object, "_sslobj", None), "get_unverified_chain", None)
    if getter is None:
        return []

    chain = []
    for entry in getter() or []:
        if isinstance(entry, (bytes, bytearray)):
            chain.append(bytes(entry))
        else:
            chain.append(ssl.PEM_cert_to_DER_cert(entry.public_bytes()))
    return chain


class TLSChecker:
    """
    Retrieves and analyzes the certificate chain of a TLS endpoint.

    Trust is not verified: the check reports problems rather than refusing
    to connect.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        retry: Optional[RetryManager] = None,
        logger: Optional[FieldLogger] = None,
    ):
        """
        Initialize TLS checker.

        Args:
            timeout: Connection and handshake timeout in seconds
            retry: Retry policy for the handshake
            logger: Logger to report through
        """
        self.timeout = timeout
        self._retry = retry or RetryManager()
        self._logger = logger or get_logger(__name__)
        self._ssl_context = self._create_ssl_context()

    def _create_ssl_context(self) -> ssl.SSLContext:
        """
        Create SSL context for diagnostics.

        Returns:
            Context with verification disabled and the widest protocol range
        """
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        context.minimum_version = ssl.TLSVersion.MINIMUM_SUPPORTED
        context.maximum_version = ssl.TLSVersion.MAXIMUM_SUPPORTED
        return context

    @staticmethod
    async def _safe_close_writer(writer: asyncio.StreamWriter) -> None:
        writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=SSL_SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.debug("SSL shutdown timed out, continuing")
        except (ssl.SSLError, ConnectionError) as e:
            logger.debug("Error during SSL shutdown", error=repr(e))

    async def fetch_certificates(self, host: str, port: int) -> PeerCertificates:
        """
        Perform one handshake and capture what the server presented.

        Raises:
            OSError / ssl.SSLError / asyncio.TimeoutError on connection failure
        """
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(
                host,
                port,
                ssl=self._ssl_context,
                server_hostname=None if is_ip(host) else host,
            ),
            timeout=self.timeout,
        )
        try:
            ssl_object = writer.get_extra_info("ssl_object")
            if ssl_object is None:
                raise ssl.SSLError("TLS session not established")
            leaf = ssl_object.getpeercert(binary_form=True)
            chain = _peer_chain(ssl_object)
            tls_version = ssl_object.version()
        finally:
            await self._safe_close_writer(writer)

        if leaf and not chain:
            chain = [leaf]
        return PeerCertificates(leaf=leaf, chain=chain, tls_version=tls_version)

    def build_result(
        self,
        host: str,
        port: int,
        peer: PeerCertificates,
        now: Optional[datetime] = None,
    ) -> SSLResult:
        """Build the base result from handshake output and run the analysis pass."""
        if not peer.leaf:
            raise NetTraceError(
                message="no certificate presented by server",
                error_type=ErrorType.NETWORK,
                code=ErrorCode.SSL_NO_CERTIFICATE,
                context={"host": host, "port": port},
            )

        now = now or datetime.now(timezone.utc)
        leaf = CertificateParser.load_der(peer.leaf)
        chain = [CertificateParser.load_der(der) for der in peer.chain] or [leaf]

        errors: List[str] = []
        valid = True
        if now < leaf.not_valid_before_utc:
            errors.append(MSG_NOT_YET_VALID)
            valid = False

        base = SSLResult(
            host=host,
            port=port,
            certificate=leaf,
            chain=chain,
            valid=valid,
            errors=errors,
            expiry=leaf.not_valid_after_utc,
            issuer=CertificateParser.format_name(leaf.issuer),
            subject=CertificateParser.format_name(leaf.subject),
            san=CertificateParser.extract_san(leaf),
            tls_version=peer.tls_version,
        )
        return analyze_certificate(base, now)

    async def check(self, host: str, port: int = DEFAULT_PORT) -> SSLResult:
        """
        Check the certificate served at host:port.

        Returns:
            SSLResult with the leaf, chain and analysis findings
        """
        peer = await self._retry.run(
            lambda: self.fetch_certificates(host, port),
            operation_name=f"TLS handshake with {host}:{port}",
            exhausted_code=ErrorCode.SSL_CHECK_FAILED,
            context={"host": host, "port": port},
        )
        result = self.build_result(host, port, peer)
        self._logger.info(
            "SSL check completed",
            host=host,
            port=port,
            valid=result.valid,
            findings=len(result.errors),
        )
        return result
