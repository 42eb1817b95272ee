"""
Probe back-ends for ping and traceroute.

IcmpProber sends one ICMP echo request per probe and waits for the matching
echo reply (or, on raw sockets, the time-exceeded/unreachable message quoting
it). TcpProber times a TCP connect and is used by ping when the process may
not open ICMP sockets.
"""

import asyncio
import random
import socket
import struct
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import ErrorCode, ErrorType, NetTraceError
from .log import FieldLogger, get_logger

ICMP_ECHO_REPLY = 0
ICMP_DEST_UNREACH = 3
ICMP_ECHO_REQUEST = 8
ICMP_TIME_EXCEEDED = 11

ICMP6_DEST_UNREACH = 1
ICMP6_TIME_EXCEEDED = 3
ICMP6_ECHO_REQUEST = 128
ICMP6_ECHO_REPLY = 129

ICMP_HEADER = struct.Struct("!BBHHH")
IPV6_HEADER_LENGTH = 40
TCP_PROBE_PORT = 80

KIND_ECHO_REPLY = "echo_reply"
KIND_TIME_EXCEEDED = "time_exceeded"
KIND_UNREACHABLE = "unreachable"


def checksum(data: bytes) -> int:
    """RFC 1071 internet checksum."""
    if len(data) % 2:
        data += b"\x00"
    total = 0
    for i in range(0, len(data), 2):
        total += (data[i] << 8) + data[i + 1]
    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return ~total & 0xFFFF


def build_echo_request(identifier: int, sequence: int, payload_size: int, ipv6: bool = False) -> bytes:
    """
    Pack an ICMP (or ICMPv6) echo request.

    The payload starts with a send timestamp and is padded to payload_size.
    ICMPv6 checksums are filled in by the kernel, so they are left at zero.
    """
    icmp_type = ICMP6_ECHO_REQUEST if ipv6 else ICMP_ECHO_REQUEST
    stamp = struct.pack("!d", time.time())
    payload = (stamp + b"nettrace" * (payload_size // 8 + 1))[:max(payload_size, len(stamp))]
    identifier &= 0xFFFF
    sequence &= 0xFFFF

    header = ICMP_HEADER.pack(icmp_type, 0, 0, identifier, sequence)
    if ipv6:
        return header + payload
    csum = checksum(header + payload)
    return ICMP_HEADER.pack(icmp_type, 0, csum, identifier, sequence) + payload


@dataclass(frozen=True)
class IcmpMessage:
    """Parsed reply relevant to a probe; identifier/sequence are those of the probe."""

    kind: str
    icmp_type: int
    code: int
    identifier: int
    sequence: int
    ttl: Optional[int] = None


def _split_ipv4(packet: bytes) -> Tuple[Optional[int], bytes]:
    if len(packet) < 20:
        return None, b""
    header_length = (packet[0] & 0x0F) * 4
    return packet[8], packet[header_length:]


def parse_icmp(packet: bytes, ipv6: bool = False, includes_ip_header: bool = False) -> Optional[IcmpMessage]:
    """
    Parse an ICMP datagram into an IcmpMessage.

    Returns None for messages a probe never waits for (e.g. echo requests
    looped back on raw sockets) and for truncated packets.
    """
    ttl = None
    if includes_ip_header:
        ttl, packet = _split_ipv4(packet)
    if len(packet) < ICMP_HEADER.size:
        return None

    icmp_type, code, _, identifier, sequence = ICMP_HEADER.unpack_from(packet)

    echo_reply = ICMP6_ECHO_REPLY if ipv6 else ICMP_ECHO_REPLY
    if icmp_type == echo_reply:
        return IcmpMessage(KIND_ECHO_REPLY, icmp_type, code, identifier, sequence, ttl)

    if ipv6:
        errors = {ICMP6_TIME_EXCEEDED: KIND_TIME_EXCEEDED, ICMP6_DEST_UNREACH: KIND_UNREACHABLE}
    else:
        errors = {ICMP_TIME_EXCEEDED: KIND_TIME_EXCEEDED, ICMP_DEST_UNREACH: KIND_UNREACHABLE}
    kind = errors.get(icmp_type)
    if kind is None:
        return None

    # Error messages quote the original IP header plus the first 8 bytes
    # of the probe, which carry its identifier and sequence.
    quoted = packet[ICMP_HEADER.size:]
    if ipv6:
        quoted = quoted[IPV6_HEADER_LENGTH:]
    else:
        _, quoted = _split_ipv4(quoted)
    if len(quoted) < ICMP_HEADER.size:
        return None
    _, _, _, orig_identifier, orig_sequence = ICMP_HEADER.unpack_from(quoted)
    return IcmpMessage(kind, icmp_type, code, orig_identifier, orig_sequence, ttl)


@dataclass(frozen=True)
class ProbeReply:
    """Answer to one probe."""

    address: str
    rtt_ms: float
    ttl: Optional[int] = None
    reached: bool = True
    kind: str = KIND_ECHO_REPLY


class Prober(ABC):
    """
    Sends a single probe and waits for its answer.

    Implementations wait indefinitely; callers bound each probe with
    asyncio.wait_for.
    """

    name = "prober"

    @abstractmethod
    async def probe(self, address: str, sequence: int, ttl: int, packet_size: int) -> ProbeReply:
        pass

    def close(self) -> None:
        """Release resources held across probes."""


async def _recvfrom(loop: asyncio.AbstractEventLoop, sock: socket.socket, bufsize: int = 65535):
    while True:
        try:
            return sock.recvfrom(bufsize)
        except BlockingIOError:
            pass
        ready = loop.create_future()
        loop.add_reader(sock.fileno(), lambda: ready.done() or ready.set_result(None))
        try:
            await ready
        finally:
            loop.remove_reader(sock.fileno())


class IcmpProber(Prober):
    """
    ICMP echo prober.

    raw=False opens an unprivileged datagram ICMP socket (Linux ping_group_range,
    macOS); the kernel rewrites the identifier and only delivers echo replies.
    raw=True needs CAP_NET_RAW/root and also receives time-exceeded messages.
    """

    name = "icmp"

    def __init__(self, ipv6: bool = False, raw: bool = False):
        self.ipv6 = ipv6
        self.raw = raw
        self.identifier = random.randint(1, 0xFFFF)

    def open_socket(self) -> socket.socket:
        family = socket.AF_INET6 if self.ipv6 else socket.AF_INET
        proto = socket.IPPROTO_ICMPV6 if self.ipv6 else socket.IPPROTO_ICMP
        kind = socket.SOCK_RAW if self.raw else socket.SOCK_DGRAM
        sock = socket.socket(family, kind, proto)
        sock.setblocking(False)
        return sock

    def check(self) -> None:
        """Raise PermissionError if this socket kind may not be opened."""
        self.open_socket().close()

    def _matches(self, message: IcmpMessage, sequence: int) -> bool:
        if message.sequence != sequence & 0xFFFF:
            return False
        return not self.raw or message.identifier == self.identifier

    async def probe(self, address: str, sequence: int, ttl: int, packet_size: int) -> ProbeReply:
        loop = asyncio.get_running_loop()
        sock = self.open_socket()
        try:
            if self.ipv6:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_UNICAST_HOPS, ttl)
            else:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, ttl)

            packet = build_echo_request(self.identifier, sequence, packet_size, self.ipv6)
            started = time.perf_counter()
            sock.sendto(packet, (address, 0))

            while True:
                data, source = await _recvfrom(loop, sock)
                message = parse_icmp(data, self.ipv6, includes_ip_header=self.raw and not self.ipv6)
                if message is None or not self._matches(message, sequence):
                    continue
                return ProbeReply(
                    address=source[0],
                    rtt_ms=(time.perf_counter() - started) * 1000,
                    ttl=message.ttl,
                    reached=message.kind == KIND_ECHO_REPLY,
                    kind=message.kind,
                )
        finally:
            sock.close()


class TcpProber(Prober):
    """Times a TCP connect; a refused connection still proves the host is up."""

    name = "tcp"

    def __init__(self, port: int = TCP_PROBE_PORT):
        self.port = port

    async def probe(self, address: str, sequence: int, ttl: int, packet_size: int) -> ProbeReply:
        started = time.perf_counter()
        try:
            _, writer = await asyncio.open_connection(address, self.port)
        except ConnectionRefusedError:
            return ProbeReply(address=address, rtt_ms=(time.perf_counter() - started) * 1000)
        rtt_ms = (time.perf_counter() - started) * 1000
        writer.close()
        await writer.wait_closed()
        return ProbeReply(address=address, rtt_ms=rtt_ms)


def open_ping_prober(ipv6: bool = False, logger: Optional[FieldLogger] = None) -> Prober:
    """
    Pick the best prober the process is allowed to use.

    Tries an unprivileged ICMP socket, then a raw one, then TCP connects.
    """
    logger = logger or get_logger(__name__)
    for raw in (False, True):
        prober = IcmpProber(ipv6=ipv6, raw=raw)
        try:
            prober.check()
        except PermissionError:
            continue
        logger.debug("Using ICMP prober", raw=raw, ipv6=ipv6)
        return prober

    logger.warn("ICMP sockets not permitted, falling back to TCP connect probes", port=TCP_PROBE_PORT)
    return TcpProber()


def open_trace_prober(ipv6: bool = False) -> Prober:
    """Traceroute needs time-exceeded messages, which only raw sockets receive."""
    prober = IcmpProber(ipv6=ipv6, raw=True)
    try:
        prober.check()
    except PermissionError as e:
        raise NetTraceError(
            message="traceroute requires raw socket privileges (root or CAP_NET_RAW)",
            error_type=ErrorType.SYSTEM,
            code=ErrorCode.TRACE_PERMISSION_DENIED,
            cause=e,
        ) from e
    return prober
