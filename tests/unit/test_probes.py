"""
Unit tests for ICMP packet building and parsing.
"""

import struct

import pytest

from nettrace.errors import ErrorCode, ErrorType, NetTraceError
from nettrace.probes import (
    ICMP_HEADER,
    KIND_ECHO_REPLY,
    KIND_TIME_EXCEEDED,
    KIND_UNREACHABLE,
    IcmpProber,
    TcpProber,
    build_echo_request,
    checksum,
    open_ping_prober,
    open_trace_prober,
    parse_icmp,
)


def ipv4_header(ttl: int = 57) -> bytes:
    """Minimal 20-byte IPv4 header (fields other than IHL and TTL are zero)."""
    return bytes([0x45, 0, 0, 0, 0, 0, 0, 0, ttl, 1]) + bytes(10)


def test_checksum_of_packet_with_checksum_is_zero():
    """Test that a packet including its checksum sums to zero."""
    packet = build_echo_request(identifier=0x1234, sequence=7, payload_size=56)
    assert checksum(packet) == 0


def test_checksum_odd_length():
    """Test that odd-length data is padded."""
    assert checksum(b"\x01") == checksum(b"\x01\x00")


def test_build_echo_request_fields():
    """Test the echo request header and payload size."""
    packet = build_echo_request(identifier=0x1234, sequence=0x10001, payload_size=32)
    icmp_type, code, _, identifier, sequence = ICMP_HEADER.unpack_from(packet)

    assert (icmp_type, code) == (8, 0)
    assert identifier == 0x1234
    assert sequence == 1
    assert len(packet) == ICMP_HEADER.size + 32


def test_build_echo_request_ipv6_leaves_checksum_to_kernel():
    """Test the ICMPv6 echo request type and empty checksum."""
    packet = build_echo_request(identifier=1, sequence=1, payload_size=16, ipv6=True)
    icmp_type, _, csum, _, _ = ICMP_HEADER.unpack_from(packet)
    assert icmp_type == 128
    assert csum == 0


def test_parse_echo_reply_without_ip_header():
    """Test parsing a datagram-socket echo reply."""
    packet = ICMP_HEADER.pack(0, 0, 0, 99, 5) + b"payload"
    message = parse_icmp(packet)

    assert message.kind == KIND_ECHO_REPLY
    assert message.identifier == 99
    assert message.sequence == 5
    assert message.ttl is None


def test_parse_echo_reply_with_ip_header():
    """Test that raw-socket replies report the IP TTL."""
    packet = ipv4_header(ttl=57) + ICMP_HEADER.pack(0, 0, 0, 99, 5)
    message = parse_icmp(packet, includes_ip_header=True)

    assert message.kind == KIND_ECHO_REPLY
    assert message.ttl == 57


def test_parse_time_exceeded_quotes_probe():
    """Test that time-exceeded messages carry the quoted probe identifiers."""
    probe = build_echo_request(identifier=0xBEEF, sequence=42, payload_size=8)
    packet = ipv4_header(ttl=250) + ICMP_HEADER.pack(11, 0, 0, 0, 0) + ipv4_header() + probe[:8]
    message = parse_icmp(packet, includes_ip_header=True)

    assert message.kind == KIND_TIME_EXCEEDED
    assert message.identifier == 0xBEEF
    assert message.sequence == 42


def test_parse_unreachable_ipv6():
    """Test ICMPv6 destination unreachable parsing."""
    probe = build_echo_request(identifier=7, sequence=3, payload_size=8, ipv6=True)
    packet = ICMP_HEADER.pack(1, 4, 0, 0, 0) + bytes(40) + probe[:8]
    message = parse_icmp(packet, ipv6=True)

    assert message.kind == KIND_UNREACHABLE
    assert (message.identifier, message.sequence) == (7, 3)


def test_parse_ignores_unrelated_and_truncated_packets():
    """Test that echo requests and short packets are ignored."""
    assert parse_icmp(ICMP_HEADER.pack(8, 0, 0, 1, 1)) is None
    assert parse_icmp(b"\x00\x00") is None
    assert parse_icmp(ICMP_HEADER.pack(11, 0, 0, 0, 0) + b"\x45") is None


def test_open_ping_prober_falls_back_to_tcp(monkeypatch):
    """Test the TCP fallback when ICMP sockets are not permitted."""
    def deny(self):
        raise PermissionError("Operation not permitted")

    monkeypatch.setattr(IcmpProber, "check", deny)
    assert isinstance(open_ping_prober(), TcpProber)


def test_open_ping_prober_prefers_unprivileged_icmp(monkeypatch):
    """Test that a datagram ICMP socket is used when allowed."""
    monkeypatch.setattr(IcmpProber, "check", lambda self: None)
    prober = open_ping_prober()
    assert isinstance(prober, IcmpProber)
    assert prober.raw is False


def test_open_trace_prober_requires_raw_socket(monkeypatch):
    """Test that traceroute reports missing privileges as a system error."""
    def deny(self):
        raise PermissionError("Operation not permitted")

    monkeypatch.setattr(IcmpProber, "check", deny)
    with pytest.raises(NetTraceError) as exc_info:
        open_trace_prober()
    assert exc_info.value.error_type == ErrorType.SYSTEM
    assert exc_info.value.code == ErrorCode.TRACE_PERMISSION_DENIED


@pytest.mark.asyncio
async def test_tcp_prober_counts_refused_connection_as_reply(unused_tcp_port):
    """Test that a refused TCP connect still proves the host is reachable."""
    reply = await TcpProber(port=unused_tcp_port).probe("127.0.0.1", 1, 64, 0)
    assert reply.address == "127.0.0.1"
    assert reply.reached
    assert reply.rtt_ms >= 0


def test_echo_payload_starts_with_timestamp():
    """Test that the payload embeds the send time."""
    packet = build_echo_request(identifier=1, sequence=1, payload_size=16)
    (stamp,) = struct.unpack_from("!d", packet, ICMP_HEADER.size)
    assert stamp > 0
