"""
Unit tests for the DNS driver.
"""

from types import SimpleNamespace

import aiodns
import pytest

from nettrace.dns_resolver import DNSDriver, consolidate_dns_results, render_record
from nettrace.models import DNSRecord, DNSRecordType, DNSResult


def test_render_mx_record():
    """Test MX rendering keeps the priority separate."""
    entry = SimpleNamespace(host="mail.example.com", priority=10, ttl=300)
    record = render_record("example.com", DNSRecordType.MX, entry)

    assert record.value == "mail.example.com"
    assert record.priority == 10
    assert record.ttl == 300


def test_render_txt_record_bytes():
    """Test that byte TXT values are decoded."""
    entry = SimpleNamespace(text=b"v=spf1 -all", ttl=60)
    assert render_record("example.com", DNSRecordType.TXT, entry).value == "v=spf1 -all"


def test_render_soa_record():
    """Test SOA rendering as a single space-separated value."""
    entry = SimpleNamespace(
        nsname="ns1.example.com",
        hostmaster="hostmaster.example.com",
        serial=2024010101,
        refresh=7200,
        retry=3600,
        expires=1209600,
        minttl=300,
        ttl=3600,
    )
    record = render_record("example.com", DNSRecordType.SOA, entry)
    assert record.value == "ns1.example.com hostmaster.example.com 2024010101 7200 3600 1209600 300"


@pytest.mark.asyncio
async def test_query_returns_records(fake_resolver):
    """Test a successful A query."""
    resolver = fake_resolver(
        answers={
            ("example.com", "A"): [
                SimpleNamespace(host="192.0.2.1", ttl=60),
                SimpleNamespace(host="192.0.2.2", ttl=60),
            ]
        }
    )
    driver = DNSDriver(resolver=resolver)

    result = await driver.query("example.com", DNSRecordType.A)

    assert result.query == "example.com"
    assert result.record_type == DNSRecordType.A
    assert [r.value for r in result.records] == ["192.0.2.1", "192.0.2.2"]
    assert result.server == "system"
    assert result.response_time_ms >= 0


@pytest.mark.asyncio
async def test_query_single_object_answer(fake_resolver):
    """Test that single-object answers (CNAME) are handled."""
    resolver = fake_resolver(answers={("www.example.com", "CNAME"): SimpleNamespace(cname="example.com", ttl=30)})
    result = await DNSDriver(resolver=resolver).query("www.example.com", DNSRecordType.CNAME)
    assert [r.value for r in result.records] == ["example.com"]


@pytest.mark.asyncio
async def test_ptr_query_for_ip_uses_reverse_name(fake_resolver):
    """Test that PTR lookups of IP literals query the in-addr.arpa name."""
    resolver = fake_resolver(
        answers={("1.2.0.192.in-addr.arpa", "PTR"): SimpleNamespace(name="host.example.com", ttl=60)}
    )
    result = await DNSDriver(resolver=resolver).query("192.0.2.1", DNSRecordType.PTR)

    assert result.records[0].value == "host.example.com"
    assert result.query == "192.0.2.1"


@pytest.mark.asyncio
async def test_query_error_propagates(fake_resolver):
    """Test that resolver errors are raised for the caller to retry."""
    driver = DNSDriver(resolver=fake_resolver())
    with pytest.raises(aiodns.error.DNSError):
        await driver.query("missing.example.com", DNSRecordType.A)


@pytest.mark.asyncio
async def test_resolve_host(fake_resolver):
    """Test hostname resolution and IP passthrough."""
    resolver = fake_resolver(hosts={"example.com": ["192.0.2.1", "192.0.2.2"]})
    driver = DNSDriver(resolver=resolver)

    host = await driver.resolve_host("example.com")
    assert (host.hostname, host.ip) == ("example.com", "192.0.2.1")

    literal = await driver.resolve_host("203.0.113.1")
    assert literal.ip == "203.0.113.1"
    assert ("203.0.113.1", "gethostbyname") not in resolver.queries


@pytest.mark.asyncio
async def test_reverse_lookup_is_best_effort(fake_resolver):
    """Test that reverse lookup failures return None."""
    driver = DNSDriver(resolver=fake_resolver(ptr={"192.0.2.1": "host.example.com"}))
    assert await driver.reverse_lookup("192.0.2.1") == "host.example.com"
    assert await driver.reverse_lookup("192.0.2.2") is None


def test_server_label():
    """Test the server label for configured and system resolvers."""
    assert DNSDriver().server == "system"
    assert DNSDriver(nameservers=["1.1.1.1", "8.8.8.8"]).server == "1.1.1.1,8.8.8.8"


def test_consolidate_results():
    """Test merging per-type results."""
    a = DNSResult(
        query="example.com",
        record_type=DNSRecordType.A,
        records=[DNSRecord("example.com", DNSRecordType.A, "192.0.2.1", 60)],
        response_time_ms=10.0,
    )
    mx = DNSResult(
        query="example.com",
        record_type=DNSRecordType.MX,
        records=[DNSRecord("example.com", DNSRecordType.MX, "mx.example.com", 60, 10)],
        response_time_ms=20.0,
    )
    merged = consolidate_dns_results("example.com", [a, mx])

    assert len(merged.records) == 2
    assert merged.record_type == DNSRecordType.A
    assert merged.response_time_ms == 15.0


def test_consolidate_requires_results():
    """Test that consolidating nothing is an error."""
    with pytest.raises(ValueError):
        consolidate_dns_results("example.com", [])
