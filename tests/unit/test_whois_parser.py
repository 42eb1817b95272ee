"""
Unit tests for WHOIS response parsing.
"""

import datetime

import pytest

from nettrace.whois_parser import find_referral, parse_whois_date, parse_whois_response

UTC = datetime.timezone.utc


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2020-01-01T00:00:00Z", datetime.datetime(2020, 1, 1, tzinfo=UTC)),
        ("2020-01-01", datetime.datetime(2020, 1, 1, tzinfo=UTC)),
        ("01/02/2020", datetime.datetime(2020, 1, 2, tzinfo=UTC)),
        ("2020-01-01 12:30:00", datetime.datetime(2020, 1, 1, 12, 30, tzinfo=UTC)),
        ("15-Mar-2021", datetime.datetime(2021, 3, 15, tzinfo=UTC)),
        ("2021.03.15", datetime.datetime(2021, 3, 15, tzinfo=UTC)),
        ("2021-03-15T10:00:00.123456789Z", datetime.datetime(2021, 3, 15, 10, 0, 0, 123456, tzinfo=UTC)),
        ("2024-01-01T00:00:00.0Z", datetime.datetime(2024, 1, 1, tzinfo=UTC)),
        ("2024-01-01T08:15:30.25Z", datetime.datetime(2024, 1, 1, 8, 15, 30, 250000, tzinfo=UTC)),
        ("2024-01-01T08:15:30.1234+00:00", datetime.datetime(2024, 1, 1, 8, 15, 30, 123400, tzinfo=UTC)),
        ("2021-03-15 10:00:00 UTC", datetime.datetime(2021, 3, 15, 10, tzinfo=UTC)),
        ("2021-03-15 (YYYY-MM-DD)", datetime.datetime(2021, 3, 15, tzinfo=UTC)),
    ],
)
def test_parse_whois_date(value, expected):
    """Test the supported date spellings."""
    assert parse_whois_date(value) == expected


def test_parse_whois_date_offset_is_normalized():
    """Test that offsets are converted to UTC."""
    parsed = parse_whois_date("2020-01-01T02:00:00+02:00")
    assert parsed == datetime.datetime(2020, 1, 1, tzinfo=UTC)


@pytest.mark.parametrize("value", ["", "not a date", "2020-13-45", "someday"])
def test_parse_whois_date_unparseable(value):
    """Test that unparseable strings yield None."""
    assert parse_whois_date(value) is None


def test_parse_example_response():
    """Test the basic domain response."""
    raw = "Domain Name: EXAMPLE.COM\nRegistrar: Test Inc.\nExpiry Date: 2025-01-01T00:00:00Z"
    result = parse_whois_response(raw, "example.com", server="whois.test:43")

    assert result.domain == "EXAMPLE.COM"
    assert result.registrar == "Test Inc."
    assert result.expires == datetime.datetime(2025, 1, 1, tzinfo=UTC)
    assert result.server == "whois.test:43"
    assert result.raw_data == raw


def test_parse_full_response():
    """Test name servers, statuses, contacts and first-wins fields."""
    raw = "\n".join(
        [
            "% comment line",
            "# another comment",
            "Domain Name: EXAMPLE.ORG",
            "Registrar: First Registrar",
            "Sponsoring Registrar: Second Registrar",
            "Creation Date: 2000-05-01T00:00:00Z",
            "Updated Date: garbage",
            "Last Updated: 2023-06-01",
            "Registry Expiry Date: 2030-05-01T00:00:00Z",
            "Name Server: NS1.EXAMPLE.ORG.",
            "Name Server: ns2.example.org, ns1.example.org",
            "Domain Status: clientTransferProhibited https://icann.org/epp",
            "Domain Status: clientTransferProhibited https://icann.org/epp",
            "Status: active, ok",
            "Registrant Name: Jane Doe",
            "Registrant Organization: Example Org",
            "Admin Email: admin@example.org",
            "Tech Phone: +1.5555550100",
            "Empty Field:",
            ">>> Last update of WHOIS database: 2024-01-01T00:00:00Z <<<",
        ]
    )
    result = parse_whois_response(raw, "example.org")

    assert result.registrar == "First Registrar"
    assert result.created == datetime.datetime(2000, 5, 1, tzinfo=UTC)
    assert result.updated == datetime.datetime(2023, 6, 1, tzinfo=UTC)
    assert result.expires == datetime.datetime(2030, 5, 1, tzinfo=UTC)
    assert result.name_servers == ["ns1.example.org", "ns2.example.org"]
    assert result.status == ["clientTransferProhibited https://icann.org/epp", "active", "ok"]
    assert result.contacts["registrant"].name == "Jane Doe"
    assert result.contacts["registrant"].organization == "Example Org"
    assert result.contacts["admin"].email == "admin@example.org"
    assert result.contacts["tech"].phone == "+1.5555550100"


def test_parse_falls_back_to_query():
    """Test that the query is used when no domain line is present."""
    result = parse_whois_response("NetRange: 192.0.2.0 - 192.0.2.255", "192.0.2.1", query_type="ip")
    assert result.domain == "192.0.2.1"
    assert result.query_type == "ip"
    assert result.contacts == {}


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("refer:        whois.verisign-grs.com\n", ("whois.verisign-grs.com", None)),
        ("Registrar WHOIS Server: whois.registrar.example\n", ("whois.registrar.example", None)),
        ("ReferralServer: whois://whois.ripe.net\n", ("whois.ripe.net", None)),
        ("ReferralServer: rwhois://rwhois.example.net:4321\n", ("rwhois.example.net", 4321)),
        ("whois: 192.0.2.53\n", ("192.0.2.53", None)),
        ("Registrar WHOIS Server: whois.registrar.example\r\n", ("whois.registrar.example", None)),
    ],
)
def test_find_referral(raw, expected):
    """Test the recognized referral spellings."""
    assert find_referral(raw) == expected


def test_find_referral_none():
    """Test responses without a usable referral."""
    assert find_referral("Domain Name: EXAMPLE.COM\n") is None
    assert find_referral("Registrar WHOIS Server:\n") is None
    assert find_referral("") is None


def test_find_referral_stays_on_one_line():
    """Test that an empty referral field does not pick up the next line."""
    raw = "Domain Name: EXAMPLE.COM\r\nRegistrar WHOIS Server:\r\nwhois.other.example\r\nRegistrar: Test\r\n"
    assert find_referral(raw) is None

    raw = "Registrar WHOIS Server:   \nwhois.other.example\n"
    assert find_referral(raw) is None
