"""
Unit tests for certificate parser.
"""

import ipaddress

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519

from nettrace.certificate import CertificateParser


def test_load_der(certificate_factory):
    """Test loading a DER-encoded certificate."""
    cert, _ = certificate_factory()
    der = cert.public_bytes(serialization.Encoding.DER)
    assert CertificateParser.load_der(der) == cert


def test_extract_san(certificate_factory):
    """Test extracting Subject Alternative Names."""
    cert, _ = certificate_factory(san=["test.example.com", "*.test.example.com", "another.example.com"])
    san_list = CertificateParser.extract_san(cert)

    assert len(san_list) == 3
    assert "test.example.com" in san_list
    assert "*.test.example.com" in san_list


def test_extract_san_with_ip_addresses(certificate_factory):
    """Test that IP SANs follow DNS names."""
    _, key = certificate_factory()
    cert, _ = certificate_factory(san=[])
    builder = (
        x509.CertificateBuilder()
        .subject_name(cert.subject)
        .issuer_name(cert.subject)
        .public_key(key.public_key())
        .serial_number(1)
        .not_valid_before(cert.not_valid_before_utc)
        .not_valid_after(cert.not_valid_after_utc)
        .add_extension(
            x509.SubjectAlternativeName(
                [x509.IPAddress(ipaddress.ip_address("192.0.2.1")), x509.DNSName("example.com")]
            ),
            critical=False,
        )
    )
    with_ip = builder.sign(key, hashes.SHA256())
    assert CertificateParser.extract_san(with_ip) == ["example.com", "192.0.2.1"]


def test_extract_san_missing(certificate_factory):
    """Test a certificate without the SAN extension."""
    cert, _ = certificate_factory(san=[])
    assert CertificateParser.extract_san(cert) == []


def test_names_and_self_signed(certificate_factory):
    """Test subject/issuer formatting and self-signed detection."""
    root, root_key = certificate_factory(common_name="Test Root")
    leaf, _ = certificate_factory(issuer_name="Test Root", issuer_key=root_key)

    assert CertificateParser.format_name(leaf.subject) == "CN=test.example.com,O=Test Org"
    assert CertificateParser.format_name(leaf.issuer) == "CN=Test Root"
    assert CertificateParser.is_self_signed(root)
    assert not CertificateParser.is_self_signed(leaf)


def test_rsa_key_details(certificate_factory):
    """Test key algorithm, size and signature hash for RSA."""
    cert, _ = certificate_factory(key_size=2048)
    assert CertificateParser.key_algorithm(cert) == "RSA"
    assert CertificateParser.key_size(cert) == 2048
    assert CertificateParser.signature_hash(cert) == "sha256"


def _sign_with(key, algorithm, reference):
    return (
        x509.CertificateBuilder()
        .subject_name(reference.subject)
        .issuer_name(reference.subject)
        .public_key(key.public_key())
        .serial_number(2)
        .not_valid_before(reference.not_valid_before_utc)
        .not_valid_after(reference.not_valid_after_utc)
        .sign(key, algorithm)
    )


def test_ecdsa_and_ed25519_key_details(certificate_factory):
    """Test the per-algorithm key accessors."""
    reference, _ = certificate_factory()

    ec_cert = _sign_with(ec.generate_private_key(ec.SECP256R1()), hashes.SHA384(), reference)
    assert CertificateParser.key_algorithm(ec_cert) == "ECDSA"
    assert CertificateParser.key_size(ec_cert) == 256
    assert CertificateParser.signature_hash(ec_cert) == "sha384"

    ed_cert = _sign_with(ed25519.Ed25519PrivateKey.generate(), None, reference)
    assert CertificateParser.key_algorithm(ed_cert) == "Ed25519"
    assert CertificateParser.key_size(ed_cert) == 256
    assert CertificateParser.signature_hash(ed_cert) is None


def test_summarize(certificate_factory):
    """Test the serializable certificate summary."""
    cert, _ = certificate_factory()
    summary = CertificateParser.summarize(cert)

    assert summary["subject"] == "CN=test.example.com,O=Test Org"
    assert summary["key_algorithm"] == "RSA"
    assert summary["key_size"] == 2048
    assert summary["san"] == ["test.example.com"]
    assert summary["serial_number"] == format(cert.serial_number, "x")
    assert len(summary["fingerprint_sha256"]) == 64
    assert summary["not_after"] == cert.not_valid_after_utc.isoformat()
