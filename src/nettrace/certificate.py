"""
X.509 certificate parsing helpers.
"""

import hashlib
from typing import Any, Dict, List, Optional

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa

ED25519_KEY_BITS = 256
ED448_KEY_BITS = 456


class CertificateParser:
    """
    Extracts the fields the TLS check reports from X.509 certificates.
    """

    @staticmethod
    def load_der(cert_der: bytes) -> x509.Certificate:
        """Load a DER-encoded certificate."""
        return x509.load_der_x509_certificate(cert_der)

    @staticmethod
    def extract_san(cert: x509.Certificate) -> List[str]:
        """
        Extract Subject Alternative Names.

        Returns:
            DNS names followed by IP addresses; empty when the extension is absent
        """
        try:
            san_ext = cert.extensions.get_extension_for_oid(
                x509.oid.ExtensionOID.SUBJECT_ALTERNATIVE_NAME
            )
        except x509.ExtensionNotFound:
            return []
        san_value: x509.SubjectAlternativeName = san_ext.value  # type: ignore[assignment]
        names = [str(name) for name in san_value.get_values_for_type(x509.DNSName)]
        names.extend(str(ip) for ip in san_value.get_values_for_type(x509.IPAddress))
        return names

    @staticmethod
    def format_name(name: x509.Name) -> str:
        return name.rfc4514_string()

    @staticmethod
    def is_self_signed(cert: x509.Certificate) -> bool:
        return cert.issuer == cert.subject

    @staticmethod
    def key_algorithm(cert: x509.Certificate) -> str:
        key = cert.public_key()
        if isinstance(key, rsa.RSAPublicKey):
            return "RSA"
        if isinstance(key, ec.EllipticCurvePublicKey):
            return "ECDSA"
        if isinstance(key, ed25519.Ed25519PublicKey):
            return "Ed25519"
        if isinstance(key, ed448.Ed448PublicKey):
            return "Ed448"
        if isinstance(key, dsa.DSAPublicKey):
            return "DSA"
        return type(key).__name__

    @staticmethod
    def key_size(cert: x509.Certificate) -> Optional[int]:
        """Public key size in bits, per key algorithm; None if unknown."""
        key = cert.public_key()
        if isinstance(key, (rsa.RSAPublicKey, dsa.DSAPublicKey)):
            return key.key_size
        if isinstance(key, ec.EllipticCurvePublicKey):
            return key.curve.key_size
        if isinstance(key, ed25519.Ed25519PublicKey):
            return ED25519_KEY_BITS
        if isinstance(key, ed448.Ed448PublicKey):
            return ED448_KEY_BITS
        return None

    @staticmethod
    def signature_hash(cert: x509.Certificate) -> Optional[str]:
        """
        Lower-case name of the signature hash ("sha256", "sha1", "md5").

        None for algorithms without a separate hash (Ed25519/Ed448) and for
        hashes the backend does not know.
        """
        try:
            algorithm = cert.signature_hash_algorithm
        except UnsupportedAlgorithm:
            # legacy hashes such as MD2
            oid_name = getattr(cert.signature_algorithm_oid, "_name", "")
            return oid_name.split("With")[0].lower() or None
        return algorithm.name.lower() if algorithm is not None else None

    @staticmethod
    def summarize(cert: x509.Certificate) -> Dict[str, Any]:
        """
        Serializable summary of a certificate.

        Returns:
            Dictionary with subject, issuer, serial, validity, algorithms,
            SANs and the SHA-256 fingerprint
        """
        der = cert.public_bytes(serialization.Encoding.DER)
        return {
            "subject": CertificateParser.format_name(cert.subject),
            "issuer": CertificateParser.format_name(cert.issuer),
            "serial_number": format(cert.serial_number, "x"),
            "not_before": cert.not_valid_before_utc.isoformat(),
            "not_after": cert.not_valid_after_utc.isoformat(),
            "signature_algorithm": getattr(cert.signature_algorithm_oid, "_name", ""),
            "key_algorithm": CertificateParser.key_algorithm(cert),
            "key_size": CertificateParser.key_size(cert),
            "san": CertificateParser.extract_san(cert),
            "fingerprint_sha256": hashlib.sha256(der).hexdigest(),
        }
