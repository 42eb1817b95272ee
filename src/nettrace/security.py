"""
Security analysis of TLS certificate check results.
"""

import dataclasses
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from .certificate import CertificateParser
from .models import SSLResult

MIN_RSA_KEY_BITS = 2048
EXPIRY_WARNING_DAYS = 30
WEAK_SIGNATURE_HASHES = ("md2", "md4", "md5", "sha1")

MSG_EXPIRED = "certificate has expired"
MSG_SELF_SIGNED = "certificate is self-signed"
MSG_INCOMPLETE_CHAIN = "incomplete chain: certificate chain contains only one certificate"

DEFAULT_RECOMMENDATION = "Certificate configuration appears secure"


class SecurityLevel(str, Enum):
    INSECURE = "INSECURE"
    WEAK = "WEAK"
    WARNING = "WARNING"
    SECURE = "SECURE"


def days_until_expiry(expiry: datetime, now: Optional[datetime] = None) -> int:
    """Whole days until expiry, truncated toward zero."""
    now = now or datetime.now(timezone.utc)
    return int((expiry - now).total_seconds() / 86400)


def _weak_signature_message(hash_name: str) -> str:
    label = "SHA-1" if hash_name == "sha1" else hash_name.upper()
    return f"certificate uses weak {label} signature algorithm"


def analyze_certificate(result: SSLResult, now: Optional[datetime] = None) -> SSLResult:
    """
    Run the security checks and return an updated result.

    Findings are appended after the existing errors. Weak signatures, short
    RSA keys and expiry clear `valid`; upcoming expiry, self-signed
    certificates and single-certificate chains are warnings only.
    """
    cert = result.certificate
    if cert is None:
        return result

    errors = list(result.errors)
    valid = result.valid

    hash_name = CertificateParser.signature_hash(cert)
    if hash_name in WEAK_SIGNATURE_HASHES:
        errors.append(_weak_signature_message(hash_name))
        valid = False

    if CertificateParser.key_algorithm(cert) == "RSA":
        key_bits = CertificateParser.key_size(cert)
        if key_bits is not None and key_bits < MIN_RSA_KEY_BITS:
            errors.append(f"certificate uses weak RSA key size: {key_bits} bits")
            valid = False

    expiry = result.expiry or cert.not_valid_after_utc
    days = days_until_expiry(expiry, now)
    if days <= 0:
        errors.append(MSG_EXPIRED)
        valid = False
    elif days <= EXPIRY_WARNING_DAYS:
        errors.append(f"certificate expires in {days} days")

    if CertificateParser.is_self_signed(cert):
        errors.append(MSG_SELF_SIGNED)

    if len(result.chain) == 1:
        errors.append(MSG_INCOMPLETE_CHAIN)

    return dataclasses.replace(result, errors=errors, valid=valid)


def get_security_level(result: SSLResult) -> SecurityLevel:
    """
    Classify a checked result.

    INSECURE when not valid; WEAK when a message mentions expiry, weakness
    or SHA-1; WARNING for any other message; SECURE otherwise.
    """
    if not result.valid:
        return SecurityLevel.INSECURE
    lowered = [message.lower() for message in result.errors]
    if any(keyword in message for message in lowered for keyword in ("expired", "weak", "sha-1")):
        return SecurityLevel.WEAK
    if lowered:
        return SecurityLevel.WARNING
    return SecurityLevel.SECURE


def get_security_recommendations(result: SSLResult) -> List[str]:
    """Recommendations derived from the analysis messages; never empty."""
    recommendations: List[str] = []

    def add(text: str) -> None:
        if text not in recommendations:
            recommendations.append(text)

    for message in result.errors:
        lowered = message.lower()
        if "expires in" in lowered:
            add("Renew certificate before expiry")
        elif MSG_EXPIRED in lowered:
            add("Certificate has expired - renew immediately")
        elif "signature algorithm" in lowered and "weak" in lowered:
            add("Upgrade to SHA-256 or higher signature algorithm")
        elif "rsa key size" in lowered:
            add("Use RSA key size of 2048 bits or higher")
        elif "self-signed" in lowered:
            add("Use a certificate from a trusted Certificate Authority")
        elif "chain" in lowered:
            add("Ensure complete certificate chain is configured")

    if not recommendations:
        recommendations.append(DEFAULT_RECOMMENDATION)
    return recommendations
