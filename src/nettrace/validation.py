"""
Host, domain and port validation helpers.
"""

import ipaddress
import re

MAX_DOMAIN_LENGTH = 253

# Letters, digits, hyphen and underscore (service labels such as _dmarc);
# no leading or trailing hyphen.
_LABEL_PATTERN = re.compile(r"^(?!-)[A-Za-z0-9_-]{1,63}(?<!-)$")


def is_ip(value: str) -> bool:
    """Return True if value is an IPv4 or IPv6 literal."""
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def _labels(name: str):
    if not name or len(name) > MAX_DOMAIN_LENGTH + 1:
        return None
    if name.endswith("."):
        name = name[:-1]
    if not name or len(name) > MAX_DOMAIN_LENGTH:
        return None
    labels = name.split(".")
    if not all(_LABEL_PATTERN.match(label) for label in labels):
        return None
    return labels


def is_valid_hostname(name: str) -> bool:
    """Validate a hostname; single-label names such as "localhost" are allowed."""
    return _labels(name) is not None


def is_valid_domain(name: str) -> bool:
    """
    Validate a domain name.

    Examples:
        example.com -> True
        invalid..domain -> False
        -bad.example.com -> False
        localhost -> False (needs at least two labels)
        192.0.2.1 -> False (IP literals are not domains)
    """
    labels = _labels(name)
    return labels is not None and len(labels) >= 2 and not is_ip(name.rstrip("."))


def is_valid_host(value: str) -> bool:
    """Return True for an IP literal or a valid hostname."""
    return bool(value) and (is_ip(value) or is_valid_hostname(value))


def is_valid_port(port: int) -> bool:
    return isinstance(port, int) and not isinstance(port, bool) and 1 <= port <= 65535
