"""
Parsing of raw WHOIS responses.

WHOIS output is free-form text that differs per registry; this module maps
the common `key: value` spellings onto WHOISResult fields.
"""

import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .models import Contact, WHOISResult

# key -> field name
_FIELD_ALIASES: Dict[str, str] = {}
# key -> (contact role, contact attribute)
_CONTACT_ALIASES: Dict[str, Tuple[str, str]] = {}


def _alias(field_name: str, *keys: str) -> None:
    for key in keys:
        _FIELD_ALIASES[key] = field_name


def _contact(role: str, attribute: str, *keys: str) -> None:
    for key in keys:
        _CONTACT_ALIASES[key] = (role, attribute)


_alias("domain", "domain name", "domain", "domain_name")
_alias(
    "registrar",
    "registrar",
    "sponsoring registrar",
    "registrar name",
    "registrar organization",
)
_alias(
    "created",
    "creation date",
    "created",
    "registered",
    "created on",
    "registration time",
    "registered on",
    "created date",
    "registration date",
)
_alias(
    "updated",
    "updated date",
    "last updated",
    "modified",
    "updated on",
    "last updated on",
    "changed",
    "last modified",
    "modified date",
)
_alias(
    "expires",
    "expiry date",
    "expires",
    "expiration date",
    "expires on",
    "registry expiry date",
    "registrar registration expiration date",
    "expiration time",
    "expire date",
    "expires at",
    "paid-till",
)
_alias("name_servers", "name server", "nameserver", "nserver", "name servers", "dns", "dns servers")
_alias("status", "status", "domain status", "state", "domain_status")

for _role, _labels in (
    ("registrant", ("registrant",)),
    ("admin", ("admin", "administrative contact")),
    ("tech", ("tech", "technical contact")),
):
    _prefix = _labels[0]
    _contact(_role, "name", f"{_prefix} name", f"{_prefix} contact name", f"{_prefix}_name")
    _contact(
        _role,
        "organization",
        f"{_prefix} organization",
        f"{_prefix} organisation",
        f"{_prefix} org",
        f"{_prefix} company",
        f"{_prefix}_organization",
    )
    _contact(_role, "email", f"{_prefix} email", f"{_prefix} e-mail", f"{_prefix}_email")
    _contact(_role, "phone", f"{_prefix} phone", f"{_prefix} telephone", f"{_prefix}_phone")
    _contact(_role, "address", f"{_prefix} address", f"{_prefix} street", f"{_prefix}_address")
    if len(_labels) > 1:
        _contact(_role, "name", _labels[1])
        _contact(_role, "email", f"{_labels[1]} email")
_contact("registrant", "name", "registrant")

_IGNORED_PREFIXES = ("%", "#", ">>>")

_TZ_SUFFIX = re.compile(r"\s+(UTC|GMT|PST|PDT|EST|EDT|CST|CDT|MST|MDT)$", re.IGNORECASE)
_FRACTION = re.compile(r"(?<=:\d\d)\.(\d+)")

# Ordered; the first format that parses wins.
DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%d-%b-%Y",
    "%d %b %Y",
    "%b %d %Y",
    "%B %d, %Y",
    "%Y.%m.%d",
    "%d.%m.%Y",
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%a %b %d %H:%M:%S %Y",
    "%A, %d-%b-%y %H:%M:%S",
    "%a, %d %b %Y %H:%M:%S",
    "%Y.%m.%d %H:%M:%S",
    "%d.%m.%Y %H:%M:%S",
]

_REFERRAL_PATTERN = re.compile(
    r"^\s*(?:refer|whois|whois server|registrar whois server|referralserver)[ \t]*:[ \t]*"
    r"(?:r?whois://)?([A-Za-z0-9.-]+\.[A-Za-z]{2,}|\d{1,3}(?:\.\d{1,3}){3})(?::(\d+))?[ \t\r]*$",
    re.IGNORECASE | re.MULTILINE,
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_whois_date(value: str) -> Optional[datetime]:
    """
    Parse a WHOIS date string.

    Tries ISO-8601 first, then DATE_FORMATS in order. Timezone abbreviations
    and parenthetical notes are stripped beforehand. Returns a timezone-aware
    UTC datetime, or None if nothing matches.
    """
    text = (value or "").strip()
    if "(" in text:
        text = text[: text.index("(")].strip()
    text = _TZ_SUFFIX.sub("", text).strip()
    if not text:
        return None

    iso = text
    if iso.endswith(("Z", "z")):
        iso = iso[:-1] + "+00:00"
    iso = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), iso)
    try:
        return _as_utc(datetime.fromisoformat(iso))
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return _as_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return None


def find_referral(raw: str) -> Optional[Tuple[str, Optional[int]]]:
    """
    Find a referral to a more specific WHOIS server.

    Returns (host, port) with port None when not given, or None when the
    response names no server.
    """
    match = _REFERRAL_PATTERN.search(raw or "")
    if not match:
        return None
    host = match.group(1).lower().rstrip(".")
    port = int(match.group(2)) if match.group(2) else None
    return host, port


def _dedupe(values: List[str]) -> List[str]:
    seen = set()
    unique = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


def parse_whois_response(raw: str, query: str, server: str = "", query_type: str = "domain") -> WHOISResult:
    """
    Parse a raw WHOIS response into a WHOISResult.

    Args:
        raw: Full response text
        query: The queried domain or IP (used when no domain line is present)
        server: Server that produced the response
        query_type: "domain" or "ip"

    Returns:
        WHOISResult; contacts only contain roles with at least one field present
    """
    domain = ""
    registrar = ""
    dates: Dict[str, Optional[datetime]] = {"created": None, "updated": None, "expires": None}
    name_servers: List[str] = []
    status: List[str] = []
    contacts: Dict[str, Contact] = {}

    for line in raw.splitlines():
        line = line.strip()
        if not line or line.startswith(_IGNORED_PREFIXES):
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()
        if not value:
            continue

        field_name = _FIELD_ALIASES.get(key)
        if field_name == "domain":
            domain = domain or value
        elif field_name == "registrar":
            registrar = registrar or value
        elif field_name in dates:
            parsed = parse_whois_date(value)
            if parsed is not None and dates[field_name] is None:
                dates[field_name] = parsed
        elif field_name == "name_servers":
            name_servers.extend(
                server_name.lower().rstrip(".")
                for server_name in re.split(r"[\s,;]+", value)
                if server_name
            )
        elif field_name == "status":
            status.extend(part.strip() for part in value.split(",") if part.strip())
        elif key in _CONTACT_ALIASES:
            role, attribute = _CONTACT_ALIASES[key]
            contact = contacts.setdefault(role, Contact())
            setattr(contact, attribute, value)

    return WHOISResult(
        domain=domain or query,
        registrar=registrar,
        created=dates["created"],
        updated=dates["updated"],
        expires=dates["expires"],
        name_servers=_dedupe(name_servers),
        status=_dedupe(status),
        contacts=contacts,
        raw_data=raw,
        server=server,
        query_type=query_type,
    )
