"""
Error taxonomy and exception classification for network diagnostics.

Every failure surfaced by the drivers is a NetTraceError carrying an
ErrorType discriminant, a machine-readable ErrorCode, the originating
cause and a context map describing the target.
"""

import asyncio
import errno as err_mod
import socket
import ssl
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import aiodns


class ErrorType(str, Enum):
    """High-level error types."""

    NETWORK = "network"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    PLUGIN = "plugin"
    UI = "ui"
    EXPORT = "export"
    SYSTEM = "system"


class ErrorCode(str, Enum):
    """Specific error codes for failure diagnostics."""

    # Connection errors
    CONN_TIMEOUT = "CONN_TIMEOUT"
    CONN_REFUSED = "CONN_REFUSED"
    CONN_RESET = "CONN_RESET"
    CONN_ABORTED = "CONN_ABORTED"
    CONN_BROKEN_PIPE = "CONN_BROKEN_PIPE"

    # Network errors
    NET_UNREACHABLE = "NET_UNREACHABLE"
    NET_HOST_DOWN = "NET_HOST_DOWN"
    NET_HOST_UNREACHABLE = "NET_HOST_UNREACHABLE"
    NET_NO_ROUTE = "NET_NO_ROUTE"
    NET_ADDR_NOT_AVAILABLE = "NET_ADDR_NOT_AVAILABLE"

    # DNS/Address errors
    DNS_RESOLUTION_FAILED = "DNS_RESOLUTION_FAILED"
    DNS_NAME_NOT_FOUND = "DNS_NAME_NOT_FOUND"
    DNS_NO_DATA = "DNS_NO_DATA"
    DNS_TEMPORARY_FAILURE = "DNS_TEMPORARY_FAILURE"
    DNS_SERVER_FAILURE = "DNS_SERVER_FAILURE"

    # Socket errors
    SOCKET_ERROR = "SOCKET_ERROR"
    SOCKET_TIMEOUT = "SOCKET_TIMEOUT"

    # TLS/SSL errors
    TLS_HANDSHAKE_FAILED = "TLS_HANDSHAKE_FAILED"
    TLS_PROTOCOL_ERROR = "TLS_PROTOCOL_ERROR"
    TLS_VERSION_MISMATCH = "TLS_VERSION_MISMATCH"
    TLS_EOF = "TLS_EOF"
    PLAIN_TCP_NO_TLS = "PLAIN_TCP_NO_TLS"

    # Ping
    PING_INVALID_HOST = "PING_INVALID_HOST"
    PING_INVALID_OPTIONS = "PING_INVALID_OPTIONS"
    PING_RESOLVE_FAILED = "PING_RESOLVE_FAILED"
    PING_TIMEOUT = "PING_TIMEOUT"
    PING_FAILED = "PING_FAILED"

    # Traceroute
    TRACE_INVALID_HOST = "TRACE_INVALID_HOST"
    TRACE_INVALID_OPTIONS = "TRACE_INVALID_OPTIONS"
    TRACE_RESOLVE_FAILED = "TRACE_RESOLVE_FAILED"
    TRACE_PERMISSION_DENIED = "TRACE_PERMISSION_DENIED"
    TRACE_FAILED = "TRACE_FAILED"

    # DNS lookups
    DNS_INVALID_DOMAIN = "DNS_INVALID_DOMAIN"
    DNS_INVALID_RECORD_TYPE = "DNS_INVALID_RECORD_TYPE"
    DNS_LOOKUP_FAILED = "DNS_LOOKUP_FAILED"

    # WHOIS
    WHOIS_INVALID_QUERY = "WHOIS_INVALID_QUERY"
    WHOIS_VALIDATION_FAILED = "WHOIS_VALIDATION_FAILED"
    WHOIS_LOOKUP_FAILED = "WHOIS_LOOKUP_FAILED"

    # SSL
    SSL_INVALID_HOST = "SSL_INVALID_HOST"
    SSL_INVALID_PORT = "SSL_INVALID_PORT"
    SSL_CHECK_FAILED = "SSL_CHECK_FAILED"
    SSL_NO_CERTIFICATE = "SSL_NO_CERTIFICATE"

    # General
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    CONFIG_INVALID = "CONFIG_INVALID"
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    EXPORT_FAILED = "EXPORT_FAILED"
    EXPORT_UNSUPPORTED = "EXPORT_UNSUPPORTED"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    TOOL_ALREADY_REGISTERED = "TOOL_ALREADY_REGISTERED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(eq=False)
class NetTraceError(Exception):
    """
    Exception raised by every diagnostic operation.

    Carries the error type, a machine-readable code, the originating cause,
    a context map (host/port/query) and the time the error was created.
    """

    message: str
    error_type: ErrorType
    code: ErrorCode
    cause: Optional[BaseException] = None
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.cause is not None:
            self.__cause__ = self.cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view of the error."""
        return {
            "type": self.error_type.value,
            "code": self.code.value,
            "message": self.message,
            "cause": str(self.cause) if self.cause is not None else None,
            "context": dict(self.context),
            "timestamp": self.timestamp.isoformat(),
        }


def validation_error(code: ErrorCode, message: str, **context: Any) -> NetTraceError:
    """Build a validation-typed error."""
    return NetTraceError(
        message=message,
        error_type=ErrorType.VALIDATION,
        code=code,
        context=context,
    )


def network_error(
    code: ErrorCode,
    message: str,
    cause: Optional[BaseException] = None,
    **context: Any,
) -> NetTraceError:
    """Build a network-typed error, attaching classification details of the cause."""
    if cause is not None and not isinstance(cause, NetTraceError):
        cause_code, details = classify_exception(cause)
        context.setdefault("cause_code", cause_code.value)
        context.setdefault("details", details)
    return NetTraceError(
        message=message,
        error_type=ErrorType.NETWORK,
        code=code,
        cause=cause,
        context=context,
    )


def classify_ssl_error(e: ssl.SSLError) -> Tuple[ErrorCode, Dict[str, Any]]:
    """
    Classify an SSL error.

    Args:
        e: The SSL error to classify

    Returns:
        Tuple of (ErrorCode, error_details dict)
    """
    details: Dict[str, Any] = {
        "exception_type": type(e).__name__,
        "raw_message": str(e),
    }

    if getattr(e, "library", None):
        details["ssl_library"] = e.library
    ssl_reason = getattr(e, "reason", None)
    if ssl_reason:
        details["ssl_reason"] = ssl_reason

    if isinstance(e, (ssl.SSLEOFError, ssl.SSLZeroReturnError)):
        return ErrorCode.TLS_EOF, details

    # WRONG_VERSION_NUMBER usually means the port does not speak TLS
    if ssl_reason == "WRONG_VERSION_NUMBER":
        return ErrorCode.PLAIN_TCP_NO_TLS, details
    if ssl_reason in ("NO_PROTOCOLS_AVAILABLE", "UNSUPPORTED_PROTOCOL"):
        return ErrorCode.TLS_VERSION_MISMATCH, details

    msg = str(e).lower()
    if "handshake" in msg or "alert" in msg:
        return ErrorCode.TLS_HANDSHAKE_FAILED, details
    if "version" in msg or "protocol" in msg:
        return ErrorCode.TLS_VERSION_MISMATCH, details
    if "eof" in msg:
        return ErrorCode.TLS_EOF, details

    return ErrorCode.TLS_PROTOCOL_ERROR, details


def classify_dns_error(e: aiodns.error.DNSError) -> Tuple[ErrorCode, Dict[str, Any]]:
    """Classify an aiodns error by its c-ares status code."""
    status = e.args[0] if e.args else None
    details: Dict[str, Any] = {
        "exception_type": type(e).__name__,
        "raw_message": str(e),
        "ares_status": status,
    }

    mapping = {
        aiodns.error.ARES_ENOTFOUND: ErrorCode.DNS_NAME_NOT_FOUND,
        aiodns.error.ARES_ENODATA: ErrorCode.DNS_NO_DATA,
        aiodns.error.ARES_ESERVFAIL: ErrorCode.DNS_SERVER_FAILURE,
        aiodns.error.ARES_ETIMEOUT: ErrorCode.SOCKET_TIMEOUT,
        aiodns.error.ARES_ECONNREFUSED: ErrorCode.CONN_REFUSED,
    }
    return mapping.get(status, ErrorCode.DNS_RESOLUTION_FAILED), details


def classify_os_error(e: OSError) -> Tuple[ErrorCode, Dict[str, Any]]:
    """
    Classify OS/network errors by subclass, errno and message.

    Args:
        e: The OS error to classify

    Returns:
        Tuple of (ErrorCode, error_details dict)
    """
    details: Dict[str, Any] = {
        "exception_type": type(e).__name__,
        "raw_message": str(e),
    }

    if isinstance(e, socket.gaierror):
        gai_code = e.args[0] if e.args else None
        details["gaierror_code"] = gai_code
        if gai_code == socket.EAI_NONAME:
            return ErrorCode.DNS_NAME_NOT_FOUND, details
        if gai_code == socket.EAI_AGAIN:
            return ErrorCode.DNS_TEMPORARY_FAILURE, details
        return ErrorCode.DNS_RESOLUTION_FAILED, details

    if e.errno is not None:
        details["errno"] = e.errno
        details["errno_name"] = err_mod.errorcode.get(e.errno, f"ERRNO_{e.errno}")

    subclass_mapping = [
        (ConnectionRefusedError, ErrorCode.CONN_REFUSED),
        (ConnectionResetError, ErrorCode.CONN_RESET),
        (ConnectionAbortedError, ErrorCode.CONN_ABORTED),
        (BrokenPipeError, ErrorCode.CONN_BROKEN_PIPE),
        (TimeoutError, ErrorCode.CONN_TIMEOUT),
        (PermissionError, ErrorCode.PERMISSION_DENIED),
    ]
    for exc_type, code in subclass_mapping:
        if isinstance(e, exc_type):
            return code, details

    errno_mapping = {
        err_mod.ENETUNREACH: ErrorCode.NET_UNREACHABLE,
        err_mod.EHOSTUNREACH: ErrorCode.NET_HOST_UNREACHABLE,
        err_mod.EHOSTDOWN: ErrorCode.NET_HOST_DOWN,
        err_mod.ENETDOWN: ErrorCode.NET_NO_ROUTE,
        err_mod.ETIMEDOUT: ErrorCode.CONN_TIMEOUT,
        err_mod.EADDRNOTAVAIL: ErrorCode.NET_ADDR_NOT_AVAILABLE,
        err_mod.EACCES: ErrorCode.PERMISSION_DENIED,
        err_mod.EPERM: ErrorCode.PERMISSION_DENIED,
    }
    if e.errno in errno_mapping:
        return errno_mapping[e.errno], details

    msg = str(e).lower()
    message_patterns = [
        (["timeout", "timed out"], ErrorCode.CONN_TIMEOUT),
        (["refused"], ErrorCode.CONN_REFUSED),
        (["reset"], ErrorCode.CONN_RESET),
        (["unreachable"], ErrorCode.NET_UNREACHABLE),
        (["no route"], ErrorCode.NET_NO_ROUTE),
    ]
    for patterns, code in message_patterns:
        if any(p in msg for p in patterns):
            return code, details

    return ErrorCode.SOCKET_ERROR, details


def classify_exception(e: BaseException) -> Tuple[ErrorCode, Dict[str, Any]]:
    """
    Classify any exception into an error code.

    Args:
        e: The exception to classify

    Returns:
        Tuple of (ErrorCode, error_details dict)
    """
    if isinstance(e, NetTraceError):
        return e.code, dict(e.context)

    # SSLError is a subclass of OSError, check it first
    if isinstance(e, ssl.SSLError):
        return classify_ssl_error(e)

    if isinstance(e, asyncio.TimeoutError):
        return ErrorCode.CONN_TIMEOUT, {
            "exception_type": type(e).__name__,
            "raw_message": str(e),
        }

    if isinstance(e, OSError):
        return classify_os_error(e)

    if isinstance(e, aiodns.error.DNSError):
        return classify_dns_error(e)

    return ErrorCode.UNKNOWN_ERROR, {
        "exception_type": type(e).__name__,
        "exception_module": type(e).__module__,
        "raw_message": str(e),
    }


def is_retryable(e: BaseException) -> bool:
    """
    Decide whether a failure is worth another attempt.

    Structural failures (validation, configuration, export, plugin) are
    never retried; network-level failures are.
    """
    if isinstance(e, NetTraceError):
        return e.error_type == ErrorType.NETWORK
    if isinstance(e, PermissionError):
        return False
    return isinstance(e, (OSError, asyncio.TimeoutError, aiodns.error.DNSError))
