"""
NetTrace - Network Diagnostics Engine

Ping, traceroute, DNS, WHOIS and TLS certificate diagnostics behind a
single asyncio client, with typed results and JSON/CSV/text export.
"""

__version__ = "1.0.0"
__author__ = "NetTrace Team"

__all__ = [
    "NetworkClient",
    "NetworkConfig",
    "NetTraceError",
    "ErrorType",
    "ErrorCode",
    "Result",
    "ExportFormat",
    "ToolRegistry",
    "create_default_registry",
]


def __getattr__(name: str):
    """Lazy import module attributes on first access."""
    if name == "NetworkClient":
        from .client import NetworkClient
        return NetworkClient
    elif name == "NetworkConfig":
        from .config import NetworkConfig
        return NetworkConfig
    elif name in ("NetTraceError", "ErrorType", "ErrorCode"):
        from . import errors
        return getattr(errors, name)
    elif name in ("Result", "ExportFormat"):
        from . import result
        return getattr(result, name)
    elif name in ("ToolRegistry", "create_default_registry"):
        from . import tools
        return getattr(tools, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
