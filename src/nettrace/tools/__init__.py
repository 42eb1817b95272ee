"""
Diagnostic tools wrapping the NetworkClient operations.
"""

from .base import DiagnosticTool, ToolModel
from .dns import DNSTool
from .ping import PingStatistics, PingTool
from .registry import ToolRegistry, create_default_registry
from .ssl import SSLTool
from .traceroute import TracerouteStatistics, TracerouteTool
from .whois import WHOISTool

__all__ = [
    "DiagnosticTool",
    "ToolModel",
    "ToolRegistry",
    "create_default_registry",
    "PingTool",
    "PingStatistics",
    "TracerouteTool",
    "TracerouteStatistics",
    "DNSTool",
    "WHOISTool",
    "SSLTool",
]
