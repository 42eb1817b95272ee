"""
Registry of available diagnostic tools.
"""

from typing import TYPE_CHECKING, Dict, List, Optional

from ..errors import ErrorCode, ErrorType, NetTraceError
from ..log import FieldLogger, get_logger
from .base import DiagnosticTool, ToolModel
from .dns import DNSTool
from .ping import PingTool
from .ssl import SSLTool
from .traceroute import TracerouteTool
from .whois import WHOISTool

if TYPE_CHECKING:
    from ..client import NetworkClient


class ToolRegistry:
    """
    Name to tool mapping.

    Constructed explicitly and passed to whoever needs it; there is no
    global instance.
    """

    def __init__(self, logger: Optional[FieldLogger] = None):
        self._tools: Dict[str, DiagnosticTool] = {}
        self._logger = logger or get_logger(__name__)

    def register(self, tool: DiagnosticTool) -> None:
        if tool.name in self._tools:
            raise NetTraceError(
                message=f"tool already registered: {tool.name}",
                error_type=ErrorType.PLUGIN,
                code=ErrorCode.TOOL_ALREADY_REGISTERED,
                context={"tool": tool.name},
            )
        self._tools[tool.name] = tool
        self._logger.debug("Registered tool", tool=tool.name)

    def unregister(self, name: str) -> None:
        self.get(name)
        del self._tools[name]

    def get(self, name: str) -> DiagnosticTool:
        try:
            return self._tools[name]
        except KeyError:
            raise NetTraceError(
                message=f"tool not found: {name}",
                error_type=ErrorType.PLUGIN,
                code=ErrorCode.TOOL_NOT_FOUND,
                context={"tool": name, "available": self.names()},
            ) from None

    def names(self) -> List[str]:
        return sorted(self._tools)

    def list(self) -> List[ToolModel]:
        return [self._tools[name].get_model() for name in self.names()]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def create_default_registry(client: "NetworkClient") -> ToolRegistry:
    """Registry with the five built-in tools bound to one client."""
    registry = ToolRegistry()
    for tool_class in (PingTool, TracerouteTool, DNSTool, WHOISTool, SSLTool):
        registry.register(tool_class(client))
    return registry
