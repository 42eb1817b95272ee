"""
Unit tests for the tool registry.
"""

import pytest

from nettrace.errors import ErrorCode, ErrorType, NetTraceError
from nettrace.parameters import SSLParameters
from nettrace.tools import (
    DNSTool,
    PingTool,
    SSLTool,
    ToolRegistry,
    TracerouteTool,
    WHOISTool,
    create_default_registry,
)


class TestToolRegistry:
    """Test ToolRegistry class."""

    def test_register_and_get(self, client_factory):
        """Test registering a tool and looking it up by name."""
        registry = ToolRegistry()
        tool = PingTool(client_factory())
        registry.register(tool)

        assert registry.get("ping") is tool
        assert "ping" in registry
        assert len(registry) == 1

    def test_duplicate_registration(self, client_factory):
        """Test that a name can only be registered once."""
        client = client_factory()
        registry = ToolRegistry()
        registry.register(PingTool(client))

        with pytest.raises(NetTraceError) as exc_info:
            registry.register(PingTool(client))
        assert exc_info.value.error_type == ErrorType.PLUGIN
        assert exc_info.value.code == ErrorCode.TOOL_ALREADY_REGISTERED

    def test_get_unknown_tool(self, client_factory):
        """Test the error for unknown names, listing available tools."""
        registry = ToolRegistry()
        registry.register(DNSTool(client_factory()))

        with pytest.raises(NetTraceError) as exc_info:
            registry.get("nmap")
        assert exc_info.value.code == ErrorCode.TOOL_NOT_FOUND
        assert exc_info.value.context == {"tool": "nmap", "available": ["dns"]}

    def test_unregister(self, client_factory):
        """Test removing tools."""
        registry = ToolRegistry()
        registry.register(WHOISTool(client_factory()))
        registry.unregister("whois")

        assert "whois" not in registry
        with pytest.raises(NetTraceError):
            registry.unregister("whois")

    def test_registries_are_independent(self, client_factory):
        """Test that there is no shared global state between registries."""
        first = ToolRegistry()
        first.register(SSLTool(client_factory()))
        assert len(ToolRegistry()) == 0


def test_default_registry(client_factory):
    """Test the built-in tool set."""
    client = client_factory()
    registry = create_default_registry(client)

    assert registry.names() == ["dns", "ping", "ssl", "traceroute", "whois"]
    assert isinstance(registry.get("traceroute"), TracerouteTool)
    assert all(registry.get(name).client is client for name in registry.names())

    models = registry.list()
    assert [model.name for model in models] == registry.names()
    assert next(m for m in models if m.name == "ssl").parameters is SSLParameters
