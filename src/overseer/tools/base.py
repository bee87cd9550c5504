"""
Tool-server interface consumed by the tool permission gate.

Overseer never executes tools itself. A host wraps each of its tool
servers (MCP clients, local plugins, ...) in a ToolServer so the gate can
list their tools and forward calls by qualified name.

Design Principles:
    - Servers return ToolCallOutput; expected failures are never raised
    - Tool names are bare on the server; the gate adds the server prefix
"""

from abc import ABC, abstractmethod
from typing import Any

from overseer.schema import ChatSession, ToolCallOutput, ToolDescriptor


class ToolServer(ABC):
    """
    Abstract base class for a host tool server.

    Subclasses must implement:
    - name property: The server name (prefix of qualified tool names)
    - tools property: Descriptors of the tools the server exposes
    - call_tool(): Run one of those tools

    Example:
        class ClockServer(ToolServer):
            @property
            def name(self) -> str:
                return "clock"

            @property
            def tools(self) -> list[ToolDescriptor]:
                return [ToolDescriptor(name="now", description="Current time")]

            async def call_tool(self, tool, args, session=None):
                return ToolCallOutput.ok(datetime.now(UTC).isoformat())
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The server name."""
        ...

    @property
    @abstractmethod
    def tools(self) -> list[ToolDescriptor]:
        """Tools exposed by this server, with bare names."""
        ...

    @abstractmethod
    async def call_tool(
        self,
        tool: str,
        args: dict[str, Any],
        session: ChatSession | None = None,
    ) -> ToolCallOutput:
        """
        Run a tool on this server.

        Args:
            tool: Bare tool name
            args: Tool arguments
            session: The chat session making the call, if any
        """
        ...

    def has_tool(self, tool: str) -> bool:
        """Check whether the server exposes a tool."""
        return any(descriptor.name == tool for descriptor in self.tools)

    def __repr__(self) -> str:
        return f"<ToolServer: {self.name}>"


class StaticToolServer(ToolServer):
    """
    A server whose tools are declared up front and never run.

    Used for servers described in a tools YAML file, where only the
    descriptors matter (e.g. to preview which tools a model would see).
    Calling a tool returns a failed output.
    """

    def __init__(self, name: str, tools: list[ToolDescriptor]) -> None:
        self._name = name
        self._tools = list(tools)

    @property
    def name(self) -> str:
        return self._name

    @property
    def tools(self) -> list[ToolDescriptor]:
        return list(self._tools)

    async def call_tool(
        self,
        tool: str,
        args: dict[str, Any],
        session: ChatSession | None = None,
    ) -> ToolCallOutput:
        return ToolCallOutput.fail(f"Server '{self._name}' is declared statically; {tool} cannot run")
