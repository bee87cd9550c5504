"""
Tool permission gate.

Decides which tools a model may see for a session and whether a tool
call needs user confirmation. Works over the host's tool servers plus a
per-server availability/confirmation configuration.

Visibility (list_tools):
    1. Drop tools disabled by the server's tool_enabled configuration
    2. Autonomous sessions only, by session tool_permission:
         always -> nothing is visible
         never  -> everything still enabled is visible
         tool   -> only tools that do not require confirmation
    3. Expose the survivors as "<server>_<tool>"

A server without a configuration entry exposes all its tools and never
requires confirmation.
"""

import logging
import time
from collections.abc import Mapping
from typing import Any

from overseer.errors import ToolNotFoundError, ToolServerNotFoundError
from overseer.schema import (
    ChatSession,
    SessionToolPermission,
    ToolCallOutput,
    ToolDescriptor,
    ToolServerConfig,
)
from overseer.tools.base import StaticToolServer, ToolServer
from overseer.tools.names import qualify_tool_name, split_tool_name, validate_server_name

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Predicates
# =============================================================================


def is_tool_enabled(config: ToolServerConfig, tool_name: str) -> bool:
    """Per-tool override, else the server default (enabled)."""
    return config.tool_enabled.resolve(tool_name)


def is_tool_available(config: ToolServerConfig, tool_name: str) -> bool:
    """A tool is available exactly when it is enabled."""
    return is_tool_enabled(config, tool_name)


def is_tool_permission_required(config: ToolServerConfig, tool_name: str) -> bool:
    """Per-tool override, else the server default (confirmation required)."""
    return config.tool_permission_required.resolve(tool_name)


# =============================================================================
# Gate
# =============================================================================


class ToolPermissionGate:
    """
    Filters and forwards tool access for chat sessions.

    Usage:
        gate = ToolPermissionGate({"fs": fs_server}, load_tool_servers("tools.yaml"))
        visible = gate.list_tools(session)
        output = await gate.call_tool("fs_read_file", {"path": "README.md"}, session)

    Attributes:
        _servers: Tool servers by name
        _configs: Server configurations by server name
    """

    def __init__(
        self,
        servers: Mapping[str, ToolServer],
        configs: Mapping[str, ToolServerConfig] | None = None,
    ) -> None:
        """
        Raises:
            InvalidToolNameError: If a server name contains the separator
        """
        for server_name in servers:
            validate_server_name(server_name)
        self._servers = dict(servers)
        self._configs = dict(configs or {})

    @classmethod
    def from_configs(cls, configs: Mapping[str, ToolServerConfig]) -> "ToolPermissionGate":
        """Build a gate over static servers declared by their configs' tool lists."""
        servers = {
            name: StaticToolServer(name, config.tools)
            for name, config in configs.items()
        }
        return cls(servers, configs)

    @property
    def server_names(self) -> list[str]:
        return list(self._servers)

    def get_config(self, server_name: str) -> ToolServerConfig | None:
        return self._configs.get(server_name)

    def list_tools(self, session: ChatSession) -> list[ToolDescriptor]:
        """
        Tools visible to the model for a session, with qualified names.

        Returns:
            Copies of the server descriptors, in server then tool order
        """
        if session.autonomous and session.tool_permission == SessionToolPermission.ALWAYS:
            return []

        visible: list[ToolDescriptor] = []
        for server_name, server in self._servers.items():
            config = self._configs.get(server_name)
            for tool in server.tools:
                if config is not None and not is_tool_available(config, tool.name):
                    continue
                if session.autonomous and not self._autonomous_allowed(
                    session, config, tool.name
                ):
                    continue
                visible.append(
                    tool.model_copy(update={"name": qualify_tool_name(server_name, tool.name)})
                )
        return visible

    async def call_tool(
        self,
        qualified_name: str,
        args: dict[str, Any] | None = None,
        session: ChatSession | None = None,
    ) -> ToolCallOutput:
        """
        Forward a call by qualified name to its server.

        Raises:
            InvalidToolNameError: If the name has no server separator
            ToolServerNotFoundError: If the server is unknown
            ToolNotFoundError: If the server does not expose the tool
        """
        server_name, tool_name = split_tool_name(qualified_name)

        server = self._servers.get(server_name)
        if server is None:
            raise ToolServerNotFoundError(tool=qualified_name, server=server_name)
        if not server.has_tool(tool_name):
            raise ToolNotFoundError(tool=tool_name, server=server_name)

        logger.debug("Calling tool %s on server %s", tool_name, server_name)
        start = time.perf_counter()
        output = await server.call_tool(tool_name, args or {}, session)
        elapsed_ms = (time.perf_counter() - start) * 1000
        return output.model_copy(update={"elapsed_ms": elapsed_ms})

    def is_tool_approval_required(
        self,
        session: ChatSession,
        server_name: str,
        tool_name: str,
    ) -> bool:
        """
        Whether a tool call needs the user's confirmation.

        Raises:
            ToolServerNotFoundError: If the decision depends on a server
                configuration that does not exist
        """
        if tool_name in session.approved_tools.get(server_name, set()):
            return False
        if session.tool_permission == SessionToolPermission.ALWAYS:
            return True
        if session.tool_permission == SessionToolPermission.NEVER:
            return False

        config = self._configs.get(server_name)
        if config is None:
            raise ToolServerNotFoundError(tool=tool_name, server=server_name)
        return is_tool_permission_required(config, tool_name)

    def approve_tool_for_session(
        self,
        session: ChatSession,
        server_name: str,
        tool_name: str,
    ) -> None:
        """Record that the user approved a tool for the rest of the session."""
        session.approved_tools.setdefault(server_name, set()).add(tool_name)
        logger.info("Approved tool %s_%s for session %s", server_name, tool_name, session.id)

    def _autonomous_allowed(
        self,
        session: ChatSession,
        config: ToolServerConfig | None,
        tool_name: str,
    ) -> bool:
        if session.tool_permission == SessionToolPermission.NEVER:
            return True
        if session.tool_permission == SessionToolPermission.ALWAYS:
            return False
        return config is None or not is_tool_permission_required(config, tool_name)

    def __repr__(self) -> str:
        return f"<ToolPermissionGate: [{', '.join(self._servers)}]>"
