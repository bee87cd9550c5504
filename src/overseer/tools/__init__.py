"""
Tool access control for Overseer.

- ToolServer: Interface to a host tool server
- ToolPermissionGate: Which tools a model sees, and which need confirmation
- qualify_tool_name / split_tool_name: "<server>_<tool>" naming
"""

from overseer.tools.base import StaticToolServer, ToolServer
from overseer.tools.gate import (
    ToolPermissionGate,
    is_tool_available,
    is_tool_enabled,
    is_tool_permission_required,
)
from overseer.tools.names import (
    get_tool_name,
    get_tool_server_name,
    qualify_tool_name,
    split_tool_name,
    validate_server_name,
)

__all__ = [
    "StaticToolServer",
    "ToolPermissionGate",
    "ToolServer",
    "get_tool_name",
    "get_tool_server_name",
    "is_tool_available",
    "is_tool_enabled",
    "is_tool_permission_required",
    "qualify_tool_name",
    "split_tool_name",
    "validate_server_name",
]
