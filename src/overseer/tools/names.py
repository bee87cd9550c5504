"""
Qualified tool names.

Tools from different servers are exposed to the model as
``<server>_<tool>``. Lookups split on the first underscore, so server
names must not contain one; tool names may.
"""

from overseer.errors import InvalidToolNameError

SEPARATOR = "_"


def qualify_tool_name(server_name: str, tool_name: str) -> str:
    """Build the model-visible name of a server's tool."""
    return f"{server_name}{SEPARATOR}{tool_name}"


def split_tool_name(qualified_name: str) -> tuple[str, str]:
    """
    Split a qualified name into (server, tool).

    Raises:
        InvalidToolNameError: If the name has no separator
    """
    server, sep, tool = qualified_name.partition(SEPARATOR)
    if not sep:
        raise InvalidToolNameError(tool=qualified_name)
    return server, tool


def get_tool_server_name(qualified_name: str) -> str:
    return split_tool_name(qualified_name)[0]


def get_tool_name(qualified_name: str) -> str:
    return split_tool_name(qualified_name)[1]


def validate_server_name(server_name: str) -> str:
    """
    Check that a server name can prefix qualified tool names.

    Raises:
        InvalidToolNameError: If the name is empty or contains the separator
    """
    if not server_name or SEPARATOR in server_name:
        raise InvalidToolNameError(
            server=server_name,
            message=f"Invalid tool server name: '{server_name}'",
            suggestion=f"Server names must be non-empty and must not contain '{SEPARATOR}'",
        )
    return server_name
