"""
Exception hierarchy for Overseer.

All Overseer exceptions inherit from OverseerError, allowing callers to catch
all Overseer-specific exceptions with a single except clause.

Exception Categories:
    - SupervisionError: Supervisor lookup, configuration and permission errors
    - ToolError: Qualified tool name resolution failures
    - ConfigFileError: YAML configuration files that cannot be loaded

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (supervisor, tool, server where applicable)
    - All errors provide actionable suggestions where possible
    - Errors are designed to be both human-readable and machine-parseable

Note:
    Exceptions raised by supervisor implementations themselves are not
    wrapped. They propagate unchanged out of the request chain and are
    logged and skipped on the response chain.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Supervision errors: 1xxx
ERROR_SUPERVISOR_NOT_FOUND = 1001
ERROR_SUPERVISOR_CONFIG = 1002
ERROR_INVALID_PERMISSION = 1003
ERROR_UNSUPPORTED_EXPORT_FORMAT = 1004
ERROR_SUPERVISOR_NOT_INITIALIZED = 1005

# Tool errors: 2xxx
ERROR_TOOL_INVALID_NAME = 2001
ERROR_TOOL_SERVER_NOT_FOUND = 2002
ERROR_TOOL_NOT_FOUND = 2003

# Configuration file errors: 3xxx
ERROR_CONFIG_FILE = 3001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class OverseerError(Exception):
    """
    Base exception for all Overseer errors.

    All Overseer exceptions inherit from this class, providing:
    - Consistent error code for programmatic handling
    - Human-readable message
    - Optional suggestion for resolution
    - Optional context dict for debugging

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Supervision Errors
# =============================================================================


@dataclass
class SupervisionError(OverseerError):
    """
    Base class for supervision errors.

    Attributes:
        supervisor_id: ID of the supervisor involved (if any)
    """

    supervisor_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["supervisor_id"] = self.supervisor_id


@dataclass
class SupervisorNotFoundError(SupervisionError):
    """Raised when a supervisor id is not present in the registry."""

    session_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Supervisor not found: {self.supervisor_id}"
        if self.code == 0:
            self.code = ERROR_SUPERVISOR_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Call add_supervisor() before registering it for a session"
        super().__post_init__()
        self.context["session_id"] = self.session_id


@dataclass
class SupervisorConfigError(SupervisionError):
    """Raised when a supervisor configuration cannot be turned into a supervisor."""

    supervisor_type: str = ""
    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid {self.supervisor_type} supervisor config: {self.detail}"
        if self.code == 0:
            self.code = ERROR_SUPERVISOR_CONFIG
        super().__post_init__()
        self.context.update({
            "supervisor_type": self.supervisor_type,
            "detail": self.detail,
        })


@dataclass
class InvalidPermissionError(SupervisionError):
    """Raised when a permission name cannot be parsed."""

    permission: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unknown permission: {self.permission}"
        if self.code == 0:
            self.code = ERROR_INVALID_PERMISSION
        if not self.suggestion:
            self.suggestion = (
                "Use one of: read_only, modify_context, modify_messages, full_control"
            )
        super().__post_init__()
        self.context["permission"] = self.permission


@dataclass
class UnsupportedExportFormatError(SupervisionError):
    """Raised when collected data is exported in an unknown format."""

    export_format: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unsupported export format: {self.export_format}"
        if self.code == 0:
            self.code = ERROR_UNSUPPORTED_EXPORT_FORMAT
        if not self.suggestion:
            self.suggestion = "Use one of: json, csv, log"
        super().__post_init__()
        self.context["export_format"] = self.export_format


@dataclass
class SupervisorNotInitializedError(SupervisionError):
    """Raised when a supervisor is used before initialize() completed."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Supervisor not initialized: {self.supervisor_id}"
        if self.code == 0:
            self.code = ERROR_SUPERVISOR_NOT_INITIALIZED
        super().__post_init__()


# =============================================================================
# Tool Errors
# =============================================================================


@dataclass
class ToolError(OverseerError):
    """
    Base class for tool resolution errors.

    These errors occur when a qualified tool name cannot be resolved to a
    server and a tool. Overseer never executes tools itself.

    Attributes:
        tool: The (qualified or bare) tool name involved
        server: The tool server name involved (if known)
    """

    tool: str = ""
    server: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "tool": self.tool,
            "server": self.server,
        })


@dataclass
class InvalidToolNameError(ToolError):
    """Raised when a qualified tool name has no server separator."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Invalid tool name format: {self.tool}. "
                "Expected format: serverName_toolName"
            )
        if self.code == 0:
            self.code = ERROR_TOOL_INVALID_NAME
        super().__post_init__()


@dataclass
class ToolServerNotFoundError(ToolError):
    """Raised when a tool server is not known to the gate."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Tool server not found: {self.server}"
        if self.code == 0:
            self.code = ERROR_TOOL_SERVER_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Check the server name or add it to the servers config"
        super().__post_init__()


@dataclass
class ToolNotFoundError(ToolError):
    """Raised when a server does not expose the requested tool."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Tool not found: {self.tool}"
        if self.code == 0:
            self.code = ERROR_TOOL_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Check tool name spelling"
        super().__post_init__()


# =============================================================================
# Configuration File Errors
# =============================================================================


@dataclass
class ConfigFileError(OverseerError):
    """Raised when a YAML configuration file cannot be read or validated."""

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to load config {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_FILE
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })
