"""
Schema definitions for Overseer.

This module defines the data models used throughout Overseer:
- ChatMessage/MessageUpdate/ChatSession: What supervisors inspect
- RequestSupervisionResult/ResponseSupervisionResult: What supervisors return
- GuardianDecision: The result of a guardian content check
- Context items: How rules, references and tools enter a request
- SupervisorConfig/ToolServerConfig: What hosts load from YAML

Design Decisions:
    - Models reject unknown fields (extra="forbid")
    - Results and messages are immutable (frozen=True); supervisors rewrite
      a message with model_copy(update=...) instead of mutating it
    - Enum values match the strings used in configuration files
    - ChatSession is a plain mutable dataclass because the host owns and
      mutates it between exchanges
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from overseer.errors import ConfigFileError


# =============================================================================
# Enums
# =============================================================================


class Permission(str, Enum):
    """
    Capability grant bounding what a supervisor is expected to do.

    FULL_CONTROL subsumes both modify capabilities. Configuration files
    may spell a permission by value ("modify_messages") or by name
    ("MODIFY_MESSAGES").
    """

    READ_ONLY = "read_only"
    MODIFY_CONTEXT = "modify_context"
    MODIFY_MESSAGES = "modify_messages"
    FULL_CONTROL = "full_control"

    @classmethod
    def _missing_(cls, value: object) -> "Permission | None":
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class SupervisionAction(str, Enum):
    """What a supervisor decided to do with a request or response."""

    ALLOW = "allow"
    MODIFY = "modify"
    BLOCK = "block"


class SupervisorKind(str, Enum):
    """The closed set of supervisor variants."""

    PASS_THROUGH = "pass_through"
    GUARDIAN = "guardian"
    COLLECTION = "collection"
    AGENT = "agent"


class MessageRole(str, Enum):
    """Role of a chat message."""

    USER = "user"
    SYSTEM = "system"
    ERROR = "error"
    APPROVAL = "approval"
    ASSISTANT = "assistant"


class SessionToolPermission(str, Enum):
    """
    Session-level tool confirmation policy.

    ALWAYS: every tool call needs confirmation
    NEVER: no tool call needs confirmation
    TOOL: defer to each tool's own configuration
    """

    ALWAYS = "always"
    NEVER = "never"
    TOOL = "tool"


class ContextItemType(str, Enum):
    """Kind of context item tracked for a request."""

    RULE = "rule"
    REFERENCE = "reference"
    TOOL = "tool"


class IncludeMode(str, Enum):
    """Why a context item is part of a request."""

    ALWAYS = "always"
    MANUAL = "manual"
    AGENT = "agent"


# =============================================================================
# Context Models
# =============================================================================


class ContextItem(BaseModel):
    """Shared shape of session and request context items."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: ContextItemType = Field(..., description="rule, reference or tool")
    name: str = Field(..., description="Name of the rule, reference or tool", min_length=1)
    server_name: str | None = Field(
        default=None,
        description="Owning tool server (tool items only)",
    )

    @model_validator(mode="after")
    def validate_server_name(self) -> "ContextItem":
        """Tool items must name their server; other items must not."""
        if self.type == ContextItemType.TOOL and not self.server_name:
            msg = f"Tool context item '{self.name}' requires server_name"
            raise ValueError(msg)
        if self.type != ContextItemType.TOOL and self.server_name is not None:
            msg = f"Only tool context items carry server_name (got {self.type.value})"
            raise ValueError(msg)
        return self

    @property
    def key(self) -> tuple[str, str, str | None]:
        """Identity of the item regardless of how it was included."""
        return (self.type.value, self.name, self.server_name)


class SessionContextItem(ContextItem):
    """
    A context item that persists for the life of a session.

    Session items are either added automatically (always) or by the user
    (manual); agent selection only happens per request.
    """

    include_mode: IncludeMode = Field(default=IncludeMode.MANUAL)

    @model_validator(mode="after")
    def validate_include_mode(self) -> "SessionContextItem":
        """Session items cannot be agent-selected."""
        if self.include_mode == IncludeMode.AGENT:
            msg = "Session context items must use include_mode 'always' or 'manual'"
            raise ValueError(msg)
        return self


class RequestContextItem(ContextItem):
    """A context item actually used for one request/response pair."""

    include_mode: IncludeMode = Field(default=IncludeMode.MANUAL)
    similarity_score: float | None = Field(
        default=None,
        description="Similarity score, typically present for agent-selected items",
    )


class RequestContext(BaseModel):
    """
    The ordered context items used for one request.

    Rebuilt for every request and attached for observability only.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    items: list[RequestContextItem] = Field(default_factory=list)


# =============================================================================
# Chat Models
# =============================================================================


class ChatMessage(BaseModel):
    """
    A single message in a chat exchange.

    Only user, system and error messages carry textual content. Assistant
    messages carry the provider's reply, and approval messages carry the
    user's tool call decisions.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())

    role: MessageRole
    content: str | None = None
    model_reply: Any | None = Field(
        default=None,
        description="Provider reply (assistant messages only)",
    )
    request_context: RequestContext | None = Field(
        default=None,
        description="Context used for this request/response pair",
    )
    tool_call_approvals: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Tool call decisions (approval messages only)",
    )

    @property
    def has_text(self) -> bool:
        """Whether this message carries textual content."""
        return isinstance(self.content, str)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        """Create a user message."""
        return cls(role=MessageRole.USER, content=content)


class MessageUpdate(BaseModel):
    """The messages a session hands back to its client after an exchange."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    updates: list[ChatMessage] = Field(default_factory=list)
    last_sync_id: int = Field(default=0, ge=0)


@dataclass
class ChatSession:
    """
    The host's chat session, as seen by Overseer.

    The supervision manager only needs ``id``. The remaining fields are
    read by the tool permission gate, the context builder and agent-backed
    supervisors.

    Attributes:
        id: Unique session identifier
        autonomous: Whether tool calls may run without per-call confirmation
        tool_permission: Session-level confirmation policy
        context_items: Sticky rules, references and tools for this session
        approved_tools: Tools the user approved for this session, by server
        messages: Conversation history
    """

    id: str
    autonomous: bool = False
    tool_permission: SessionToolPermission = SessionToolPermission.TOOL
    context_items: list[SessionContextItem] = field(default_factory=list)
    approved_tools: dict[str, set[str]] = field(default_factory=dict)
    messages: list[ChatMessage] = field(default_factory=list)


# =============================================================================
# Supervision Results
# =============================================================================


class RequestSupervisionResult(BaseModel):
    """
    Outcome of supervising a request.

    Attributes:
        action: allow, modify or block
        final_message: The (possibly rewritten) last message of the request
        reasons: Human-readable reasons, in the order they were produced
        metadata: Free-form details (confidence, counters, ...)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    action: SupervisionAction
    final_message: ChatMessage | None = None
    reasons: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ResponseSupervisionResult(BaseModel):
    """Outcome of supervising a response; final_response replaces final_message."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    action: SupervisionAction
    final_response: MessageUpdate | None = None
    reasons: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class GuardianDecision(BaseModel):
    """Result of a guardian content check."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool
    reason: str | None = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    modified_content: str | None = None

    @classmethod
    def allow(cls, confidence: float = 1.0) -> "GuardianDecision":
        """Create an ALLOW decision."""
        return cls(allowed=True, confidence=confidence)

    @classmethod
    def deny(cls, reason: str, confidence: float) -> "GuardianDecision":
        """Create a DENY decision."""
        return cls(allowed=False, reason=reason, confidence=confidence)


class CollectionStats(BaseModel):
    """Aggregate statistics over messages seen by a collection supervisor."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total_messages: int = 0
    total_sessions: int = 0
    average_session_length: float = 0.0
    most_active_hours: list[int] = Field(default_factory=list)
    message_types: dict[str, int] = Field(default_factory=dict)


# =============================================================================
# Configuration Models
# =============================================================================


class SupervisorConfig(BaseModel):
    """
    Configuration record for one supervisor.

    The ``config`` mapping is kind-specific and interpreted by the factory.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: SupervisorKind
    id: str = Field(..., min_length=1, description="Supervisor ID is required")
    name: str = Field(..., min_length=1, description="Supervisor name is required")
    config: dict[str, Any] = Field(default_factory=dict)


class SupervisorConfigFile(BaseModel):
    """Top-level structure of a supervisors YAML file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    supervisors: list[SupervisorConfig] = Field(default_factory=list)


class ToolDescriptor(BaseModel):
    """A tool as exposed by a tool server."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []},
    )


class ToolToggleConfig(BaseModel):
    """
    A server default plus per-tool overrides.

    A tool missing from ``tools`` uses ``server_default``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    server_default: bool = True
    tools: dict[str, bool] = Field(default_factory=dict)

    def resolve(self, tool_name: str) -> bool:
        """Return the effective setting for a tool."""
        if tool_name in self.tools:
            return bool(self.tools[tool_name])
        return self.server_default


class ToolServerConfig(BaseModel):
    """
    Availability and confirmation configuration for one tool server.

    Attributes:
        tool_enabled: Which tools are enabled (default: all)
        tool_permission_required: Which tools need confirmation (default: all)
        tools: Static tool descriptors, for servers declared in a file
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tool_enabled: ToolToggleConfig = Field(default_factory=ToolToggleConfig)
    tool_permission_required: ToolToggleConfig = Field(default_factory=ToolToggleConfig)
    tools: list[ToolDescriptor] = Field(default_factory=list)


class ToolServersFile(BaseModel):
    """Top-level structure of a tool servers YAML file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    servers: dict[str, ToolServerConfig] = Field(default_factory=dict)

    @field_validator("servers")
    @classmethod
    def validate_server_names(cls, v: dict[str, ToolServerConfig]) -> dict[str, ToolServerConfig]:
        """Server names prefix qualified tool names and cannot contain "_"."""
        for name in v:
            if not name or "_" in name:
                msg = f"Invalid tool server name '{name}': must be non-empty without '_'"
                raise ValueError(msg)
        return v


class ToolCallOutput(BaseModel):
    """Standardized result of invoking a tool through a tool server."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: bool
    data: Any = None
    error: str | None = None
    elapsed_ms: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any, **metadata: Any) -> "ToolCallOutput":
        """Create a successful output."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: str, **metadata: Any) -> "ToolCallOutput":
        """Create a failed output."""
        return cls(success=False, error=error, metadata=metadata)


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def _load_yaml(path: Path | str) -> Any:
    path = Path(path)
    try:
        with path.open() as f:
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(path=str(path), underlying_error=str(e)) from e


def load_supervisor_configs(path: Path | str) -> list[SupervisorConfig]:
    """
    Load supervisor configurations from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated supervisor configurations, in file order

    Raises:
        ConfigFileError: If the file can't be read or doesn't match the schema
    """
    data = _load_yaml(path)
    try:
        return list(SupervisorConfigFile.model_validate(data or {}).supervisors)
    except ValidationError as e:
        raise ConfigFileError(path=str(path), underlying_error=str(e)) from e


def load_supervisor_configs_from_string(content: str) -> list[SupervisorConfig]:
    """Load supervisor configurations from a YAML string."""
    data = yaml.safe_load(content)
    return list(SupervisorConfigFile.model_validate(data or {}).supervisors)


def load_tool_servers(path: Path | str) -> dict[str, ToolServerConfig]:
    """
    Load tool server configurations from a YAML file.

    Raises:
        ConfigFileError: If the file can't be read or doesn't match the schema
    """
    data = _load_yaml(path)
    try:
        return dict(ToolServersFile.model_validate(data or {}).servers)
    except ValidationError as e:
        raise ConfigFileError(path=str(path), underlying_error=str(e)) from e


def load_tool_servers_from_string(content: str) -> dict[str, ToolServerConfig]:
    """Load tool server configurations from a YAML string."""
    data = yaml.safe_load(content)
    return dict(ToolServersFile.model_validate(data or {}).servers)
