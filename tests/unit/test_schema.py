"""
Tests for schema models and YAML loaders.

Tests:
    - Enum parsing
    - Context item validation
    - Message and result models
    - Supervisor and tool server configuration loading
"""

import pytest
from pydantic import ValidationError

from overseer.errors import ConfigFileError
from overseer.schema import (
    ChatMessage,
    ContextItemType,
    GuardianDecision,
    IncludeMode,
    MessageRole,
    Permission,
    RequestContextItem,
    RequestSupervisionResult,
    SessionContextItem,
    SupervisionAction,
    SupervisorConfig,
    SupervisorKind,
    ToolCallOutput,
    ToolToggleConfig,
    load_supervisor_configs,
    load_supervisor_configs_from_string,
    load_tool_servers,
    load_tool_servers_from_string,
)


class TestEnums:
    """Tests for enum parsing."""

    def test_permission_by_name(self) -> None:
        """Permission accepts upper-case names."""
        assert Permission("MODIFY_MESSAGES") is Permission.MODIFY_MESSAGES

    def test_permission_unknown(self) -> None:
        """Unknown permissions are rejected."""
        with pytest.raises(ValueError):
            Permission("admin")

    def test_supervisor_kind_values(self) -> None:
        """Kinds are the closed set of variants."""
        assert {k.value for k in SupervisorKind} == {
            "pass_through",
            "guardian",
            "collection",
            "agent",
        }


class TestContextItems:
    """Tests for context item validation."""

    def test_tool_item_requires_server_name(self) -> None:
        """Tool items must carry server_name."""
        with pytest.raises(ValidationError):
            SessionContextItem(type=ContextItemType.TOOL, name="read_file")

    def test_rule_item_rejects_server_name(self) -> None:
        """Only tool items carry server_name."""
        with pytest.raises(ValidationError):
            SessionContextItem(type=ContextItemType.RULE, name="style", server_name="fs")

    def test_session_item_rejects_agent_mode(self) -> None:
        """Session items are always or manual."""
        with pytest.raises(ValidationError):
            SessionContextItem(
                type=ContextItemType.RULE,
                name="style",
                include_mode=IncludeMode.AGENT,
            )

    def test_request_item_accepts_agent_mode(self) -> None:
        """Request items may be agent-selected with a score."""
        item = RequestContextItem(
            type=ContextItemType.REFERENCE,
            name="docs",
            include_mode=IncludeMode.AGENT,
            similarity_score=0.42,
        )
        assert item.key == ("reference", "docs", None)

    def test_items_are_frozen(self) -> None:
        """Context items are immutable."""
        item = SessionContextItem(type=ContextItemType.RULE, name="style")
        with pytest.raises(ValidationError):
            item.name = "other"


class TestMessagesAndResults:
    """Tests for chat messages and supervision results."""

    def test_has_text(self) -> None:
        """Only string content counts as text."""
        assert ChatMessage.user("hi").has_text
        assert not ChatMessage(role=MessageRole.ASSISTANT, model_reply={"x": 1}).has_text

    def test_model_copy_rewrites_content(self) -> None:
        """Rewriting produces a new message and leaves the original intact."""
        original = ChatMessage.user("secret@example.com")
        rewritten = original.model_copy(update={"content": "[EMAIL]"})
        assert original.content == "secret@example.com"
        assert rewritten.content == "[EMAIL]"

    def test_result_defaults(self) -> None:
        """Reasons and metadata default to empty."""
        result = RequestSupervisionResult(action=SupervisionAction.ALLOW)
        assert result.reasons == []
        assert result.metadata == {}
        assert result.final_message is None

    def test_guardian_decision_confidence_bounds(self) -> None:
        """Confidence must be within [0, 1]."""
        with pytest.raises(ValidationError):
            GuardianDecision(allowed=True, confidence=1.5)

    def test_guardian_decision_constructors(self) -> None:
        """allow() and deny() build the expected decisions."""
        assert GuardianDecision.allow() == GuardianDecision(allowed=True, confidence=1.0)
        denied = GuardianDecision.deny("nope", confidence=0.7)
        assert not denied.allowed
        assert denied.reason == "nope"

    def test_tool_call_output_constructors(self) -> None:
        """ok() and fail() build outputs."""
        assert ToolCallOutput.ok([1, 2]).data == [1, 2]
        failed = ToolCallOutput.fail("boom", attempt=1)
        assert not failed.success
        assert failed.metadata == {"attempt": 1}


class TestSupervisorConfigLoading:
    """Tests for supervisor configuration loading."""

    def test_load_from_string(self, sample_supervisors_yaml: str) -> None:
        """Records load in file order."""
        configs = load_supervisor_configs_from_string(sample_supervisors_yaml)
        assert [c.id for c in configs] == ["guardian", "collector"]
        assert configs[0].type == SupervisorKind.GUARDIAN
        assert configs[0].config["rules"] == ["no profanity", "no personal info"]
        assert configs[1].config == {}

    def test_empty_document(self) -> None:
        """An empty document has no supervisors."""
        assert load_supervisor_configs_from_string("") == []

    def test_id_and_name_required(self) -> None:
        """Empty id or name is rejected."""
        with pytest.raises(ValidationError):
            SupervisorConfig(type=SupervisorKind.GUARDIAN, id="", name="Guardian")
        with pytest.raises(ValidationError):
            SupervisorConfig(type=SupervisorKind.GUARDIAN, id="g", name="")

    def test_unknown_type_rejected(self) -> None:
        """Types outside the closed set are rejected."""
        with pytest.raises(ValidationError):
            load_supervisor_configs_from_string(
                "supervisors:\n  - {type: oracle, id: o, name: Oracle}\n"
            )

    def test_load_from_file(self, temp_dir, sample_supervisors_yaml: str) -> None:
        """Files load like strings."""
        path = temp_dir / "supervisors.yaml"
        path.write_text(sample_supervisors_yaml)
        assert len(load_supervisor_configs(path)) == 2

    def test_missing_file_raises_config_error(self, temp_dir) -> None:
        """Unreadable files raise ConfigFileError."""
        with pytest.raises(ConfigFileError) as exc_info:
            load_supervisor_configs(temp_dir / "missing.yaml")
        assert exc_info.value.code == 3001

    def test_invalid_file_raises_config_error(self, temp_dir) -> None:
        """Schema violations in files raise ConfigFileError."""
        path = temp_dir / "bad.yaml"
        path.write_text("supervisors:\n  - {type: guardian}\n")
        with pytest.raises(ConfigFileError):
            load_supervisor_configs(path)


class TestToolServerConfigLoading:
    """Tests for tool server configuration loading."""

    def test_toggle_resolution(self) -> None:
        """Per-tool entries override the server default."""
        toggle = ToolToggleConfig(server_default=False, tools={"a": True})
        assert toggle.resolve("a") is True
        assert toggle.resolve("b") is False

    def test_defaults(self, sample_tool_servers_yaml: str) -> None:
        """Missing sections default to enabled and permission required."""
        servers = load_tool_servers_from_string(sample_tool_servers_yaml)
        web = servers["web"]
        assert web.tool_enabled.resolve("fetch") is True
        assert web.tool_permission_required.resolve("fetch") is True

    def test_overrides(self, sample_tool_servers_yaml: str) -> None:
        """Per-tool overrides are loaded."""
        fs = load_tool_servers_from_string(sample_tool_servers_yaml)["fs"]
        assert fs.tool_enabled.resolve("delete_file") is False
        assert fs.tool_permission_required.resolve("write_file") is True
        assert fs.tool_permission_required.resolve("read_file") is False
        assert [t.name for t in fs.tools] == ["read_file", "write_file", "delete_file"]

    def test_invalid_yaml_file(self, temp_dir) -> None:
        """Malformed YAML raises ConfigFileError."""
        path = temp_dir / "servers.yaml"
        path.write_text("servers: [unclosed\n")
        with pytest.raises(ConfigFileError):
            load_tool_servers(path)
