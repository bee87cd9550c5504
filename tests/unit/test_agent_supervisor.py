"""
Tests for the agent-backed supervisor.

Tests:
    - AgentSupervisorConfig validation
    - SupervisionToolbox data, context and decision tools
    - AgentSupervisor lifecycle and bounded planner loop
"""

import pytest
from pydantic import ValidationError

from overseer.errors import SupervisorConfigError
from overseer.permissions import PermissionSet
from overseer.schema import (
    ChatMessage,
    ChatSession,
    ContextItemType,
    IncludeMode,
    Permission,
    SessionContextItem,
    SupervisionAction,
    SupervisorKind,
    ToolCallOutput,
    ToolDescriptor,
)
from overseer.supervisors import (
    AgentSupervisor,
    AgentSupervisorConfig,
    Done,
    SupervisionToolbox,
    SupervisionToolCall,
    SupervisorPlanner,
    SupervisorPlannerState,
)


class ScriptedPlanner(SupervisorPlanner):
    """Planner that returns a fixed sequence of proposals."""

    def __init__(self, proposals: list):
        self.proposals = proposals
        self.states: list[SupervisorPlannerState] = []
        self.results: list[ToolCallOutput | None] = []
        self.closed = False

    async def propose_next(self, state, last_result):
        self.states.append(state)
        self.results.append(last_result)
        index = len(self.results) - 1
        if index < len(self.proposals):
            return self.proposals[index]
        return Done()

    async def close(self) -> None:
        self.closed = True


def make_loader(planner: SupervisorPlanner):
    """Loader returning a fixed planner and recording requested paths."""
    calls: list[str] = []

    async def loader(agent_path: str) -> SupervisorPlanner:
        calls.append(agent_path)
        return planner

    loader.calls = calls
    return loader


def call(tool: str, **args) -> SupervisionToolCall:
    return SupervisionToolCall(tool_name=tool, args=args)


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def context_session() -> ChatSession:
    """A session with one rule and one reference."""
    return ChatSession(
        id="session-ctx",
        context_items=[
            SessionContextItem(type=ContextItemType.RULE, name="style-guide"),
            SessionContextItem(
                type=ContextItemType.REFERENCE,
                name="api-docs",
                include_mode=IncludeMode.ALWAYS,
            ),
        ],
        messages=[ChatMessage.user("earlier")],
    )


def make_toolbox(
    session: ChatSession,
    permissions: list[Permission] | None = None,
    allowed_tools: list[str] | None = None,
) -> SupervisionToolbox:
    return SupervisionToolbox(
        session=session,
        message=ChatMessage.user("current"),
        permissions=PermissionSet(permissions or [Permission.READ_ONLY]),
        allowed_tools=allowed_tools,
        available_tools=[ToolDescriptor(name="fs_read_file", description="Read")],
    )


# =============================================================================
# Config
# =============================================================================


class TestAgentSupervisorConfig:
    """Tests for AgentSupervisorConfig."""

    def test_defaults(self) -> None:
        """Defaults: read-only, five turns, allow fallback, all tools."""
        config = AgentSupervisorConfig(agent_path="./agents/reviewer")
        assert config.allowed_actions == [Permission.READ_ONLY]
        assert config.max_turns == 5
        assert config.fallback_behavior == "allow"
        assert config.tools == []

    def test_permission_names_accepted(self) -> None:
        """allowed_actions accepts config-file names."""
        config = AgentSupervisorConfig(
            agent_path="a",
            allowed_actions=["READ_ONLY", "modify_messages"],
        )
        assert config.allowed_actions == [Permission.READ_ONLY, Permission.MODIFY_MESSAGES]

    def test_invalid_values(self) -> None:
        """Bad values are rejected."""
        with pytest.raises(ValidationError):
            AgentSupervisorConfig(agent_path="")
        with pytest.raises(ValidationError):
            AgentSupervisorConfig(agent_path="a", max_turns=0)
        with pytest.raises(ValidationError):
            AgentSupervisorConfig(agent_path="a", fallback_behavior="escalate")
        with pytest.raises(ValidationError):
            AgentSupervisorConfig(agent_path="a", allowed_actions=["root"])

    def test_known_tools_accepted(self) -> None:
        """Supervision tool names pass validation."""
        config = AgentSupervisorConfig(
            agent_path="a",
            tools=["supervised_get_current_messages", "supervised_allow_message"],
        )
        assert config.tools == ["supervised_get_current_messages", "supervised_allow_message"]

    def test_unknown_tools_rejected(self) -> None:
        """Names outside the supervision tool set are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            AgentSupervisorConfig(agent_path="a", tools=["supervised_allow_message", "fs_read"])
        assert "fs_read" in str(exc_info.value)


# =============================================================================
# Toolbox
# =============================================================================


class TestSupervisionToolbox:
    """Tests for the supervision tools."""

    def test_data_tools(self, context_session: ChatSession) -> None:
        """Data tools read the supervised session."""
        toolbox = make_toolbox(context_session)

        messages = toolbox.call(call("supervised_get_current_messages"))
        assert [m["content"] for m in messages.data] == ["earlier", "current"]
        assert toolbox.call(call("supervised_get_current_rules")).data == ["style-guide"]
        assert toolbox.call(call("supervised_get_current_references")).data == ["api-docs"]
        assert toolbox.call(call("supervised_get_available_tools")).data[0]["name"] == "fs_read_file"

        stats = toolbox.call(call("supervised_get_session_stats")).data
        assert stats["messageCount"] == 1
        assert stats["activeRules"] == 1
        assert stats["toolPermission"] == "tool"
        assert not toolbox.decided

    def test_unknown_tool(self, session: ChatSession) -> None:
        """Unknown tools fail without raising."""
        output = make_toolbox(session).call(call("supervised_launch"))
        assert not output.success
        assert "Unknown supervision tool" in output.error

    def test_tool_outside_allow_list_refused(self, session: ChatSession) -> None:
        """Tools outside the allow-list are refused."""
        toolbox = make_toolbox(session, allowed_tools=["supervised_allow_message"])
        output = toolbox.call(call("supervised_block_message", reason="x"))
        assert not output.success
        assert output.error == "Tool not permitted: supervised_block_message"
        assert [t.name for t in toolbox.tool_schemas] == ["supervised_allow_message"]

    def test_missing_argument(self, session: ChatSession) -> None:
        """Required arguments are checked."""
        output = make_toolbox(session).call(call("supervised_modify_message", reason="r"))
        assert not output.success
        assert "content" in output.error

    def test_context_tools_require_permission(self, context_session: ChatSession) -> None:
        """Read-only supervisors cannot change context."""
        toolbox = make_toolbox(context_session)
        output = toolbox.call(call("supervised_include_rule", name="security"))
        assert not output.success
        assert len(context_session.context_items) == 2

    def test_include_and_exclude(self, context_session: ChatSession) -> None:
        """Context tools edit session.context_items with manual mode."""
        toolbox = make_toolbox(context_session, [Permission.MODIFY_CONTEXT])

        assert toolbox.call(call("supervised_include_rule", name="security")).data is True
        assert toolbox.call(call("supervised_include_rule", name="security")).data is False
        added = context_session.context_items[-1]
        assert (added.type, added.name, added.include_mode) == (
            ContextItemType.RULE,
            "security",
            IncludeMode.MANUAL,
        )

        assert toolbox.call(call("supervised_exclude_reference", name="api-docs")).data is True
        assert toolbox.call(call("supervised_exclude_reference", name="api-docs")).data is False
        assert [i.name for i in context_session.context_items] == ["style-guide", "security"]
        assert [kind for kind, _ in toolbox.state.context_changes] == ["include", "exclude"]

    def test_decision_tools(self, session: ChatSession) -> None:
        """Decision tools record the decision."""
        toolbox = make_toolbox(session)
        toolbox.call(call("supervised_modify_message", content="new", reason="tidy"))
        assert toolbox.decided
        assert toolbox.state.decision == SupervisionAction.MODIFY
        assert toolbox.state.modified_content == "new"
        assert toolbox.state.reasons == ["tidy"]

    def test_human_review_maps_to_block(self, session: ChatSession) -> None:
        """Requesting human review blocks with a review reason."""
        toolbox = make_toolbox(session)
        toolbox.call(call("supervised_request_human_review", reason="unsure"))
        assert toolbox.state.decision == SupervisionAction.BLOCK
        assert toolbox.state.human_review
        assert toolbox.state.reasons == ["Human review requested: unsure"]


# =============================================================================
# AgentSupervisor
# =============================================================================


class TestAgentSupervisorLifecycle:
    """Tests for initialize/cleanup."""

    def test_default_id_and_name(self) -> None:
        """id and name derive from agent_path."""
        supervisor = AgentSupervisor(
            AgentSupervisorConfig(agent_path="reviewer"),
            make_loader(ScriptedPlanner([])),
        )
        assert supervisor.id == "agent-supervisor-reviewer"
        assert supervisor.name == "Agent Supervisor (reviewer)"
        assert supervisor.kind == SupervisorKind.AGENT

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self) -> None:
        """The planner is loaded once."""
        loader = make_loader(ScriptedPlanner([]))
        supervisor = AgentSupervisor(AgentSupervisorConfig(agent_path="reviewer"), loader)

        await supervisor.initialize()
        await supervisor.initialize()

        assert loader.calls == ["reviewer"]
        assert supervisor.initialized

    @pytest.mark.asyncio
    async def test_loader_failure_propagates(self) -> None:
        """Loader errors propagate from initialize."""

        async def failing_loader(agent_path: str) -> SupervisorPlanner:
            raise FileNotFoundError(agent_path)

        supervisor = AgentSupervisor(AgentSupervisorConfig(agent_path="gone"), failing_loader)
        with pytest.raises(FileNotFoundError):
            await supervisor.initialize()
        assert not supervisor.initialized

    @pytest.mark.asyncio
    async def test_invalid_template(self) -> None:
        """A broken system_prompt template is a config error."""
        supervisor = AgentSupervisor(
            AgentSupervisorConfig(agent_path="a", system_prompt="{% if %}"),
            make_loader(ScriptedPlanner([])),
        )
        with pytest.raises(SupervisorConfigError):
            await supervisor.initialize()

    @pytest.mark.asyncio
    async def test_cleanup_closes_planner(self) -> None:
        """cleanup closes the planner and resets initialization."""
        planner = ScriptedPlanner([])
        supervisor = AgentSupervisor(AgentSupervisorConfig(agent_path="a"), make_loader(planner))
        await supervisor.initialize()
        await supervisor.cleanup()
        assert planner.closed
        assert supervisor.planner is None
        assert not supervisor.initialized


class TestAgentSupervisorDecisions:
    """Tests for process_request."""

    @pytest.mark.asyncio
    async def test_block_decision(self, session: ChatSession) -> None:
        """A block decision becomes a block result."""
        planner = ScriptedPlanner([call("supervised_block_message", reason="off-topic")])
        supervisor = AgentSupervisor(AgentSupervisorConfig(agent_path="a"), make_loader(planner))

        result = await supervisor.process_request(session, [ChatMessage.user("hi")])

        assert result.action == SupervisionAction.BLOCK
        assert result.reasons == ["off-topic"]
        assert result.metadata["turns"] == 1
        assert supervisor.initialized

    @pytest.mark.asyncio
    async def test_modify_decision_with_permission(self, session: ChatSession) -> None:
        """Modify rewrites the last message when permitted."""
        planner = ScriptedPlanner([
            call("supervised_get_current_messages"),
            call("supervised_modify_message", content="polite", reason="tone"),
        ])
        supervisor = AgentSupervisor(
            AgentSupervisorConfig(agent_path="a", allowed_actions=["modify_messages"]),
            make_loader(planner),
        )
        result = await supervisor.process_request(session, [ChatMessage.user("rude")])

        assert result.action == SupervisionAction.MODIFY
        assert result.final_message.content == "polite"
        assert result.reasons == ["tone"]
        assert result.metadata["turns"] == 2
        assert planner.results[1].success

    @pytest.mark.asyncio
    async def test_modify_without_permission_downgraded(self, session: ChatSession, caplog) -> None:
        """Read-only agents cannot rewrite; the message is allowed unchanged."""
        planner = ScriptedPlanner([call("supervised_modify_message", content="x", reason="r")])
        supervisor = AgentSupervisor(AgentSupervisorConfig(agent_path="a"), make_loader(planner))
        message = ChatMessage.user("original")

        result = await supervisor.process_request(session, [message])

        assert result.action == SupervisionAction.ALLOW
        assert result.final_message is message
        assert "lacks modify_messages permission" in caplog.text

    @pytest.mark.asyncio
    async def test_done_without_decision_allows(self, session: ChatSession) -> None:
        """Done with no decision allows."""
        supervisor = AgentSupervisor(
            AgentSupervisorConfig(agent_path="a", fallback_behavior="block"),
            make_loader(ScriptedPlanner([Done()])),
        )
        result = await supervisor.process_request(session, [ChatMessage.user("hi")])
        assert result.action == SupervisionAction.ALLOW

    @pytest.mark.asyncio
    async def test_max_turns_applies_fallback(self, session: ChatSession) -> None:
        """Running out of turns applies fallback_behavior."""
        planner = ScriptedPlanner([call("supervised_get_current_rules")] * 10)
        supervisor = AgentSupervisor(
            AgentSupervisorConfig(agent_path="a", max_turns=3, fallback_behavior="block"),
            make_loader(planner),
        )
        result = await supervisor.process_request(session, [ChatMessage.user("hi")])

        assert result.action == SupervisionAction.BLOCK
        assert result.metadata["turns"] == 3
        assert len(planner.states) == 3
        assert "No decision after 3 turns" in result.reasons[0]

    @pytest.mark.asyncio
    async def test_refused_call_fed_back(self, session: ChatSession) -> None:
        """Refused calls are returned to the planner as failed outputs."""
        planner = ScriptedPlanner([
            call("supervised_block_message", reason="nope"),
            call("supervised_allow_message", reason="fine"),
        ])
        supervisor = AgentSupervisor(
            AgentSupervisorConfig(agent_path="a", tools=["supervised_allow_message"]),
            make_loader(planner),
        )
        result = await supervisor.process_request(session, [ChatMessage.user("hi")])

        assert result.action == SupervisionAction.ALLOW
        assert planner.results[1].success is False
        assert planner.results[1].error == "Tool not permitted: supervised_block_message"
        assert result.reasons == ["fine"]

    @pytest.mark.asyncio
    async def test_system_prompt_rendered(self, context_session: ChatSession) -> None:
        """The prompt template sees session, message, rules and references."""
        planner = ScriptedPlanner([Done()])
        supervisor = AgentSupervisor(
            AgentSupervisorConfig(
                agent_path="a",
                system_prompt=(
                    "{{ session.id }}|{{ message.content }}|"
                    "{{ rules | join(',') }}|{{ references | join(',') }}"
                ),
            ),
            make_loader(planner),
        )
        await supervisor.process_request(context_session, [ChatMessage.user("hey")])

        assert planner.states[0].system_prompt == "session-ctx|hey|style-guide|api-docs"
        assert planner.states[0].session_id == "session-ctx"

    @pytest.mark.asyncio
    async def test_process_response_allows(self, session: ChatSession, message_update) -> None:
        """Responses are allowed."""
        supervisor = AgentSupervisor(
            AgentSupervisorConfig(agent_path="a"),
            make_loader(ScriptedPlanner([])),
        )
        result = await supervisor.process_response(session, message_update)
        assert result.action == SupervisionAction.ALLOW
