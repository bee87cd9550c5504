"""
Agent-backed supervisor.

An AgentSupervisor hands the decision to a backing agent (a
SupervisorPlanner) running in a bounded sub-session. The planner can only
act through a SupervisionToolbox: a restricted set of tools that read the
supervised session, adjust its context, and record a decision.

The sub-session follows a propose -> check -> execute cycle:

1. Planner proposes the next supervision tool call
2. The call is checked against the supervisor's tool allow-list
3. If allowed, the toolbox executes it and records any decision
4. The output is fed back to the planner on the next turn

The loop ends when a decision tool is called, the planner returns Done,
or max_turns is reached (fallback_behavior then decides).
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from jinja2 import Environment, StrictUndefined, Template, TemplateError
from pydantic import BaseModel, ConfigDict, Field, field_validator

from overseer.errors import SupervisorConfigError, SupervisorNotInitializedError
from overseer.permissions import PermissionSet
from overseer.schema import (
    ChatMessage,
    ChatSession,
    ContextItemType,
    IncludeMode,
    MessageUpdate,
    Permission,
    RequestSupervisionResult,
    ResponseSupervisionResult,
    SessionContextItem,
    SupervisionAction,
    SupervisorKind,
    ToolCallOutput,
    ToolDescriptor,
)
from overseer.supervisors.base import Supervisor, allow_response
from overseer.supervisors.planner import (
    Done,
    SupervisionToolCall,
    SupervisorPlanner,
    SupervisorPlannerState,
)

logger = logging.getLogger(__name__)

PlannerLoader = Callable[[str], Awaitable[SupervisorPlanner]]
AvailableToolsProvider = Callable[[ChatSession], list[ToolDescriptor]]

DEFAULT_SYSTEM_PROMPT = (
    "You supervise chat session {{ session.id }}. Inspect the user's message "
    "and call exactly one of supervised_allow_message, supervised_modify_message, "
    "supervised_block_message or supervised_request_human_review."
)


class AgentSupervisorConfig(BaseModel):
    """
    Configuration of an agent-backed supervisor.

    Attributes:
        agent_path: Location of the backing agent, passed to the planner loader
        system_prompt: Jinja2 template with session, message, rules, references
        tools: Supervision tools the planner may call (empty = all)
        allowed_actions: Permissions granted to this supervisor
        max_turns: Maximum planner turns per request
        fallback_behavior: Action when max_turns passes without a decision
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    agent_path: str = Field(..., min_length=1)
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)
    tools: list[str] = Field(default_factory=list)
    allowed_actions: list[Permission] = Field(
        default_factory=lambda: [Permission.READ_ONLY],
    )
    max_turns: int = Field(default=5, gt=0, le=50)
    fallback_behavior: Literal["allow", "block"] = "allow"

    @field_validator("allowed_actions", mode="before")
    @classmethod
    def parse_permissions(cls, v: Any) -> Any:
        """Accept permission names as well as values."""
        if isinstance(v, list):
            return [Permission(item) if isinstance(item, str) else item for item in v]
        return v

    @field_validator("tools")
    @classmethod
    def validate_tools(cls, v: list[str]) -> list[str]:
        """Only supervision tools can be allowed."""
        unknown = [name for name in v if name not in SUPERVISION_TOOLS]
        if unknown:
            msg = (
                f"Unknown supervision tools: {', '.join(unknown)}. "
                f"Available: {', '.join(SUPERVISION_TOOLS)}"
            )
            raise ValueError(msg)
        return v


# =============================================================================
# Supervision State and Toolbox
# =============================================================================


@dataclass
class SupervisionState:
    """
    Decision recorded by the toolbox during one sub-session.

    Attributes:
        decision: allow/modify/block once a decision tool ran, else None
        reasons: Reasons given with the decision
        modified_content: New content for a modify decision
        human_review: Whether the decision was a request for human review
        context_changes: Context items included or excluded, in order
    """

    decision: SupervisionAction | None = None
    reasons: list[str] = field(default_factory=list)
    modified_content: str | None = None
    human_review: bool = False
    context_changes: list[tuple[str, SessionContextItem]] = field(default_factory=list)


def _schema(properties: dict[str, str] | None = None, required: list[str] | None = None) -> dict:
    return {
        "type": "object",
        "properties": {
            name: {"type": "string", "description": description}
            for name, description in (properties or {}).items()
        },
        "required": required or [],
    }


SUPERVISION_TOOLS: dict[str, ToolDescriptor] = {
    tool.name: tool
    for tool in [
        # Data access
        ToolDescriptor(
            name="supervised_get_current_messages",
            description="Get current messages in supervised session",
            input_schema=_schema(),
        ),
        ToolDescriptor(
            name="supervised_get_current_rules",
            description="Get currently active rules in supervised session",
            input_schema=_schema(),
        ),
        ToolDescriptor(
            name="supervised_get_current_references",
            description="Get currently active references in supervised session",
            input_schema=_schema(),
        ),
        ToolDescriptor(
            name="supervised_get_available_tools",
            description="Get available tools in supervised session",
            input_schema=_schema(),
        ),
        ToolDescriptor(
            name="supervised_get_session_stats",
            description="Get session statistics and metadata",
            input_schema=_schema(),
        ),
        # Context management
        ToolDescriptor(
            name="supervised_include_rule",
            description="Include a rule in the supervised session context",
            input_schema=_schema({"name": "Name of the rule to include"}, ["name"]),
        ),
        ToolDescriptor(
            name="supervised_exclude_rule",
            description="Exclude a rule from the supervised session context",
            input_schema=_schema({"name": "Name of the rule to exclude"}, ["name"]),
        ),
        ToolDescriptor(
            name="supervised_include_reference",
            description="Include a reference in the supervised session context",
            input_schema=_schema({"name": "Name of the reference to include"}, ["name"]),
        ),
        ToolDescriptor(
            name="supervised_exclude_reference",
            description="Exclude a reference from the supervised session context",
            input_schema=_schema({"name": "Name of the reference to exclude"}, ["name"]),
        ),
        # Decisions
        ToolDescriptor(
            name="supervised_block_message",
            description="Block the current message from being processed",
            input_schema=_schema({"reason": "Reason for blocking the message"}, ["reason"]),
        ),
        ToolDescriptor(
            name="supervised_modify_message",
            description="Modify the current message before processing",
            input_schema=_schema(
                {"content": "New message content", "reason": "Reason for modifying the message"},
                ["content", "reason"],
            ),
        ),
        ToolDescriptor(
            name="supervised_allow_message",
            description="Allow the current message to proceed unchanged",
            input_schema=_schema({"reason": "Reason for allowing the message"}, ["reason"]),
        ),
        ToolDescriptor(
            name="supervised_request_human_review",
            description="Request human review for the current message",
            input_schema=_schema({"reason": "Reason for requesting human review"}, ["reason"]),
        ),
    ]
}

DECISION_TOOLS = frozenset({
    "supervised_block_message",
    "supervised_modify_message",
    "supervised_allow_message",
    "supervised_request_human_review",
})


class SupervisionToolbox:
    """
    The restricted tool set an agent supervisor's planner acts through.

    The toolbox is bound to one supervised session and message. Context
    tools need the MODIFY_CONTEXT capability; every call outside the
    allow-list is refused.

    Attributes:
        session: The supervised session
        message: The message under supervision
        state: Decision and context changes recorded so far
    """

    def __init__(
        self,
        session: ChatSession,
        message: ChatMessage,
        permissions: PermissionSet,
        allowed_tools: list[str] | None = None,
        available_tools: list[ToolDescriptor] | None = None,
    ) -> None:
        self.session = session
        self.message = message
        self.state = SupervisionState()
        self._permissions = permissions
        self._allowed = set(allowed_tools) if allowed_tools else set(SUPERVISION_TOOLS)
        self._available_tools = available_tools or []

    @property
    def tool_schemas(self) -> list[ToolDescriptor]:
        """Descriptors of the tools the planner may call."""
        return [tool for name, tool in SUPERVISION_TOOLS.items() if name in self._allowed]

    @property
    def decided(self) -> bool:
        return self.state.decision is not None

    def call(self, call: SupervisionToolCall) -> ToolCallOutput:
        """
        Execute a supervision tool call.

        Expected failures (unknown tool, not permitted, missing argument)
        are returned as failed outputs so the planner can recover.
        """
        name = call.tool_name
        if name not in SUPERVISION_TOOLS:
            return ToolCallOutput.fail(f"Unknown supervision tool: {name}")
        if name not in self._allowed:
            return ToolCallOutput.fail(f"Tool not permitted: {name}")

        missing = [
            arg
            for arg in SUPERVISION_TOOLS[name].input_schema["required"]
            if not isinstance(call.args.get(arg), str) or not call.args.get(arg)
        ]
        if missing:
            return ToolCallOutput(
                success=False,
                error=f"Missing required argument(s) for {name}: {', '.join(missing)}",
            )

        handler = getattr(self, "_" + name.removeprefix("supervised_"))
        return handler(call.args)

    # Data access

    def _get_current_messages(self, args: dict[str, Any]) -> ToolCallOutput:
        messages = [*self.session.messages, self.message]
        return ToolCallOutput(
            success=True,
            data=[m.model_dump(mode="json", exclude_defaults=True) for m in messages],
        )

    def _get_current_rules(self, args: dict[str, Any]) -> ToolCallOutput:
        return ToolCallOutput.ok(self._context_names(ContextItemType.RULE))

    def _get_current_references(self, args: dict[str, Any]) -> ToolCallOutput:
        return ToolCallOutput.ok(self._context_names(ContextItemType.REFERENCE))

    def _get_available_tools(self, args: dict[str, Any]) -> ToolCallOutput:
        return ToolCallOutput(
            success=True,
            data=[tool.model_dump() for tool in self._available_tools],
        )

    def _get_session_stats(self, args: dict[str, Any]) -> ToolCallOutput:
        return ToolCallOutput(
            success=True,
            data={
                "messageCount": len(self.session.messages),
                "activeRules": len(self._context_names(ContextItemType.RULE)),
                "activeReferences": len(self._context_names(ContextItemType.REFERENCE)),
                "autonomous": self.session.autonomous,
                "toolPermission": self.session.tool_permission.value,
            },
        )

    def _context_names(self, item_type: ContextItemType) -> list[str]:
        return [item.name for item in self.session.context_items if item.type == item_type]

    # Context management

    def _include_rule(self, args: dict[str, Any]) -> ToolCallOutput:
        return self._include(ContextItemType.RULE, args["name"])

    def _exclude_rule(self, args: dict[str, Any]) -> ToolCallOutput:
        return self._exclude(ContextItemType.RULE, args["name"])

    def _include_reference(self, args: dict[str, Any]) -> ToolCallOutput:
        return self._include(ContextItemType.REFERENCE, args["name"])

    def _exclude_reference(self, args: dict[str, Any]) -> ToolCallOutput:
        return self._exclude(ContextItemType.REFERENCE, args["name"])

    def _include(self, item_type: ContextItemType, name: str) -> ToolCallOutput:
        if not self._permissions.can_modify_context:
            return ToolCallOutput.fail("Permission denied: modify_context")
        if name in self._context_names(item_type):
            return ToolCallOutput.ok(False)
        item = SessionContextItem(type=item_type, name=name, include_mode=IncludeMode.MANUAL)
        self.session.context_items.append(item)
        self.state.context_changes.append(("include", item))
        return ToolCallOutput.ok(True)

    def _exclude(self, item_type: ContextItemType, name: str) -> ToolCallOutput:
        if not self._permissions.can_modify_context:
            return ToolCallOutput.fail("Permission denied: modify_context")
        for index, item in enumerate(self.session.context_items):
            if item.type == item_type and item.name == name:
                del self.session.context_items[index]
                self.state.context_changes.append(("exclude", item))
                return ToolCallOutput.ok(True)
        return ToolCallOutput.ok(False)

    # Decisions

    def _block_message(self, args: dict[str, Any]) -> ToolCallOutput:
        return self._decide(SupervisionAction.BLOCK, args["reason"])

    def _modify_message(self, args: dict[str, Any]) -> ToolCallOutput:
        self.state.modified_content = args["content"]
        return self._decide(SupervisionAction.MODIFY, args["reason"])

    def _allow_message(self, args: dict[str, Any]) -> ToolCallOutput:
        return self._decide(SupervisionAction.ALLOW, args["reason"])

    def _request_human_review(self, args: dict[str, Any]) -> ToolCallOutput:
        self.state.human_review = True
        return self._decide(
            SupervisionAction.BLOCK,
            f"Human review requested: {args['reason']}",
        )

    def _decide(self, action: SupervisionAction, reason: str) -> ToolCallOutput:
        self.state.decision = action
        self.state.reasons.append(reason)
        return ToolCallOutput.ok({"action": action.value, "reason": reason})


# =============================================================================
# Agent Supervisor
# =============================================================================


class AgentSupervisor(Supervisor):
    """
    Supervisor that delegates decisions to a backing agent.

    Usage:
        supervisor = AgentSupervisor(
            AgentSupervisorConfig(agent_path="./agents/reviewer"),
            planner_loader=load_reviewer,
        )
        await manager.add_supervisor(supervisor)

    Attributes:
        config: The supervisor configuration
        planner: The loaded backing agent (after initialize())
    """

    def __init__(
        self,
        config: AgentSupervisorConfig,
        planner_loader: PlannerLoader,
        supervisor_id: str | None = None,
        name: str | None = None,
        available_tools: AvailableToolsProvider | None = None,
    ) -> None:
        super().__init__(
            supervisor_id or f"agent-supervisor-{config.agent_path}",
            name or f"Agent Supervisor ({config.agent_path})",
            PermissionSet(config.allowed_actions),
        )
        self.config = config
        self.planner: SupervisorPlanner | None = None
        self._planner_loader = planner_loader
        self._available_tools = available_tools
        self._template: Template | None = None
        self._initialized = False

    @property
    def kind(self) -> SupervisorKind:
        return SupervisorKind.AGENT

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Load the backing agent and compile the prompt template. Idempotent."""
        if self._initialized:
            return

        env = Environment(undefined=StrictUndefined, autoescape=False)
        try:
            self._template = env.from_string(self.config.system_prompt)
        except TemplateError as e:
            raise SupervisorConfigError(
                supervisor_id=self.id,
                supervisor_type=SupervisorKind.AGENT.value,
                detail=f"invalid system_prompt template: {e}",
            ) from e

        self.planner = await self._planner_loader(self.config.agent_path)
        self._initialized = True
        logger.info("Initialized agent supervisor: %s", self.config.agent_path)

    async def cleanup(self) -> None:
        if self.planner is not None:
            await self.planner.close()
        self.planner = None
        self._initialized = False
        logger.info("Cleaning up agent supervisor: %s", self.config.agent_path)

    async def process_request(
        self,
        session: ChatSession,
        messages: list[ChatMessage],
    ) -> RequestSupervisionResult:
        if not self._initialized:
            await self.initialize()
        if self.planner is None:
            raise SupervisorNotInitializedError(supervisor_id=self.id)

        if not messages:
            return RequestSupervisionResult(action=SupervisionAction.ALLOW)
        last_message = messages[-1]

        toolbox = SupervisionToolbox(
            session=session,
            message=last_message,
            permissions=self.permissions,
            allowed_tools=self.config.tools,
            available_tools=self._available_tools(session) if self._available_tools else None,
        )
        state = SupervisorPlannerState(
            system_prompt=self._render_prompt(session, last_message),
            session_id=session.id,
            message=last_message,
            tool_schemas=toolbox.tool_schemas,
        )

        turns = await self._run_sub_session(toolbox, state)
        return self._to_result(toolbox.state, last_message, turns)

    async def process_response(
        self,
        session: ChatSession,
        response: MessageUpdate,
    ) -> ResponseSupervisionResult:
        if not self._initialized:
            await self.initialize()
        return allow_response()

    async def _run_sub_session(
        self,
        toolbox: SupervisionToolbox,
        state: SupervisorPlannerState,
    ) -> int:
        """Run the bounded propose -> execute loop. Returns the turns used."""
        last_result: ToolCallOutput | None = None

        for turn in range(self.config.max_turns):
            state.turn = turn
            proposal = await self.planner.propose_next(state, last_result)

            if isinstance(proposal, Done):
                logger.debug("Planner %s done: %s", self.planner.get_name(), proposal.reason)
                return turn + 1

            last_result = toolbox.call(proposal)
            state.history.append((proposal, last_result))
            if not last_result.success:
                logger.debug("Supervision tool call failed: %s", last_result.error)

            if toolbox.decided:
                return turn + 1

        if not toolbox.decided:
            logger.warning(
                "Agent supervisor %s reached %d turns without a decision, applying fallback '%s'",
                self.id,
                self.config.max_turns,
                self.config.fallback_behavior,
            )
            toolbox.state.decision = SupervisionAction(self.config.fallback_behavior)
            toolbox.state.reasons.append(
                f"No decision after {self.config.max_turns} turns "
                f"(fallback: {self.config.fallback_behavior})"
            )
        return self.config.max_turns

    def _to_result(
        self,
        state: SupervisionState,
        message: ChatMessage,
        turns: int,
    ) -> RequestSupervisionResult:
        metadata = {
            "turns": turns,
            "humanReview": state.human_review,
            "contextChanges": len(state.context_changes),
        }

        if state.decision == SupervisionAction.BLOCK:
            return RequestSupervisionResult(
                action=SupervisionAction.BLOCK,
                reasons=list(state.reasons),
                metadata=metadata,
            )

        if state.decision == SupervisionAction.MODIFY and state.modified_content is not None:
            if self.can_modify_messages():
                return RequestSupervisionResult(
                    action=SupervisionAction.MODIFY,
                    final_message=message.model_copy(update={"content": state.modified_content}),
                    reasons=list(state.reasons),
                    metadata=metadata,
                )
            logger.warning(
                "Agent supervisor %s lacks modify_messages permission; allowing unchanged",
                self.id,
            )

        return RequestSupervisionResult(
            action=SupervisionAction.ALLOW,
            final_message=message,
            reasons=list(state.reasons),
            metadata=metadata,
        )

    def _render_prompt(self, session: ChatSession, message: ChatMessage) -> str:
        try:
            return self._template.render(
                session=session,
                message=message,
                rules=[i.name for i in session.context_items if i.type == ContextItemType.RULE],
                references=[
                    i.name for i in session.context_items if i.type == ContextItemType.REFERENCE
                ],
            )
        except TemplateError as e:
            raise SupervisorConfigError(
                supervisor_id=self.id,
                supervisor_type=SupervisorKind.AGENT.value,
                detail=f"system_prompt rendering failed: {e}",
            ) from e
