"""
Planner contract for agent-backed supervisors.

An agent-backed supervisor delegates its decision to a planner (the
backing agent). On every turn of a bounded sub-session the planner sees
the supervised message, the supervision tools it may use and the history
of earlier calls, then proposes one supervision tool call or signals Done.

Design Principles:
    - Planners are untrusted: every proposal is checked against the
      supervisor's tool allow-list before it runs
    - Planners get their state passed in fresh on each turn
    - A decision tool (block/modify/allow/review) ends the sub-session
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from overseer.schema import ChatMessage, ToolCallOutput, ToolDescriptor


@dataclass(frozen=True)
class SupervisionToolCall:
    """A supervision tool call proposed by a planner."""

    tool_name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Done:
    """
    Sentinel indicating the planner has nothing more to do.

    Returning Done without having called a decision tool leaves the
    request allowed.
    """

    reason: str = "no_decision"


@dataclass
class SupervisorPlannerState:
    """
    State passed to the planner on each turn.

    Attributes:
        system_prompt: Rendered supervisor instructions
        session_id: ID of the supervised session
        message: The message under supervision
        tool_schemas: Supervision tools this planner may call
        history: Previous (call, output) pairs in order
        turn: Current turn number (0-indexed)
    """

    system_prompt: str
    session_id: str
    message: ChatMessage
    tool_schemas: list[ToolDescriptor]
    history: list[tuple[SupervisionToolCall, ToolCallOutput]] = field(default_factory=list)
    turn: int = 0

    def __post_init__(self) -> None:
        if self.turn < 0:
            raise ValueError("turn must be non-negative")


class SupervisorPlanner(ABC):
    """
    Abstract base class for the decision source of an agent supervisor.

    Example Implementation:
        class BlockEverything(SupervisorPlanner):
            async def propose_next(self, state, last_result):
                return SupervisionToolCall(
                    "supervised_block_message", {"reason": "closed for maintenance"}
                )
    """

    @abstractmethod
    async def propose_next(
        self,
        state: SupervisorPlannerState,
        last_result: ToolCallOutput | None,
    ) -> SupervisionToolCall | Done:
        """
        Propose the next supervision tool call or signal completion.

        Args:
            state: Current state with message, tools and history
            last_result: Output of the previous call, or None on the first turn
        """
        ...

    async def close(self) -> None:
        """Release planner resources. Default does nothing."""
        return None

    def get_name(self) -> str:
        """Return the planner's name for logging."""
        return self.__class__.__name__
