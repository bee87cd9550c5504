"""
Tests for building supervisors from configuration records.
"""

import pytest

from overseer.errors import SupervisorConfigError
from overseer.schema import (
    Permission,
    SupervisorConfig,
    SupervisorKind,
    load_supervisor_configs_from_string,
)
from overseer.supervisors import (
    AgentSupervisor,
    CollectionSupervisor,
    Done,
    GuardianSupervisor,
    PassThroughSupervisor,
    SupervisorPlanner,
    create_supervisor,
    create_supervisors,
)


class NullPlanner(SupervisorPlanner):
    async def propose_next(self, state, last_result):
        return Done()


async def null_loader(agent_path: str) -> SupervisorPlanner:
    return NullPlanner()


class TestCreateSupervisor:
    """Tests for create_supervisor."""

    def test_guardian(self) -> None:
        """Guardian config keys are applied."""
        supervisor = create_supervisor(
            SupervisorConfig(
                type=SupervisorKind.GUARDIAN,
                id="g",
                name="Guardian",
                config={"rules": ["no profanity"], "profanity_words": ["heck"]},
            )
        )
        assert isinstance(supervisor, GuardianSupervisor)
        assert supervisor.id == "g"
        assert supervisor.get_guardrail_rules() == ["no profanity"]
        assert supervisor.can_modify_messages()

    def test_guardian_permission_override(self) -> None:
        """allowed_actions overrides the default permissions."""
        supervisor = create_supervisor(
            SupervisorConfig(
                type=SupervisorKind.GUARDIAN,
                id="g",
                name="Guardian",
                config={"allowed_actions": ["READ_ONLY"]},
            )
        )
        assert supervisor.is_read_only()

    def test_collection_and_pass_through(self) -> None:
        """Other kinds map to their classes."""
        configs = load_supervisor_configs_from_string(
            """
supervisors:
  - {type: collection, id: c, name: Collector}
  - {type: pass_through, id: p, name: Pass, config: {allowed_actions: [full_control]}}
"""
        )
        collector, passthrough = create_supervisors(configs)
        assert isinstance(collector, CollectionSupervisor)
        assert isinstance(passthrough, PassThroughSupervisor)
        assert passthrough.has_permission(Permission.FULL_CONTROL)

    def test_agent(self) -> None:
        """Agent configs use the config id and name."""
        supervisor = create_supervisor(
            SupervisorConfig(
                type=SupervisorKind.AGENT,
                id="reviewer",
                name="Reviewer",
                config={"agent_path": "./agents/reviewer", "max_turns": 2},
            ),
            planner_loader=null_loader,
        )
        assert isinstance(supervisor, AgentSupervisor)
        assert supervisor.id == "reviewer"
        assert supervisor.name == "Reviewer"
        assert supervisor.config.max_turns == 2

    def test_agent_without_loader(self) -> None:
        """Agent configs need a planner loader."""
        with pytest.raises(SupervisorConfigError) as exc_info:
            create_supervisor(
                SupervisorConfig(
                    type=SupervisorKind.AGENT,
                    id="a",
                    name="A",
                    config={"agent_path": "x"},
                )
            )
        assert exc_info.value.supervisor_id == "a"

    def test_agent_invalid_config(self) -> None:
        """Invalid agent config is wrapped."""
        with pytest.raises(SupervisorConfigError):
            create_supervisor(
                SupervisorConfig(type=SupervisorKind.AGENT, id="a", name="A", config={}),
                planner_loader=null_loader,
            )

    def test_agent_unknown_tool(self) -> None:
        """Agent configs naming unknown tools are wrapped."""
        with pytest.raises(SupervisorConfigError) as exc_info:
            create_supervisor(
                SupervisorConfig(
                    type=SupervisorKind.AGENT,
                    id="a",
                    name="A",
                    config={"agent_path": "x", "tools": ["supervised_launch_rockets"]},
                ),
                planner_loader=null_loader,
            )
        assert exc_info.value.supervisor_id == "a"

    @pytest.mark.parametrize(
        "config",
        [
            {"rules": "no profanity"},
            {"allowed_actions": ["superuser"]},
            {"unknown_key": True},
        ],
    )
    def test_invalid_guardian_config(self, config: dict) -> None:
        """Bad guardian config raises SupervisorConfigError."""
        with pytest.raises(SupervisorConfigError):
            create_supervisor(
                SupervisorConfig(type=SupervisorKind.GUARDIAN, id="g", name="G", config=config)
            )
