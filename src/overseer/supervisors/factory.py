"""
Build supervisors from configuration records.

Each SupervisorKind maps to one constructor. The kind-specific ``config``
mapping of a SupervisorConfig is validated here, and problems are raised
as SupervisorConfigError carrying the offending supervisor id.
"""

from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from overseer.errors import InvalidPermissionError, SupervisorConfigError
from overseer.permissions import PermissionSet
from overseer.schema import SupervisorConfig, SupervisorKind
from overseer.supervisors.agent import AgentSupervisor, AgentSupervisorConfig, PlannerLoader
from overseer.supervisors.base import PassThroughSupervisor, Supervisor
from overseer.supervisors.collection import CollectionSupervisor
from overseer.supervisors.guardian import GuardianSupervisor

_GUARDIAN_KEYS = frozenset({"rules", "profanity_words", "allowed_actions"})
_PERMISSION_KEYS = frozenset({"allowed_actions"})


def _check_keys(config: SupervisorConfig, allowed: frozenset[str]) -> None:
    unknown = sorted(set(config.config) - allowed)
    if unknown:
        raise SupervisorConfigError(
            supervisor_id=config.id,
            supervisor_type=config.type.value,
            detail=f"unknown config key(s): {', '.join(unknown)}",
        )


def _permissions(config: SupervisorConfig) -> PermissionSet | None:
    values = _string_list(config, "allowed_actions")
    if values is None:
        return None
    try:
        return PermissionSet.parse(values)
    except InvalidPermissionError as e:
        raise SupervisorConfigError(
            supervisor_id=config.id,
            supervisor_type=config.type.value,
            detail=e.message,
        ) from e


def _string_list(config: SupervisorConfig, key: str) -> list[str] | None:
    value = config.config.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise SupervisorConfigError(
            supervisor_id=config.id,
            supervisor_type=config.type.value,
            detail=f"'{key}' must be a list of strings",
        )
    return value


def _create_pass_through(config: SupervisorConfig, planner_loader: Any) -> Supervisor:
    _check_keys(config, _PERMISSION_KEYS)
    return PassThroughSupervisor(config.id, config.name, _permissions(config))


def _create_guardian(config: SupervisorConfig, planner_loader: Any) -> Supervisor:
    _check_keys(config, _GUARDIAN_KEYS)
    return GuardianSupervisor(
        config.id,
        config.name,
        rules=_string_list(config, "rules"),
        profanity_words=_string_list(config, "profanity_words"),
        permissions=_permissions(config),
    )


def _create_collection(config: SupervisorConfig, planner_loader: Any) -> Supervisor:
    _check_keys(config, _PERMISSION_KEYS)
    return CollectionSupervisor(config.id, config.name, _permissions(config))


def _create_agent(config: SupervisorConfig, planner_loader: PlannerLoader | None) -> Supervisor:
    if planner_loader is None:
        raise SupervisorConfigError(
            supervisor_id=config.id,
            supervisor_type=config.type.value,
            detail="agent supervisors need a planner_loader",
            suggestion="Pass planner_loader= to create_supervisor()",
        )
    try:
        agent_config = AgentSupervisorConfig.model_validate(config.config)
    except ValidationError as e:
        raise SupervisorConfigError(
            supervisor_id=config.id,
            supervisor_type=config.type.value,
            detail=str(e),
        ) from e
    return AgentSupervisor(
        agent_config,
        planner_loader,
        supervisor_id=config.id,
        name=config.name,
    )


_FACTORIES: dict[SupervisorKind, Callable[[SupervisorConfig, Any], Supervisor]] = {
    SupervisorKind.PASS_THROUGH: _create_pass_through,
    SupervisorKind.GUARDIAN: _create_guardian,
    SupervisorKind.COLLECTION: _create_collection,
    SupervisorKind.AGENT: _create_agent,
}


def create_supervisor(
    config: SupervisorConfig,
    *,
    planner_loader: PlannerLoader | None = None,
) -> Supervisor:
    """
    Create a supervisor from a configuration record.

    The supervisor is not initialized; SupervisionManager.add_supervisor()
    does that.

    Args:
        config: Validated supervisor configuration
        planner_loader: Loads the backing agent of agent supervisors

    Raises:
        SupervisorConfigError: If the kind-specific config is invalid
    """
    return _FACTORIES[config.type](config, planner_loader)


def create_supervisors(
    configs: list[SupervisorConfig],
    *,
    planner_loader: PlannerLoader | None = None,
) -> list[Supervisor]:
    """Create supervisors for every record, in order."""
    return [create_supervisor(c, planner_loader=planner_loader) for c in configs]
