"""
Supervisors for Overseer.

This package provides the supervisor contract and its concrete kinds:
- Supervisor: Abstract base class for all supervisors
- PassThroughSupervisor: Allows everything unchanged
- GuardianSupervisor: Keyword/pattern content policy and redaction
- CollectionSupervisor: Records traffic for analysis and export
- AgentSupervisor: Delegates decisions to a backing agent (planner)
- create_supervisor: Builds a supervisor from a SupervisorConfig
"""

from overseer.supervisors.agent import (
    AgentSupervisor,
    AgentSupervisorConfig,
    SupervisionState,
    SupervisionToolbox,
)
from overseer.supervisors.base import (
    PassThroughSupervisor,
    Supervisor,
    allow_request,
    allow_response,
)
from overseer.supervisors.collection import CollectionSupervisor
from overseer.supervisors.factory import create_supervisor, create_supervisors
from overseer.supervisors.guardian import GuardianSupervisor
from overseer.supervisors.planner import (
    Done,
    SupervisionToolCall,
    SupervisorPlanner,
    SupervisorPlannerState,
)

__all__ = [
    "AgentSupervisor",
    "AgentSupervisorConfig",
    "CollectionSupervisor",
    "Done",
    "GuardianSupervisor",
    "PassThroughSupervisor",
    "SupervisionState",
    "SupervisionToolCall",
    "SupervisionToolbox",
    "Supervisor",
    "SupervisorPlanner",
    "SupervisorPlannerState",
    "allow_request",
    "allow_response",
    "create_supervisor",
    "create_supervisors",
]
