"""
Base contract for Overseer supervisors.

This module defines the core abstractions for supervisors:
- Supervisor: Abstract base class that every supervisor kind implements
- allow_request / allow_response: The shared pass-through policy
- PassThroughSupervisor: A supervisor that only applies the default policy

Design Principles:
    - Supervisors are identified by id; the manager's registry maps ids to
      instances, session rosters only hold ids
    - Supervisors never mutate the messages they receive; they return a
      rewritten copy in a modify result
    - Permissions are held by composition (PermissionSet) and respected by
      each implementation
    - initialize() may perform slow I/O and is awaited before first use;
      cleanup() is best-effort teardown

Default behavior is shared through the allow_request/allow_response
helpers rather than inherited overrides, so each kind states explicitly
which hooks it customizes.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from overseer.permissions import PermissionSet
from overseer.schema import (
    ChatMessage,
    ChatSession,
    MessageUpdate,
    Permission,
    RequestSupervisionResult,
    ResponseSupervisionResult,
    SupervisionAction,
    SupervisorKind,
)

logger = logging.getLogger(__name__)


def allow_request(messages: Sequence[ChatMessage]) -> RequestSupervisionResult:
    """Allow a request, passing its last message through unchanged."""
    return RequestSupervisionResult(
        action=SupervisionAction.ALLOW,
        final_message=messages[-1] if messages else None,
    )


def allow_response() -> ResponseSupervisionResult:
    """Allow a response unchanged."""
    return ResponseSupervisionResult(action=SupervisionAction.ALLOW)


class Supervisor(ABC):
    """
    Abstract base class for all supervisors.

    A supervisor can allow, modify, or block a chat request before it
    reaches the model, and a response after it comes back.

    Subclasses must implement:
    - kind property: The supervisor variant tag
    - process_request(): Inspect the outgoing message list
    - process_response(): Inspect the model's reply

    Example:
        class ShoutingSupervisor(Supervisor):
            @property
            def kind(self) -> SupervisorKind:
                return SupervisorKind.PASS_THROUGH

            async def process_request(self, session, messages):
                last = messages[-1]
                return RequestSupervisionResult(
                    action=SupervisionAction.MODIFY,
                    final_message=last.model_copy(update={"content": last.content.upper()}),
                    reasons=["Shouted"],
                )

            async def process_response(self, session, response):
                return allow_response()
    """

    def __init__(
        self,
        supervisor_id: str,
        name: str,
        permissions: PermissionSet | list[Permission],
    ) -> None:
        self._id = supervisor_id
        self._name = name
        if not isinstance(permissions, PermissionSet):
            permissions = PermissionSet(permissions)
        self._permissions = permissions

    @property
    def id(self) -> str:
        """Unique identifier, used as the registry key."""
        return self._id

    @property
    def name(self) -> str:
        """Human-readable name."""
        return self._name

    @property
    def permissions(self) -> PermissionSet:
        """Granted permissions."""
        return self._permissions

    @property
    @abstractmethod
    def kind(self) -> SupervisorKind:
        """The supervisor variant."""
        ...

    async def initialize(self) -> None:
        """
        Prepare the supervisor for use.

        Override to load backing agents or external configuration. Errors
        propagate to whoever is adding the supervisor.
        """
        logger.info("Initializing supervisor: %s", self.name)

    async def cleanup(self) -> None:
        """Release resources held by the supervisor (best-effort)."""
        logger.info("Cleaning up supervisor: %s", self.name)

    @abstractmethod
    async def process_request(
        self,
        session: ChatSession,
        messages: list[ChatMessage],
    ) -> RequestSupervisionResult:
        """
        Supervise a request before it is sent to the model.

        Args:
            session: The chat session the request belongs to
            messages: The full message list that will be sent; the last
                      element is the message under supervision

        Returns:
            RequestSupervisionResult; a modify result carries the rewritten
            last message in final_message
        """
        ...

    @abstractmethod
    async def process_response(
        self,
        session: ChatSession,
        response: MessageUpdate,
    ) -> ResponseSupervisionResult:
        """
        Supervise a model response before it is returned to the client.

        Returns:
            ResponseSupervisionResult; a modify result carries the rewritten
            update in final_response
        """
        ...

    # Permission predicates, delegated to the PermissionSet

    def has_permission(self, permission: Permission) -> bool:
        return self._permissions.has_permission(permission)

    def can_modify_context(self) -> bool:
        return self._permissions.can_modify_context

    def can_modify_messages(self) -> bool:
        return self._permissions.can_modify_messages

    def is_read_only(self) -> bool:
        return self._permissions.is_read_only

    def __repr__(self) -> str:
        """String representation of the supervisor."""
        return f"<{self.__class__.__name__}: {self.id}>"


class PassThroughSupervisor(Supervisor):
    """A read-only supervisor that allows everything unchanged."""

    def __init__(
        self,
        supervisor_id: str,
        name: str,
        permissions: PermissionSet | list[Permission] | None = None,
    ) -> None:
        super().__init__(
            supervisor_id,
            name,
            permissions if permissions is not None else [Permission.READ_ONLY],
        )

    @property
    def kind(self) -> SupervisorKind:
        return SupervisorKind.PASS_THROUGH

    async def process_request(
        self,
        session: ChatSession,
        messages: list[ChatMessage],
    ) -> RequestSupervisionResult:
        return allow_request(messages)

    async def process_response(
        self,
        session: ChatSession,
        response: MessageUpdate,
    ) -> ResponseSupervisionResult:
        return allow_response()
